"""Discount requests (kind and value) and the finalized discount record."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from pos_cart.domain.exceptions import InvalidDiscountValueError
from pos_cart.domain.model.value_objects import Money

MAX_PERCENTAGE = Decimal("100")


class DiscountKind(Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    COMPLIMENTARY = "complimentary"


@dataclass(frozen=True)
class DiscountSpec:
    """What the operator asked for: a kind and a value.

    The amount is only known against a subtotal, so it is not stored here.
    For COMPLIMENTARY the value is ignored and the whole subtotal is waived.
    """

    kind: DiscountKind
    value: Decimal
    reason: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal) or not self.value.is_finite():
            raise InvalidDiscountValueError(f"Discount value must be a number, got {self.value!r}")
        if self.value < 0:
            raise InvalidDiscountValueError("Discount value cannot be negative")
        if self.kind is DiscountKind.PERCENTAGE and self.value > MAX_PERCENTAGE:
            raise InvalidDiscountValueError(
                f"Discount percentage must be between 0 and 100, got {self.value}"
            )

    @staticmethod
    def of(kind: str | DiscountKind, value: str | int | float | Decimal, reason: str | None = None) -> DiscountSpec:
        try:
            kind = DiscountKind(kind)
        except ValueError as exc:
            raise InvalidDiscountValueError(f"Unknown discount kind: {kind!r}") from exc
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise InvalidDiscountValueError(f"Invalid discount value: {value!r}") from exc
        return DiscountSpec(kind=kind, value=amount, reason=reason or None)


@dataclass(frozen=True)
class Discount:
    """A discount as written on a completed order.  Never changes afterwards."""

    kind: DiscountKind
    value: Decimal
    amount: Money
    reason: str | None
    applied_by: str
    applied_at: datetime
