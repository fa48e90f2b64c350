"""Records exchanged with the persistence collaborators.

``CurrentOrderRecord`` is the open order as stored, with its item rows
left raw so the normalizer can reject bad rows one by one.
``CompletedOrder`` is the finalized order written at checkout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pos_cart.domain.model.discount import Discount, DiscountKind, DiscountSpec
from pos_cart.domain.model.line_item import LineItem
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY, Money


@dataclass
class CurrentOrderRecord:
    """An operator's open order as the order-fetch collaborator returns it."""

    id: str
    operator_id: str
    items: list[dict[str, Any]] = field(default_factory=list)
    customer_id: str | None = None
    table_id: str | None = None
    is_on_hold: bool = False
    discount_kind: str | None = None
    discount_value: str | None = None
    discount_reason: str | None = None
    discount_applied_by: str | None = None
    discount_applied_at: datetime | None = None
    currency: str = DEFAULT_CURRENCY
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def discount_spec(self) -> DiscountSpec | None:
        if not self.discount_kind:
            return None
        return DiscountSpec(
            kind=DiscountKind(self.discount_kind),
            value=Decimal(self.discount_value or "0"),
            reason=self.discount_reason,
        )


class CompletedOrderStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class CompletedOrder:
    """A finalized order.

    Written ``pending`` first; the discount write that closes the finalize
    sequence flips it to ``completed``.
    """

    id: int | None
    operator_id: str
    source_order_id: str | None
    items: list[LineItem]
    customer_id: str | None = None
    table_id: str | None = None
    subtotal: Money = field(default_factory=Money.zero)
    discount: Discount | None = None
    discount_amount: Money = field(default_factory=Money.zero)
    total: Money = field(default_factory=Money.zero)
    payment_method: str | None = None
    amount_tendered: Money | None = None
    change: Money | None = None
    status: CompletedOrderStatus = CompletedOrderStatus.PENDING
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
