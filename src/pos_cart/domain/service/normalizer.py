"""Domain service: Order-Item Normalizer.

Converts persisted item rows into LineItems.  A bad row is reported and
skipped; it never stops the rest of the cart from being restored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from pos_cart.domain.exceptions import DomainException, MalformedRecordError
from pos_cart.domain.model.line_item import LineItem
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizationResult:
    items: list[LineItem]
    rejected: list[MalformedRecordError] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.rejected)


def normalize_items(
    rows: Iterable[Mapping[str, Any]],
    currency: str = DEFAULT_CURRENCY,
) -> NormalizationResult:
    items: list[LineItem] = []
    rejected: list[MalformedRecordError] = []

    for position, row in enumerate(rows):
        try:
            items.append(normalize_item(row, currency))
        except MalformedRecordError as exc:
            logger.warning("Skipping item row %d: %s", position, exc)
            rejected.append(exc)

    return NormalizationResult(items=items, rejected=rejected)


def normalize_item(row: Mapping[str, Any], currency: str = DEFAULT_CURRENCY) -> LineItem:
    """Build one LineItem from a persisted row, or raise MalformedRecordError."""
    if not isinstance(row, Mapping):
        raise MalformedRecordError(f"Item row must be a mapping, got {type(row).__name__}")

    row_id = row.get("id")
    if row_id in (None, ""):
        raise MalformedRecordError("Item row has no id")

    try:
        quantity = Quantity(_as_int(row, "quantity"))
        unit_price = Money(_as_decimal(row, "unit_price"), currency)
        discount = Money(_as_decimal(row, "discount_amount", default="0"), currency)
    except MalformedRecordError as exc:
        exc.row_id = row_id
        raise
    except DomainException as exc:
        raise MalformedRecordError(f"Item {row_id}: {exc}", row_id=row_id) from exc

    product_id = row.get("product_id") or row.get("package_id")
    if not product_id:
        raise MalformedRecordError(f"Item {row_id} has no product reference", row_id=row_id)

    item = LineItem(
        id=str(row_id),
        product_id=str(product_id),
        item_name=str(row.get("item_name") or ""),
        quantity=quantity,
        unit_price=unit_price,
        discount=discount,
        notes=row.get("notes") or None,
        is_package=bool(row.get("is_package") or row.get("package_id")),
    )

    stored = row.get("subtotal")
    if stored is not None:
        try:
            matches = Decimal(str(stored)) == item.gross.amount
        except (InvalidOperation, ValueError):
            matches = False
        if not matches:
            logger.warning(
                "Item %s stored subtotal %s differs from %s; using the computed value",
                row_id, stored, item.gross,
            )

    return item


def _as_decimal(row: Mapping[str, Any], key: str, default: str | None = None) -> Decimal:
    raw = row.get(key, default)
    if raw is None or isinstance(raw, bool):
        raise MalformedRecordError(f"Item {row.get('id')} has no {key}", row_id=row.get("id"))
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise MalformedRecordError(
            f"Item {row.get('id')} has a non-numeric {key}: {raw!r}", row_id=row.get("id")
        ) from exc
    if not value.is_finite():
        raise MalformedRecordError(
            f"Item {row.get('id')} has a non-numeric {key}: {raw!r}", row_id=row.get("id")
        )
    return value


def _as_int(row: Mapping[str, Any], key: str) -> int:
    value = _as_decimal(row, key)
    if value != value.to_integral_value():
        raise MalformedRecordError(
            f"Item {row.get('id')} has a fractional {key}: {value}", row_id=row.get("id")
        )
    return int(value)
