"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CartLineDTO:
    """Output: a single cart line as displayed to the operator."""

    id: str
    item_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "75.00"
    subtotal: str
    notes: str | None
    is_package: bool


@dataclass(frozen=True)
class CartDTO:
    """Output: the operator's cart."""

    operator_id: str
    state: str
    order_id: str | None
    customer_id: str | None
    table_id: str | None
    items: list[CartLineDTO]
    item_count: int
    subtotal: str
    discount: str | None  # e.g. "percentage 10 (happy hour)"
    discount_amount: str
    total: str


@dataclass(frozen=True)
class CompletedOrderDTO:
    """Output: a finalized order / receipt."""

    id: int
    operator_id: str
    status: str
    customer_id: str | None
    table_id: str | None
    items: list[CartLineDTO]
    subtotal: str
    discount: str | None
    discount_amount: str
    total: str
    payment_method: str | None
    amount_tendered: str | None
    change: str | None
    completed_at: str
