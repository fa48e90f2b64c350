"""LineItem — one product or package entry in a cart."""

from __future__ import annotations

from dataclasses import dataclass, replace

from pos_cart.domain.model.value_objects import Money, Quantity


@dataclass(frozen=True)
class LineItem:
    """A product or package line with a locked unit price.

    ``id`` is the identity of the persisted item row, so it stays stable
    across restores.  The subtotal is always derived from quantity and
    unit price; there is no way to set it directly.
    """

    id: str
    product_id: str
    item_name: str
    quantity: Quantity
    unit_price: Money  # snapshot taken when the item was added
    discount: Money | None = None  # None means no line discount
    notes: str | None = None
    is_package: bool = False

    @property
    def gross(self) -> Money:
        return self.unit_price * self.quantity.value

    @property
    def line_discount(self) -> Money:
        if self.discount is None:
            return Money.zero(self.unit_price.currency)
        return self.discount

    @property
    def subtotal(self) -> Money:
        return self.gross.minus_floor_zero(self.line_discount)

    def with_quantity(self, quantity: Quantity) -> LineItem:
        return replace(self, quantity=quantity)

    def with_notes(self, notes: str | None) -> LineItem:
        return replace(self, notes=notes)
