"""Session aggregate — the operator's single open cart.

The Session owns its line items.  Customer and table are held only as
foreign ids; those records belong to other parts of the POS.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pos_cart.domain.exceptions import (
    EntityNotFoundError,
    InvalidQuantityError,
    ValidationError,
)
from pos_cart.domain.model.discount import DiscountSpec
from pos_cart.domain.model.line_item import LineItem
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity
from pos_cart.domain.service.discount_calculator import compute_discount


class CartState(Enum):
    UNINITIALIZED = "UNINITIALIZED"
    LOADING = "LOADING"
    RESTORED = "RESTORED"
    EMPTY = "EMPTY"
    ACTIVE = "ACTIVE"
    FINALIZING = "FINALIZING"
    FINALIZED = "FINALIZED"


# States in which the cart contents are known and may be changed.
MUTABLE_STATES = frozenset(
    {CartState.RESTORED, CartState.EMPTY, CartState.ACTIVE, CartState.FINALIZED}
)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a Session, used for persistence and display."""

    operator_id: str
    order_id: str | None
    items: tuple[LineItem, ...]
    customer_id: str | None
    table_id: str | None
    discount: DiscountSpec | None
    discount_applied_by: str | None
    discount_applied_at: datetime | None
    state: CartState
    currency: str

    @property
    def subtotal(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + item.subtotal
        return result

    @property
    def discount_amount(self) -> Money:
        if self.discount is None:
            return Money.zero(self.currency)
        return compute_discount(self.subtotal, self.discount)

    @property
    def total(self) -> Money:
        return self.subtotal - self.discount_amount

    @property
    def item_count(self) -> int:
        return sum(item.quantity.value for item in self.items)


@dataclass
class Session:
    """Aggregate root for a cart.

    Invariants:
    - every line subtotal is derived from quantity and unit price
    - line ids are unique within the session
    - a session with no items and no ``order_id`` is the same as no session
    """

    operator_id: str
    items: list[LineItem] = field(default_factory=list)
    customer_id: str | None = None
    table_id: str | None = None
    discount: DiscountSpec | None = None
    discount_applied_by: str | None = None
    discount_applied_at: datetime | None = None
    order_id: str | None = None
    state: CartState = CartState.UNINITIALIZED
    loaded: bool = False
    currency: str = DEFAULT_CURRENCY

    # --- Mutations ------------------------------------------------------------

    def add_item(self, item: LineItem) -> None:
        if any(existing.id == item.id for existing in self.items):
            raise ValidationError(f"Line '{item.id}' is already in the cart")
        self.items.append(item)

    def update_quantity(self, item_id: str, quantity: int) -> LineItem:
        """Replace the quantity of a line.  Zero or less is rejected."""
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise InvalidQuantityError(
                f"Quantity must be a positive integer, got {quantity!r}"
            )
        index = self._index_of(item_id)
        updated = self.items[index].with_quantity(Quantity(quantity))
        self.items[index] = updated
        return updated

    def update_notes(self, item_id: str, notes: str | None) -> LineItem:
        index = self._index_of(item_id)
        updated = self.items[index].with_notes(notes or None)
        self.items[index] = updated
        return updated

    def remove_item(self, item_id: str) -> LineItem:
        return self.items.pop(self._index_of(item_id))

    def set_customer(self, customer_id: str | None) -> None:
        self.customer_id = customer_id

    def set_table(self, table_id: str | None) -> None:
        self.table_id = table_id

    def set_discount(
        self,
        spec: DiscountSpec | None,
        applied_by: str | None = None,
        applied_at: datetime | None = None,
    ) -> None:
        self.discount = spec
        self.discount_applied_by = applied_by if spec else None
        self.discount_applied_at = applied_at if spec else None

    def clear(self) -> str | None:
        """Empty the cart.

        Returns the persisted order id that must be deleted, if any.  The
        ``loaded`` flag is kept so a new cart can be started straight away.
        """
        order_id = self.order_id
        self.items = []
        self.customer_id = None
        self.table_id = None
        self.set_discount(None)
        self.order_id = None
        return order_id

    # --- Lookups --------------------------------------------------------------

    def find_item(self, item_id: str) -> LineItem:
        return self.items[self._index_of(item_id)]

    def find_mergeable(self, product_id: str) -> LineItem | None:
        """Return the product line a new add should be merged into.

        Packages never merge; each one is its own line.
        """
        for item in self.items:
            if not item.is_package and item.product_id == product_id:
                return item
        return None

    @property
    def is_empty(self) -> bool:
        return not self.items and self.order_id is None

    # --- Snapshots ------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            operator_id=self.operator_id,
            order_id=self.order_id,
            items=tuple(self.items),
            customer_id=self.customer_id,
            table_id=self.table_id,
            discount=self.discount,
            discount_applied_by=self.discount_applied_by,
            discount_applied_at=self.discount_applied_at,
            state=self.state,
            currency=self.currency,
        )

    def restore_from(self, snapshot: SessionSnapshot) -> None:
        """Put the session back exactly as *snapshot* describes it."""
        self.order_id = snapshot.order_id
        self.items = list(snapshot.items)
        self.customer_id = snapshot.customer_id
        self.table_id = snapshot.table_id
        self.discount = snapshot.discount
        self.discount_applied_by = snapshot.discount_applied_by
        self.discount_applied_at = snapshot.discount_applied_at
        self.state = snapshot.state

    # --- Internal helpers -----------------------------------------------------

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        raise EntityNotFoundError(f"Item '{item_id}' is not in the cart")
