"""Abstract repository for open (current) orders.

This is the durable side of the cart.  Every write is expected to be
confirmed before it returns; implementations raise PersistenceWriteError
when it is not, and FetchFailureError when a read fails.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pos_cart.domain.model.discount import DiscountSpec
from pos_cart.domain.model.records import CurrentOrderRecord
from pos_cart.domain.model.value_objects import Money


class CurrentOrderRepository(ABC):

    # --- Reads ----------------------------------------------------------------

    @abstractmethod
    def list_open(self, operator_id: str) -> list[CurrentOrderRecord]:
        """Return every open order of the operator, held ones included."""

    @abstractmethod
    def get(self, operator_id: str, order_id: str) -> CurrentOrderRecord | None:
        """Return one open order of the operator, or None."""

    # --- Writes ---------------------------------------------------------------

    @abstractmethod
    def create(
        self,
        operator_id: str,
        customer_id: str | None = None,
        table_id: str | None = None,
    ) -> CurrentOrderRecord:
        """Create an empty open order and return it with its new id."""

    @abstractmethod
    def add_item(self, order_id: str, row: dict[str, Any]) -> str:
        """Insert an item row and return its generated id."""

    @abstractmethod
    def update_item(
        self,
        order_id: str,
        item_id: str,
        quantity: int,
        subtotal: Money,
        notes: str | None,
    ) -> None:
        """Overwrite quantity, subtotal and notes of an item row."""

    @abstractmethod
    def remove_item(self, order_id: str, item_id: str) -> None:
        """Delete an item row."""

    @abstractmethod
    def assign_customer(self, order_id: str, customer_id: str | None) -> None: ...

    @abstractmethod
    def assign_table(self, order_id: str, table_id: str | None) -> None: ...

    @abstractmethod
    def apply_discount(
        self,
        order_id: str,
        spec: DiscountSpec | None,
        amount: Money,
        applied_by: str | None,
    ) -> None:
        """Store the discount spec and its current amount (None removes it)."""

    @abstractmethod
    def set_hold(self, order_id: str, on_hold: bool) -> None:
        """Park or un-park an order."""

    @abstractmethod
    def delete(self, order_id: str) -> None:
        """Delete an open order and all of its items."""
