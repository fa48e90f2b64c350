"""Abstract repository for finalized orders.

The write methods are the steps of the finalize sequence.  Their order is
decided by OrderFinalizer, not by the repository.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pos_cart.domain.model.discount import Discount
from pos_cart.domain.model.records import CompletedOrder


class CompletedOrderRepository(ABC):

    @abstractmethod
    def create_pending(self, order: CompletedOrder) -> int:
        """Write items, subtotal and payment details; assign and return the id."""

    @abstractmethod
    def recompute_totals(self, order_id: int) -> None:
        """Rebuild derived totals from the stored item rows.

        Implementations may reset the discount fields while doing so.
        """

    @abstractmethod
    def record_discount(self, order_id: int, discount: Discount | None) -> None:
        """Final write: store the discount, the net total and mark completed."""

    @abstractmethod
    def discard_pending(self, order_id: int) -> None:
        """Delete an order that never reached completed.

        Completed orders are never discarded.
        """

    @abstractmethod
    def get_by_id(self, order_id: int) -> CompletedOrder | None:
        """Return a finalized order by its id, or None."""

    @abstractmethod
    def list_by_operator(self, operator_id: str) -> list[CompletedOrder]:
        """Return the operator's finalized orders, oldest first."""
