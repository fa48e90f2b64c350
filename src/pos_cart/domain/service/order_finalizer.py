"""Domain service: Order Finalizer.

Writes a cart out as a completed order.  The completed-order store owns a
totals recomputation that rebuilds subtotal and total from the item rows
and resets the discount fields while doing so.  Any discount written
before that recomputation is lost, so the sequence is fixed:

  Phase 1 — totals:   create the pending order, then recompute totals.
  Phase 2 — discount: record the discount.  This is the last write.

If a step after the pending order was created fails, the pending order is
discarded so a retry starts from a clean slate instead of leaving an orphan.

The steps are built as an explicit list and run in order; the discount
step is appended after every other step has been scheduled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from pos_cart.domain.exceptions import ValidationError
from pos_cart.domain.model.discount import Discount
from pos_cart.domain.model.records import CompletedOrder
from pos_cart.domain.repository.completed_order_repository import (
    CompletedOrderRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizeStep:
    name: str
    run: Callable[[], None]


class OrderFinalizer:

    def __init__(self, completed_repo: CompletedOrderRepository) -> None:
        self._completed_repo = completed_repo

    def finalize(self, order: CompletedOrder, discount: Discount | None) -> CompletedOrder:
        """Persist *order* and return it as stored after the final write."""
        if not order.items:
            raise ValidationError("Cannot finalize an order with no items")

        order_id = self._completed_repo.create_pending(order)
        order.id = order_id

        try:
            for step in self.plan(order_id, discount):
                logger.debug("Finalize order #%s: %s", order_id, step.name)
                step.run()
        except Exception:
            self._discard(order_id)
            raise

        stored = self._completed_repo.get_by_id(order_id)
        if stored is None:
            raise ValidationError(f"Completed order #{order_id} disappeared after finalize")
        return stored

    def plan(self, order_id: int, discount: Discount | None) -> list[FinalizeStep]:
        """Return the remaining write steps for *order_id*, discount last."""
        steps = [
            FinalizeStep(
                "recompute totals",
                lambda: self._completed_repo.recompute_totals(order_id),
            ),
        ]
        steps.append(
            FinalizeStep(
                "record discount",
                lambda: self._completed_repo.record_discount(order_id, discount),
            )
        )
        return steps

    def _discard(self, order_id: int) -> None:
        try:
            self._completed_repo.discard_pending(order_id)
        except Exception as exc:
            logger.error("Pending order #%s left behind, discard failed: %s", order_id, exc)
        else:
            logger.info("Discarded pending order #%s after a failed finalize", order_id)
