"""Application service: Reconciliation Controller.

Restores an operator's cart from the open order in durable storage, keeps
the two in step on every change, and runs checkout.

State machine per operator::

    UNINITIALIZED -> LOADING -> RESTORED | EMPTY -> ACTIVE
    ACTIVE -> FINALIZING -> FINALIZED

Restore runs once per loaded cart; later calls return without fetching.
Every change is written through: the durable write must confirm before the
call returns, and if it does not the in-memory cart is put back the way it
was and any earlier write of the same change is undone.  A failed fetch
leaves the cart UNINITIALIZED so the caller can retry; it is never
reported as an empty cart.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import TypeVar

from pos_cart.application.session_store import SessionStore
from pos_cart.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    FinalizeConflictError,
    InvalidStateError,
    MultipleOpenOrdersError,
    PersistenceWriteError,
    RestoreCancelledError,
    ValidationError,
)
from pos_cart.domain.model.discount import Discount, DiscountSpec
from pos_cart.domain.model.line_item import LineItem
from pos_cart.domain.model.product import Product
from pos_cart.domain.model.records import CompletedOrder, CurrentOrderRecord
from pos_cart.domain.model.session import (
    MUTABLE_STATES,
    CartState,
    Session,
    SessionSnapshot,
)
from pos_cart.domain.model.value_objects import Money, Quantity
from pos_cart.domain.repository.completed_order_repository import (
    CompletedOrderRepository,
)
from pos_cart.domain.repository.current_order_repository import (
    CurrentOrderRepository,
)
from pos_cart.domain.service.normalizer import NormalizationResult, normalize_items
from pos_cart.domain.service.order_finalizer import OrderFinalizer

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RestoreResult:
    state: CartState
    order_id: str | None
    item_count: int
    skipped: int = 0
    fetched: bool = True


class WriteLog:
    """Durable writes confirmed during one change, each with its undo."""

    def __init__(self, before: SessionSnapshot) -> None:
        self.before = before
        self._undo: list[tuple[str, Callable[[], None]]] = []

    def done(self, name: str, undo: Callable[[], None]) -> None:
        self._undo.append((name, undo))

    def undo(self) -> None:
        while self._undo:
            name, action = self._undo.pop()
            logger.debug("Undoing %s", name)
            action()


class ReconciliationController:

    def __init__(
        self,
        store: SessionStore,
        current_orders: CurrentOrderRepository,
        completed_orders: CompletedOrderRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._current_orders = current_orders
        self._finalizer = OrderFinalizer(completed_orders)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # --- Restore --------------------------------------------------------------

    def restore(self, operator_id: str, cancel: threading.Event | None = None) -> RestoreResult:
        """Load the operator's open order into the cart, once.

        If *cancel* is set by the time the fetch returns, nothing is applied
        and RestoreCancelledError is raised; the cart stays UNINITIALIZED.
        """
        with self._store.lock(operator_id):
            session = self._store.get(operator_id)
            if session.loaded:
                logger.debug("Cart for %s already loaded, skipping restore", operator_id)
                return RestoreResult(
                    state=session.state,
                    order_id=session.order_id,
                    item_count=len(session.items),
                    fetched=False,
                )

            session.state = CartState.LOADING
            try:
                record, normalized = self._fetch_active(operator_id, session.currency)
                if cancel is not None and cancel.is_set():
                    raise RestoreCancelledError(f"Restore for {operator_id} was cancelled")
            except Exception:
                session.state = CartState.UNINITIALIZED
                raise

            state = CartState.RESTORED if normalized.items else CartState.EMPTY
            session.restore_from(self._snapshot_from(operator_id, record, normalized, state, session.currency))
            session.loaded = True

            logger.info(
                "Restored cart for %s: state=%s order=%s items=%d skipped=%d",
                operator_id, state.value, session.order_id, len(normalized.items),
                normalized.skipped_count,
            )
            return RestoreResult(
                state=state,
                order_id=session.order_id,
                item_count=len(normalized.items),
                skipped=normalized.skipped_count,
            )

    def _fetch_active(
        self, operator_id: str, currency: str
    ) -> tuple[CurrentOrderRecord | None, NormalizationResult]:
        orders = self._current_orders.list_open(operator_id)
        active = [order for order in orders if not order.is_on_hold]
        if len(active) > 1:
            raise MultipleOpenOrdersError(
                f"Operator {operator_id} has {len(active)} open orders "
                f"({', '.join(order.id for order in active)})"
            )
        if not active:
            return None, NormalizationResult(items=[])
        record = active[0]
        return record, normalize_items(record.items, currency)

    @staticmethod
    def _snapshot_from(
        operator_id: str,
        record: CurrentOrderRecord | None,
        normalized: NormalizationResult,
        state: CartState,
        currency: str,
    ) -> SessionSnapshot:
        if record is None:
            return SessionSnapshot(
                operator_id=operator_id, order_id=None, items=(), customer_id=None,
                table_id=None, discount=None, discount_applied_by=None,
                discount_applied_at=None, state=state, currency=currency,
            )
        try:
            discount = record.discount_spec
        except (DomainException, ValueError, ArithmeticError):
            logger.warning("Order %s has an unreadable discount; dropping it", record.id)
            discount = None
        return SessionSnapshot(
            operator_id=operator_id,
            order_id=record.id,
            items=tuple(normalized.items),
            customer_id=record.customer_id,
            table_id=record.table_id,
            discount=discount,
            discount_applied_by=record.discount_applied_by if discount else None,
            discount_applied_at=record.discount_applied_at if discount else None,
            state=state,
            currency=currency,
        )

    # --- Queries --------------------------------------------------------------

    def snapshot(self, operator_id: str) -> SessionSnapshot:
        with self._store.lock(operator_id):
            return self._store.get(operator_id).snapshot()

    def state(self, operator_id: str) -> CartState:
        return self.snapshot(operator_id).state

    def list_held(self, operator_id: str) -> list[CurrentOrderRecord]:
        return [order for order in self._current_orders.list_open(operator_id) if order.is_on_hold]

    # --- Item mutations -------------------------------------------------------

    def add_item(
        self,
        operator_id: str,
        product: Product,
        quantity: int = 1,
        notes: str | None = None,
    ) -> LineItem:
        """Add a product to the cart.

        A product already in the cart gets its quantity increased; packages
        are always added as a new line.
        """
        qty = Quantity(quantity)

        with self._session(operator_id) as session:
            self._ensure_order(session)

            def apply(session: Session, writes: WriteLog) -> LineItem:
                existing = None if product.is_package else session.find_mergeable(product.id)
                if existing is not None:
                    item = session.update_quantity(existing.id, existing.quantity.value + qty.value)
                    if notes:
                        item = session.update_notes(existing.id, notes)
                    self._write_line(session.order_id, item, writes, previous=existing)
                else:
                    gross = product.price * qty.value
                    item_id = self._current_orders.add_item(
                        session.order_id,
                        {
                            "product_id": None if product.is_package else product.id,
                            "package_id": product.id if product.is_package else None,
                            "item_name": product.name,
                            "quantity": qty.value,
                            "unit_price": str(product.price.amount),
                            "subtotal": str(gross.amount),
                            "discount_amount": "0",
                            "total": str(gross.amount),
                            "notes": notes or None,
                            "is_package": product.is_package,
                        },
                    )
                    order_id = session.order_id
                    writes.done(
                        "add item",
                        lambda: self._current_orders.remove_item(order_id, item_id),
                    )
                    item = LineItem(
                        id=item_id,
                        product_id=product.id,
                        item_name=product.name,
                        quantity=qty,
                        unit_price=product.price,
                        notes=notes or None,
                        is_package=product.is_package,
                    )
                    session.add_item(item)
                self._sync_discount(session, writes)
                return item

            return self._write_through(session, "add item", apply)

    def update_quantity(self, operator_id: str, item_id: str, quantity: int) -> LineItem:
        with self._session(operator_id) as session:

            def apply(session: Session, writes: WriteLog) -> LineItem:
                previous = session.find_item(item_id)
                item = session.update_quantity(item_id, quantity)
                self._write_line(session.order_id, item, writes, previous=previous)
                self._sync_discount(session, writes)
                return item

            return self._write_through(session, "update quantity", apply)

    def update_notes(self, operator_id: str, item_id: str, notes: str | None) -> LineItem:
        with self._session(operator_id) as session:

            def apply(session: Session, writes: WriteLog) -> LineItem:
                item = session.update_notes(item_id, notes)
                self._write_line(session.order_id, item, writes)
                return item

            return self._write_through(session, "update notes", apply)

    def remove_item(self, operator_id: str, item_id: str) -> LineItem:
        """Remove a line.

        A removed row cannot be put back under its old id, so the discount is
        rewritten first and the row delete is the last write.
        """
        with self._session(operator_id) as session:

            def apply(session: Session, writes: WriteLog) -> LineItem:
                item = session.remove_item(item_id)
                self._sync_discount(session, writes)
                self._current_orders.remove_item(session.order_id, item_id)
                return item

            return self._write_through(session, "remove item", apply)

    # --- Order-level mutations ------------------------------------------------

    def set_customer(self, operator_id: str, customer_id: str | None) -> None:
        with self._session(operator_id) as session:
            self._ensure_order(session)

            def apply(session: Session, writes: WriteLog) -> None:
                session.set_customer(customer_id)
                self._current_orders.assign_customer(session.order_id, customer_id)

            self._write_through(session, "set customer", apply)

    def set_table(self, operator_id: str, table_id: str | None) -> None:
        with self._session(operator_id) as session:
            self._ensure_order(session)

            def apply(session: Session, writes: WriteLog) -> None:
                session.set_table(table_id)
                self._current_orders.assign_table(session.order_id, table_id)

            self._write_through(session, "set table", apply)

    def apply_discount(self, operator_id: str, spec: DiscountSpec) -> Money:
        """Attach *spec* to the cart and return the amount it currently gives."""
        with self._session(operator_id) as session:
            self._ensure_order(session)

            def apply(session: Session, writes: WriteLog) -> Money:
                session.set_discount(spec, applied_by=operator_id, applied_at=self._clock())
                amount = session.snapshot().discount_amount
                self._current_orders.apply_discount(session.order_id, spec, amount, operator_id)
                return amount

            return self._write_through(session, "apply discount", apply)

    def remove_discount(self, operator_id: str) -> None:
        with self._session(operator_id) as session:
            if session.discount is None:
                return

            def apply(session: Session, writes: WriteLog) -> None:
                session.set_discount(None)
                self._current_orders.apply_discount(
                    session.order_id, None, Money.zero(session.currency), None,
                )

            self._write_through(session, "remove discount", apply)

    def clear(self, operator_id: str) -> None:
        """Empty the cart and delete its persisted order."""
        with self._session(operator_id) as session:

            def apply(session: Session, writes: WriteLog) -> None:
                order_id = session.clear()
                if order_id is not None:
                    self._current_orders.delete(order_id)

            self._write_through(session, "clear", apply)
            session.state = CartState.EMPTY

    # --- Hold / resume --------------------------------------------------------

    def hold(self, operator_id: str) -> str:
        """Park the current order and start over with an empty cart."""
        with self._session(operator_id) as session:
            if not session.items or session.order_id is None:
                raise ValidationError("Cart is empty; nothing to hold")

            def apply(session: Session, writes: WriteLog) -> str:
                order_id = session.clear()
                self._current_orders.set_hold(order_id, True)
                return order_id

            order_id = self._write_through(session, "hold", apply)
            session.state = CartState.EMPTY
            logger.info("Operator %s put order %s on hold", operator_id, order_id)
            return order_id

    def resume(self, operator_id: str, order_id: str) -> RestoreResult:
        """Bring a held order back as the cart.  The cart must have no items."""
        with self._session(operator_id) as session:
            if session.items:
                raise ValidationError("Hold or clear the current cart before resuming another order")

            record = self._current_orders.get(operator_id, order_id)
            if record is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            if not record.is_on_hold:
                raise ValidationError(f"Order {order_id} is not on hold")
            normalized = normalize_items(record.items, session.currency)

            if session.order_id is not None:
                # An empty open order would become a second active order.
                self.clear(operator_id)

            def apply(session: Session, writes: WriteLog) -> None:
                self._current_orders.set_hold(record.id, False)
                session.restore_from(
                    self._snapshot_from(
                        operator_id, record, normalized, session.state, session.currency,
                    )
                )

            self._write_through(session, "resume", apply)
            logger.info("Operator %s resumed order %s", operator_id, record.id)
            return RestoreResult(
                state=session.state,
                order_id=session.order_id,
                item_count=len(normalized.items),
                skipped=normalized.skipped_count,
            )

    # --- Finalize -------------------------------------------------------------

    def finalize(
        self,
        operator_id: str,
        payment_method: str | None = None,
        amount_tendered: str | Decimal | None = None,
    ) -> CompletedOrder:
        """Check out the cart.

        Steps:
        1. Reject an empty cart and a tender below the total.
        2. Re-read the persisted order; if it no longer matches, abort with
           FinalizeConflictError and require a reload.
        3. Write the completed order, discount last (see OrderFinalizer).
        4. Delete the open order and clear the cart.
        """
        with self._session(operator_id) as session:
            if not session.items:
                raise ValidationError("Cart is empty; nothing to finalize")

            snapshot = session.snapshot()
            total = snapshot.total
            tendered = None
            change = None
            if amount_tendered is not None:
                tendered = Money.of(amount_tendered, snapshot.currency)
                if tendered < total:
                    raise ValidationError(
                        f"Amount tendered {tendered} is less than the total {total}"
                    )
                change = tendered - total

            self._check_matches_persisted(session, snapshot)

            session.state = CartState.FINALIZING
            discount = None
            if snapshot.discount is not None:
                discount = Discount(
                    kind=snapshot.discount.kind,
                    value=snapshot.discount.value,
                    amount=snapshot.discount_amount,
                    reason=snapshot.discount.reason,
                    applied_by=snapshot.discount_applied_by or operator_id,
                    applied_at=snapshot.discount_applied_at or self._clock(),
                )
            order = CompletedOrder(
                id=None,
                operator_id=operator_id,
                source_order_id=snapshot.order_id,
                items=list(snapshot.items),
                customer_id=snapshot.customer_id,
                table_id=snapshot.table_id,
                subtotal=snapshot.subtotal,
                payment_method=payment_method,
                amount_tendered=tendered,
                change=change,
                completed_at=self._clock(),
            )

            try:
                completed = self._finalizer.finalize(order, discount)
            except Exception as exc:
                session.state = snapshot.state
                logger.warning("Finalize for %s failed; cart kept: %s", operator_id, exc)
                raise

            try:
                self._current_orders.delete(snapshot.order_id)
            except Exception:
                self._force_reload(session)
                logger.error(
                    "Order #%s completed but open order %s could not be deleted",
                    completed.id, snapshot.order_id,
                )
                raise

            session.clear()
            session.state = CartState.FINALIZED
            logger.info(
                "Operator %s finalized order #%s total=%s discount=%s",
                operator_id, completed.id, completed.total, completed.discount_amount,
            )
            return completed

    def _check_matches_persisted(self, session: Session, snapshot: SessionSnapshot) -> None:
        record = None
        if snapshot.order_id is not None:
            record = self._current_orders.get(snapshot.operator_id, snapshot.order_id)

        problem = None
        if record is None:
            problem = "the open order no longer exists"
        elif record.is_on_hold:
            problem = "the open order was put on hold"
        else:
            persisted = normalize_items(record.items, snapshot.currency)
            if persisted.rejected or _item_keys(persisted.items) != _item_keys(snapshot.items):
                problem = "its items were changed elsewhere"
            elif (record.customer_id, record.table_id) != (snapshot.customer_id, snapshot.table_id):
                problem = "its customer or table was changed elsewhere"

        if problem is not None:
            self._force_reload(session)
            raise FinalizeConflictError(
                f"Cannot finalize: {problem}. Reload the cart and try again."
            )

    # --- Internal helpers -----------------------------------------------------

    @contextmanager
    def _session(self, operator_id: str) -> Iterator[Session]:
        with self._store.lock(operator_id):
            session = self._store.get(operator_id)
            if session.state not in MUTABLE_STATES:
                if session.state is CartState.FINALIZING:
                    raise InvalidStateError("Cart is being finalized")
                raise InvalidStateError(
                    f"Cart for {operator_id} has not been restored; restore it first"
                )
            yield session

    def _write_through(
        self, session: Session, action: str, apply: Callable[[Session, WriteLog], T]
    ) -> T:
        """Run *apply*; on any error put the cart and durable storage back.

        Durable writes that already confirmed are undone newest first.  If an
        undo fails too, the cart no longer matches storage and is marked for
        reload.
        """
        before = session.snapshot()
        writes = WriteLog(before)
        try:
            result = apply(session, writes)
        except Exception as exc:
            session.restore_from(before)
            if isinstance(exc, PersistenceWriteError):
                logger.warning(
                    "Rolled back %s for %s after failed write: %s",
                    action, session.operator_id, exc,
                )
            try:
                writes.undo()
            except Exception as undo_exc:
                self._force_reload(session)
                logger.error(
                    "Could not undo %s for %s; cart must be reloaded: %s",
                    action, session.operator_id, undo_exc,
                )
            raise
        session.state = CartState.ACTIVE
        return result

    def _ensure_order(self, session: Session) -> None:
        """Create the persisted open order on the first change."""
        if session.order_id is not None:
            return
        record = self._current_orders.create(
            session.operator_id, session.customer_id, session.table_id,
        )
        session.order_id = record.id
        logger.info("Created open order %s for %s", record.id, session.operator_id)

    def _write_line(
        self,
        order_id: str,
        item: LineItem,
        writes: WriteLog,
        previous: LineItem | None = None,
    ) -> None:
        self._current_orders.update_item(
            order_id, item.id, item.quantity.value, item.subtotal, item.notes,
        )
        if previous is not None:
            writes.done(
                "update item",
                lambda: self._current_orders.update_item(
                    order_id, previous.id, previous.quantity.value,
                    previous.subtotal, previous.notes,
                ),
            )

    def _sync_discount(self, session: Session, writes: WriteLog) -> None:
        """Rewrite the order's discount amount after the items changed."""
        if session.discount is None:
            return
        order_id = session.order_id
        self._current_orders.apply_discount(
            order_id,
            session.discount,
            session.snapshot().discount_amount,
            session.discount_applied_by,
        )
        before = writes.before
        writes.done(
            "sync discount",
            lambda: self._current_orders.apply_discount(
                order_id, before.discount, before.discount_amount, before.discount_applied_by,
            ),
        )

    @staticmethod
    def _force_reload(session: Session) -> None:
        session.loaded = False
        session.state = CartState.UNINITIALIZED


def _item_keys(items) -> list[tuple[str, int, Decimal]]:
    return sorted((item.id, item.quantity.value, item.unit_price.amount) for item in items)
