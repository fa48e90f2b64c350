"""Tests for restoring an operator's cart from the persisted open order.

Uses in-memory fake repositories — no file I/O.
"""

import threading

import pytest

from pos_cart.application.reconciliation_controller import ReconciliationController
from pos_cart.application.session_store import SessionStore
from pos_cart.domain.exceptions import (
    FetchFailureError,
    InvalidStateError,
    MultipleOpenOrdersError,
    RestoreCancelledError,
)
from pos_cart.domain.model.session import CartState
from pos_cart.domain.model.value_objects import Money
from tests.fakes import (
    FakeCompletedOrderRepository,
    FakeCurrentOrderRepository,
    item_row,
    open_order,
    three_item_order,
)

OPERATOR = "cashier-1"


def _setup(orders=None) -> tuple[ReconciliationController, FakeCurrentOrderRepository]:
    current = FakeCurrentOrderRepository(orders)
    controller = ReconciliationController(SessionStore(), current, FakeCompletedOrderRepository())
    return controller, current


class TestRestoreOutcomes:

    def test_open_order_is_restored(self):
        controller, _ = _setup([three_item_order()])

        result = controller.restore(OPERATOR)

        assert result.state is CartState.RESTORED
        assert result.order_id == "order-A"
        assert result.item_count == 3
        snapshot = controller.snapshot(OPERATOR)
        assert [i.id for i in snapshot.items] == ["row-1", "row-2", "row-3"]
        assert snapshot.subtotal == Money.of("300.00")

    def test_no_open_order_gives_empty_cart(self):
        controller, _ = _setup()

        result = controller.restore(OPERATOR)

        assert result.state is CartState.EMPTY
        assert result.order_id is None
        assert controller.snapshot(OPERATOR).items == ()

    def test_open_order_without_items_is_adopted(self):
        controller, _ = _setup([open_order("order-E", OPERATOR, [])])

        result = controller.restore(OPERATOR)

        assert result.state is CartState.EMPTY
        assert result.order_id == "order-E"

    def test_other_operators_orders_are_ignored(self):
        controller, _ = _setup([three_item_order(operator_id="cashier-2")])
        assert controller.restore(OPERATOR).state is CartState.EMPTY

    def test_customer_table_and_discount_are_restored(self):
        order = open_order(
            "order-A",
            OPERATOR,
            three_item_order().items,
            customer_id="cust-9",
            table_id="T4",
            discount_kind="percentage",
            discount_value="10",
            discount_reason="happy hour",
            discount_applied_by=OPERATOR,
        )
        controller, _ = _setup([order])

        controller.restore(OPERATOR)

        snapshot = controller.snapshot(OPERATOR)
        assert snapshot.customer_id == "cust-9"
        assert snapshot.table_id == "T4"
        assert snapshot.discount_amount == Money.of("30.00")
        assert snapshot.total == Money.of("270.00")

    def test_unreadable_discount_is_dropped(self):
        order = open_order(
            "order-A", OPERATOR, three_item_order().items,
            discount_kind="bogus", discount_value="10",
        )
        controller, _ = _setup([order])

        controller.restore(OPERATOR)

        assert controller.snapshot(OPERATOR).discount is None


class TestRestoreIdempotence:

    def test_second_restore_does_not_fetch(self):
        controller, current = _setup([three_item_order()])

        controller.restore(OPERATOR)
        second = controller.restore(OPERATOR)

        assert current.fetch_count == 1
        assert second.fetched is False
        assert second.order_id == "order-A"

    def test_restore_after_change_keeps_local_state(self):
        controller, current = _setup([three_item_order()])
        controller.restore(OPERATOR)
        controller.update_quantity(OPERATOR, "row-2", 3)

        # Someone edits the stored row; an already-loaded cart is not refetched.
        current.order("order-A").items[1]["quantity"] = 99
        controller.restore(OPERATOR)

        assert controller.snapshot(OPERATOR).items[1].quantity.value == 3


class TestRestoreFailures:

    def test_fetch_failure_leaves_cart_uninitialized(self):
        controller, current = _setup([three_item_order()])
        current.fail_reads = 1

        with pytest.raises(FetchFailureError):
            controller.restore(OPERATOR)

        assert controller.state(OPERATOR) is CartState.UNINITIALIZED
        assert controller.snapshot(OPERATOR).items == ()

    def test_fetch_failure_can_be_retried(self):
        controller, current = _setup([three_item_order()])
        current.fail_reads = 1

        with pytest.raises(FetchFailureError):
            controller.restore(OPERATOR)
        result = controller.restore(OPERATOR)

        assert result.state is CartState.RESTORED
        assert result.item_count == 3
        assert current.fetch_count == 2

    def test_mutation_before_restore_is_rejected(self):
        controller, current = _setup([three_item_order()])
        with pytest.raises(InvalidStateError, match="restore it first"):
            controller.update_quantity(OPERATOR, "row-1", 5)
        assert current.writes == []

    def test_mutation_after_failed_restore_is_rejected(self):
        controller, current = _setup([three_item_order()])
        current.fail_reads = 1
        with pytest.raises(FetchFailureError):
            controller.restore(OPERATOR)

        with pytest.raises(InvalidStateError):
            controller.set_table(OPERATOR, "T1")
        assert current.writes == []

    def test_multiple_open_orders_rejected(self):
        controller, _ = _setup([
            three_item_order(order_id="order-A"),
            three_item_order(order_id="order-B"),
        ])

        with pytest.raises(MultipleOpenOrdersError, match="order-A, order-B"):
            controller.restore(OPERATOR)

        assert controller.state(OPERATOR) is CartState.UNINITIALIZED

    def test_cancelled_restore_applies_nothing(self):
        controller, _ = _setup([three_item_order()])
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(RestoreCancelledError):
            controller.restore(OPERATOR, cancel=cancel)

        snapshot = controller.snapshot(OPERATOR)
        assert snapshot.state is CartState.UNINITIALIZED
        assert snapshot.order_id is None
        assert snapshot.items == ()


class TestRestoreWithHeldOrders:

    def test_held_order_is_not_restored(self):
        held = three_item_order(order_id="order-H")
        held.is_on_hold = True
        controller, _ = _setup([held])

        assert controller.restore(OPERATOR).state is CartState.EMPTY

    def test_held_order_does_not_count_as_second_open_order(self):
        held = three_item_order(order_id="order-H")
        held.is_on_hold = True
        controller, _ = _setup([held, three_item_order(order_id="order-A")])

        result = controller.restore(OPERATOR)

        assert result.order_id == "order-A"
        assert [o.id for o in controller.list_held(OPERATOR)] == ["order-H"]


class TestRestoreMalformedRows:

    def test_bad_rows_are_skipped_and_counted(self):
        rows = [
            item_row("row-1", "p-beer", "Beer", 2, "75.00"),
            item_row("row-2", "p-fries", "Fries", None, "50.00"),
            item_row("row-3", "p-wings", "Wings", 4, "not-a-price"),
        ]
        controller, _ = _setup([open_order("order-A", OPERATOR, rows)])

        result = controller.restore(OPERATOR)

        assert result.state is CartState.RESTORED
        assert result.item_count == 1
        assert result.skipped == 2
        assert controller.snapshot(OPERATOR).subtotal == Money.of("150.00")

    def test_all_rows_bad_gives_empty_cart_on_the_same_order(self):
        rows = [item_row("row-1", "p-beer", "Beer", 0, "75.00")]
        controller, _ = _setup([open_order("order-A", OPERATOR, rows)])

        result = controller.restore(OPERATOR)

        assert result.state is CartState.EMPTY
        assert result.order_id == "order-A"
        assert result.skipped == 1


class TestDiscard:

    def test_discarded_session_is_fetched_again(self):
        store = SessionStore()
        current = FakeCurrentOrderRepository([three_item_order()])
        controller = ReconciliationController(store, current, FakeCompletedOrderRepository())
        controller.restore(OPERATOR)

        store.discard(OPERATOR)
        result = controller.restore(OPERATOR)

        assert result.fetched is True
        assert current.fetch_count == 2
        assert result.item_count == 3

    def test_discard_releases_the_operator_lock(self):
        store = SessionStore()
        first = store.lock(OPERATOR)

        store.discard(OPERATOR)

        assert store.lock(OPERATOR) is not first

    def test_discard_waits_for_a_change_in_flight(self):
        store = SessionStore()
        store.get(OPERATOR).order_id = "order-A"
        entered, release = threading.Event(), threading.Event()
        seen = []

        def mutate():
            with store.lock(OPERATOR):
                entered.set()
                release.wait(timeout=5)
                seen.append(store.get(OPERATOR).order_id)

        worker = threading.Thread(target=mutate)
        worker.start()
        entered.wait(timeout=5)
        discarder = threading.Thread(target=store.discard, args=(OPERATOR,))
        discarder.start()
        release.set()
        worker.join(timeout=5)
        discarder.join(timeout=5)

        assert seen == ["order-A"]
        assert store.get(OPERATOR).order_id is None
