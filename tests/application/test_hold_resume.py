"""Tests for parking an order on hold and resuming it.

Uses in-memory fake repositories — no file I/O.
"""

import pytest

from pos_cart.application.reconciliation_controller import ReconciliationController
from pos_cart.application.session_store import SessionStore
from pos_cart.domain.exceptions import (
    EntityNotFoundError,
    PersistenceWriteError,
    ValidationError,
)
from pos_cart.domain.model.product import Product
from pos_cart.domain.model.session import CartState
from pos_cart.domain.model.value_objects import Money
from tests.fakes import (
    FakeCompletedOrderRepository,
    FakeCurrentOrderRepository,
    open_order,
    three_item_order,
)

OPERATOR = "cashier-1"
SODA = Product(id="p-soda", name="Soda", price=Money.of("30.00"))


def _setup(orders=None) -> tuple[ReconciliationController, FakeCurrentOrderRepository]:
    current = FakeCurrentOrderRepository(orders if orders is not None else [three_item_order()])
    controller = ReconciliationController(SessionStore(), current, FakeCompletedOrderRepository())
    controller.restore(OPERATOR)
    return controller, current


class TestHold:

    def test_hold_parks_order_and_empties_cart(self):
        controller, current = _setup()

        order_id = controller.hold(OPERATOR)

        assert order_id == "order-A"
        assert current.order("order-A").is_on_hold is True
        snapshot = controller.snapshot(OPERATOR)
        assert snapshot.state is CartState.EMPTY
        assert snapshot.items == ()
        assert snapshot.order_id is None

    def test_held_order_is_listed(self):
        controller, _ = _setup()
        controller.hold(OPERATOR)
        assert [o.id for o in controller.list_held(OPERATOR)] == ["order-A"]

    def test_new_cart_after_hold_uses_new_order(self):
        controller, current = _setup()
        controller.hold(OPERATOR)

        controller.add_item(OPERATOR, SODA)

        assert controller.snapshot(OPERATOR).order_id == "order-1"
        assert len(current.all_orders()) == 2

    def test_hold_empty_cart_rejected(self):
        controller, _ = _setup([])
        with pytest.raises(ValidationError, match="nothing to hold"):
            controller.hold(OPERATOR)

    def test_failed_hold_keeps_cart(self):
        controller, current = _setup()
        current.fail_writes.add("set_hold")

        with pytest.raises(PersistenceWriteError):
            controller.hold(OPERATOR)

        snapshot = controller.snapshot(OPERATOR)
        assert snapshot.order_id == "order-A"
        assert len(snapshot.items) == 3
        assert current.order("order-A").is_on_hold is False


class TestResume:

    def test_resume_brings_order_back(self):
        controller, current = _setup()
        controller.hold(OPERATOR)

        result = controller.resume(OPERATOR, "order-A")

        assert result.order_id == "order-A"
        assert result.item_count == 3
        assert current.order("order-A").is_on_hold is False
        snapshot = controller.snapshot(OPERATOR)
        assert snapshot.state is CartState.ACTIVE
        assert snapshot.subtotal == Money.of("300.00")

    def test_resume_with_items_in_cart_rejected(self):
        controller, _ = _setup()
        controller.hold(OPERATOR)
        controller.add_item(OPERATOR, SODA)

        with pytest.raises(ValidationError, match="before resuming"):
            controller.resume(OPERATOR, "order-A")

    def test_resume_unknown_order(self):
        controller, _ = _setup([])
        with pytest.raises(EntityNotFoundError):
            controller.resume(OPERATOR, "order-X")

    def test_resume_order_not_on_hold(self):
        controller, _ = _setup([open_order("order-E", OPERATOR, [])])
        with pytest.raises(ValidationError, match="not on hold"):
            controller.resume(OPERATOR, "order-E")

    def test_resume_replaces_empty_open_order(self):
        held = three_item_order(order_id="order-H")
        held.is_on_hold = True
        controller, current = _setup([held, open_order("order-E", OPERATOR, [])])
        assert controller.snapshot(OPERATOR).order_id == "order-E"

        controller.resume(OPERATOR, "order-H")

        assert [o.id for o in current.all_orders()] == ["order-H"]
        assert controller.snapshot(OPERATOR).order_id == "order-H"

    def test_resumed_order_is_restored_by_a_fresh_store(self):
        controller, current = _setup()
        controller.hold(OPERATOR)
        controller.resume(OPERATOR, "order-A")

        fresh = ReconciliationController(SessionStore(), current, FakeCompletedOrderRepository())
        result = fresh.restore(OPERATOR)

        assert result.state is CartState.RESTORED
        assert result.order_id == "order-A"
