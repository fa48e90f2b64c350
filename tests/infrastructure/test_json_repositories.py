"""Tests for the JSON-file repositories, using pytest's tmp_path."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pos_cart.application.reconciliation_controller import ReconciliationController
from pos_cart.application.session_store import SessionStore
from pos_cart.domain.exceptions import FetchFailureError, PersistenceWriteError
from pos_cart.domain.model.discount import Discount, DiscountKind, DiscountSpec
from pos_cart.domain.model.line_item import LineItem
from pos_cart.domain.model.product import Product
from pos_cart.domain.model.records import CompletedOrder, CompletedOrderStatus
from pos_cart.domain.model.session import CartState
from pos_cart.domain.model.value_objects import Money, Quantity
from pos_cart.infrastructure.persistence.json_completed_order_repository import (
    JsonCompletedOrderRepository,
)
from pos_cart.infrastructure.persistence.json_current_order_repository import (
    JsonCurrentOrderRepository,
)
from pos_cart.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)

OPERATOR = "cashier-1"
NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _row(product_id: str, name: str, qty: int, price: str) -> dict:
    return {
        "product_id": product_id,
        "item_name": name,
        "quantity": qty,
        "unit_price": price,
        "subtotal": str(Decimal(price) * qty),
        "discount_amount": "0",
        "notes": None,
    }


def _completed(repo: JsonCompletedOrderRepository) -> CompletedOrder:
    order = CompletedOrder(
        id=None,
        operator_id=OPERATOR,
        source_order_id="abc",
        items=[
            LineItem("i1", "p-beer", "Beer", Quantity(2), Money.of("75.00")),
            LineItem("i2", "p-fries", "Fries", Quantity(1), Money.of("50.00")),
            LineItem("i3", "p-wings", "Wings", Quantity(4), Money.of("25.00")),
        ],
        subtotal=Money.of("300.00"),
        completed_at=NOW,
    )
    repo.create_pending(order)
    return order


def _discount() -> Discount:
    return Discount(
        kind=DiscountKind.PERCENTAGE,
        value=Decimal("10"),
        amount=Money.of("30.00"),
        reason=None,
        applied_by=OPERATOR,
        applied_at=NOW,
    )


class TestJsonProductRepository:

    def test_creates_missing_file(self, tmp_path):
        path = tmp_path / "nested" / "products.json"
        repo = JsonProductRepository(path)
        assert path.exists()
        assert repo.list_all() == []

    def test_save_and_lookup_case_insensitive(self, tmp_path):
        repo = JsonProductRepository(tmp_path / "products.json")
        repo.save(Product(id="1", name="Beer", price=Money.of("75.00")))
        repo.save(Product(id="2", name="Bucket", price=Money.of("400"), is_package=True))

        found = repo.get_by_name(" BEER ")
        assert found.price == Money.of("75.00")
        assert repo.get_by_name("bucket").is_package is True
        assert [p.id for p in repo.list_all()] == ["1", "2"]

    def test_corrupt_file_is_a_fetch_failure(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text("{not json")
        with pytest.raises(FetchFailureError):
            JsonProductRepository(path).list_all()

    def test_corrupt_file_fails_writes(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceWriteError):
            JsonProductRepository(path).save(Product(id="1", name="X", price=Money.of("1")))


class TestJsonCurrentOrderRepository:

    def test_create_and_list(self, tmp_path):
        repo = JsonCurrentOrderRepository(tmp_path / "current.json")
        created = repo.create(OPERATOR, table_id="T1")

        orders = repo.list_open(OPERATOR)
        assert [o.id for o in orders] == [created.id]
        assert orders[0].table_id == "T1"
        assert orders[0].is_on_hold is False
        assert repo.list_open("cashier-2") == []

    def test_item_writes_rederive_totals(self, tmp_path):
        path = tmp_path / "current.json"
        repo = JsonCurrentOrderRepository(path)
        order = repo.create(OPERATOR)
        beer = repo.add_item(order.id, _row("p-beer", "Beer", 2, "75.00"))
        repo.add_item(order.id, _row("p-fries", "Fries", 1, "50.00"))
        repo.update_item(order.id, beer, 3, Money.of("225.00"), "cold")

        raw = json.loads(path.read_text())[0]
        assert raw["subtotal"] == "275.00"
        assert raw["items"][0]["quantity"] == 3
        assert raw["items"][0]["notes"] == "cold"

    def test_discount_fields_round_trip(self, tmp_path):
        repo = JsonCurrentOrderRepository(tmp_path / "current.json")
        order = repo.create(OPERATOR)
        repo.apply_discount(order.id, DiscountSpec.of("fixed_amount", "20", "vip"), Money.of("20"), OPERATOR)

        record = repo.get(OPERATOR, order.id)
        assert record.discount_spec == DiscountSpec.of("fixed_amount", "20", "vip")
        assert record.discount_applied_by == OPERATOR
        assert record.discount_applied_at is not None

    def test_get_checks_operator(self, tmp_path):
        repo = JsonCurrentOrderRepository(tmp_path / "current.json")
        order = repo.create(OPERATOR)
        assert repo.get("cashier-2", order.id) is None

    def test_writes_to_missing_order_fail(self, tmp_path):
        repo = JsonCurrentOrderRepository(tmp_path / "current.json")
        with pytest.raises(PersistenceWriteError):
            repo.set_hold("missing", True)
        with pytest.raises(PersistenceWriteError):
            repo.delete("missing")

    def test_removing_unknown_item_fails(self, tmp_path):
        repo = JsonCurrentOrderRepository(tmp_path / "current.json")
        order = repo.create(OPERATOR)
        with pytest.raises(PersistenceWriteError):
            repo.remove_item(order.id, "nope")

    def test_hold_and_delete(self, tmp_path):
        repo = JsonCurrentOrderRepository(tmp_path / "current.json")
        order = repo.create(OPERATOR)
        repo.set_hold(order.id, True)
        assert repo.get(OPERATOR, order.id).is_on_hold is True
        repo.delete(order.id)
        assert repo.list_open(OPERATOR) == []


class TestJsonCompletedOrderRepository:

    def test_recompute_totals_wipes_discount(self, tmp_path):
        repo = JsonCompletedOrderRepository(tmp_path / "completed.json")
        order = _completed(repo)
        repo.record_discount(order.id, _discount())

        repo.recompute_totals(order.id)

        stored = repo.get_by_id(order.id)
        assert stored.discount is None
        assert stored.discount_amount == Money.zero()
        assert stored.total == Money.of("300.00")

    def test_discount_recorded_last_survives(self, tmp_path):
        repo = JsonCompletedOrderRepository(tmp_path / "completed.json")
        order = _completed(repo)

        repo.recompute_totals(order.id)
        repo.record_discount(order.id, _discount())

        stored = repo.get_by_id(order.id)
        assert stored.discount.kind is DiscountKind.PERCENTAGE
        assert stored.discount.applied_at == NOW
        assert stored.discount_amount == Money.of("30.00")
        assert stored.total == Money.of("270.00")
        assert stored.status is CompletedOrderStatus.COMPLETED

    def test_ids_increment_and_list_by_operator(self, tmp_path):
        repo = JsonCompletedOrderRepository(tmp_path / "completed.json")
        first = _completed(repo)
        second = _completed(repo)
        assert (first.id, second.id) == (1, 2)
        assert [o.id for o in repo.list_by_operator(OPERATOR)] == [1, 2]
        assert repo.get_by_id(3) is None

    def test_pending_until_discount_written(self, tmp_path):
        repo = JsonCompletedOrderRepository(tmp_path / "completed.json")
        order = _completed(repo)
        assert repo.get_by_id(order.id).status is CompletedOrderStatus.PENDING

    def test_discard_pending_removes_the_row(self, tmp_path):
        repo = JsonCompletedOrderRepository(tmp_path / "completed.json")
        first = _completed(repo)
        second = _completed(repo)

        repo.discard_pending(first.id)

        assert [o.id for o in repo.list_by_operator(OPERATOR)] == [second.id]

    def test_completed_order_cannot_be_discarded(self, tmp_path):
        repo = JsonCompletedOrderRepository(tmp_path / "completed.json")
        order = _completed(repo)
        repo.record_discount(order.id, None)

        with pytest.raises(PersistenceWriteError, match="not pending"):
            repo.discard_pending(order.id)
        assert repo.get_by_id(order.id).status is CompletedOrderStatus.COMPLETED

    def test_line_discount_is_stored_per_item(self, tmp_path):
        repo = JsonCompletedOrderRepository(tmp_path / "completed.json")
        order = _completed(repo)

        stored = repo.get_by_id(order.id)

        assert [i.line_discount for i in stored.items] == [Money.zero()] * 3


class TestEndToEndOnDisk:

    def test_cart_survives_restart_and_finalizes_with_discount(self, tmp_path):
        def controller() -> ReconciliationController:
            return ReconciliationController(
                SessionStore(),
                JsonCurrentOrderRepository(tmp_path / "current.json"),
                JsonCompletedOrderRepository(tmp_path / "completed.json"),
            )

        first = controller()
        first.restore(OPERATOR)
        first.add_item(OPERATOR, Product("1", "Beer", Money.of("75.00")), 2)
        first.add_item(OPERATOR, Product("2", "Fries", Money.of("50.00")))
        first.add_item(OPERATOR, Product("3", "Wings", Money.of("25.00")), 4)
        first.apply_discount(OPERATOR, DiscountSpec.of("percentage", "10"))

        second = controller()
        result = second.restore(OPERATOR)
        assert result.state is CartState.RESTORED
        assert second.snapshot(OPERATOR).discount_amount == Money.of("30.00")

        order = second.finalize(OPERATOR)

        stored = JsonCompletedOrderRepository(tmp_path / "completed.json").get_by_id(order.id)
        assert stored.discount_amount == Money.of("30.00")
        assert stored.total == Money.of("270.00")
        assert JsonCurrentOrderRepository(tmp_path / "current.json").list_open(OPERATOR) == []
