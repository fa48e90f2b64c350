"""JSON-file-backed implementation of CompletedOrderRepository.

``recompute_totals`` behaves like the ``orders`` table trigger it stands in
for: it rebuilds subtotal and total from the item rows and zeroes the
discount fields.  A discount recorded before it runs does not survive.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from pos_cart.domain.exceptions import PersistenceWriteError
from pos_cart.domain.model.discount import Discount, DiscountKind
from pos_cart.domain.model.line_item import LineItem
from pos_cart.domain.model.records import CompletedOrder, CompletedOrderStatus
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity
from pos_cart.domain.repository.completed_order_repository import (
    CompletedOrderRepository,
)
from pos_cart.infrastructure.persistence.json_file import JsonFile


class JsonCompletedOrderRepository(CompletedOrderRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    # --- CompletedOrderRepository interface -----------------------------------

    def create_pending(self, order: CompletedOrder) -> int:
        orders = self._file.load_for_write()
        order.id = max((raw["id"] for raw in orders), default=0) + 1
        order.status = CompletedOrderStatus.PENDING
        orders.append(self._to_raw(order))
        self._file.persist(orders)
        return order.id

    def recompute_totals(self, order_id: int) -> None:
        orders = self._file.load_for_write()
        raw = self._find(orders, order_id)
        subtotal = sum(
            (
                max(Decimal(str(i["quantity"])) * Decimal(i["unit_price"])
                    - Decimal(i.get("discount_amount", "0")), Decimal("0"))
                for i in raw["items"]
            ),
            Decimal("0"),
        )
        raw["subtotal"] = str(subtotal)
        raw["discount"] = None
        raw["discount_amount"] = "0.00"
        raw["total"] = str(subtotal)
        self._file.persist(orders)

    def record_discount(self, order_id: int, discount: Discount | None) -> None:
        orders = self._file.load_for_write()
        raw = self._find(orders, order_id)
        subtotal = Decimal(raw["subtotal"])
        amount = discount.amount.amount if discount else Decimal("0.00")
        raw["discount"] = self._discount_to_raw(discount)
        raw["discount_amount"] = str(amount)
        raw["total"] = str(max(subtotal - amount, Decimal("0")))
        raw["status"] = CompletedOrderStatus.COMPLETED.value
        self._file.persist(orders)

    def discard_pending(self, order_id: int) -> None:
        orders = self._file.load_for_write()
        raw = self._find(orders, order_id)
        if raw["status"] != CompletedOrderStatus.PENDING.value:
            raise PersistenceWriteError(f"Completed order #{order_id} is not pending")
        orders.remove(raw)
        self._file.persist(orders)

    def get_by_id(self, order_id: int) -> CompletedOrder | None:
        for raw in self._file.load():
            if raw["id"] == order_id:
                return self._to_domain(raw)
        return None

    def list_by_operator(self, operator_id: str) -> list[CompletedOrder]:
        return [
            self._to_domain(raw)
            for raw in self._file.load()
            if raw["operator_id"] == operator_id
        ]

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _find(orders: list[dict], order_id: int) -> dict:
        for raw in orders:
            if raw["id"] == order_id:
                return raw
        raise PersistenceWriteError(f"Completed order #{order_id} does not exist")

    @staticmethod
    def _discount_to_raw(discount: Discount | None) -> dict | None:
        if discount is None:
            return None
        return {
            "kind": discount.kind.value,
            "value": str(discount.value),
            "amount": str(discount.amount.amount),
            "reason": discount.reason,
            "applied_by": discount.applied_by,
            "applied_at": discount.applied_at.isoformat(),
        }

    @classmethod
    def _to_raw(cls, order: CompletedOrder) -> dict:
        return {
            "id": order.id,
            "operator_id": order.operator_id,
            "source_order_id": order.source_order_id,
            "customer_id": order.customer_id,
            "table_id": order.table_id,
            "currency": order.subtotal.currency,
            "subtotal": str(order.subtotal.amount),
            "discount": cls._discount_to_raw(order.discount),
            "discount_amount": str(order.discount_amount.amount),
            "total": str(order.total.amount),
            "payment_method": order.payment_method,
            "amount_tendered": str(order.amount_tendered.amount) if order.amount_tendered else None,
            "change": str(order.change.amount) if order.change is not None else None,
            "status": order.status.value,
            "completed_at": order.completed_at.isoformat(),
            "items": [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "item_name": item.item_name,
                    "quantity": item.quantity.value,
                    "unit_price": str(item.unit_price.amount),
                    "discount_amount": str(item.line_discount.amount),
                    "subtotal": str(item.subtotal.amount),
                    "notes": item.notes,
                    "is_package": item.is_package,
                }
                for item in order.items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> CompletedOrder:
        currency = raw.get("currency", DEFAULT_CURRENCY)

        def money(value: str | None) -> Money | None:
            return Money(Decimal(value), currency) if value is not None else None

        discount = None
        if raw.get("discount"):
            d = raw["discount"]
            discount = Discount(
                kind=DiscountKind(d["kind"]),
                value=Decimal(d["value"]),
                amount=Money(Decimal(d["amount"]), currency),
                reason=d.get("reason"),
                applied_by=d["applied_by"],
                applied_at=datetime.fromisoformat(d["applied_at"]),
            )

        items = [
            LineItem(
                id=i["id"],
                product_id=i["product_id"],
                item_name=i["item_name"],
                quantity=Quantity(i["quantity"]),
                unit_price=Money(Decimal(i["unit_price"]), currency),
                discount=Money(Decimal(i.get("discount_amount", "0")), currency),
                notes=i.get("notes"),
                is_package=bool(i.get("is_package", False)),
            )
            for i in raw["items"]
        ]
        return CompletedOrder(
            id=raw["id"],
            operator_id=raw["operator_id"],
            source_order_id=raw.get("source_order_id"),
            items=items,
            customer_id=raw.get("customer_id"),
            table_id=raw.get("table_id"),
            subtotal=Money(Decimal(raw["subtotal"]), currency),
            discount=discount,
            discount_amount=Money(Decimal(raw["discount_amount"]), currency),
            total=Money(Decimal(raw["total"]), currency),
            payment_method=raw.get("payment_method"),
            amount_tendered=money(raw.get("amount_tendered")),
            change=money(raw.get("change")),
            status=CompletedOrderStatus(raw["status"]),
            completed_at=datetime.fromisoformat(raw["completed_at"]),
        )
