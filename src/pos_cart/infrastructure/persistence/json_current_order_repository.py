"""JSON-file-backed implementation of CurrentOrderRepository.

Each write re-derives the order's subtotal and total from its item rows,
the way the hosted database's triggers do for the ``current_orders`` table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

from pos_cart.domain.exceptions import PersistenceWriteError
from pos_cart.domain.model.discount import DiscountSpec
from pos_cart.domain.model.records import CurrentOrderRecord
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY, Money
from pos_cart.domain.repository.current_order_repository import CurrentOrderRepository
from pos_cart.infrastructure.persistence.json_file import JsonFile


class JsonCurrentOrderRepository(CurrentOrderRepository):

    def __init__(self, file_path: Path, currency: str = DEFAULT_CURRENCY) -> None:
        self._file = JsonFile(file_path)
        self._currency = currency

    # --- Reads ----------------------------------------------------------------

    def list_open(self, operator_id: str) -> list[CurrentOrderRecord]:
        return [
            self._to_record(raw)
            for raw in self._file.load()
            if raw["operator_id"] == operator_id
        ]

    def get(self, operator_id: str, order_id: str) -> CurrentOrderRecord | None:
        for raw in self._file.load():
            if raw["id"] == order_id and raw["operator_id"] == operator_id:
                return self._to_record(raw)
        return None

    # --- Writes ---------------------------------------------------------------

    def create(
        self,
        operator_id: str,
        customer_id: str | None = None,
        table_id: str | None = None,
    ) -> CurrentOrderRecord:
        orders = self._file.load_for_write()
        now = _now()
        raw = {
            "id": str(uuid.uuid4()),
            "operator_id": operator_id,
            "customer_id": customer_id,
            "table_id": table_id,
            "is_on_hold": False,
            "discount_kind": None,
            "discount_value": None,
            "discount_reason": None,
            "discount_amount": "0.00",
            "discount_applied_by": None,
            "discount_applied_at": None,
            "subtotal": "0.00",
            "total": "0.00",
            "currency": self._currency,
            "created_at": now,
            "updated_at": now,
            "items": [],
        }
        orders.append(raw)
        self._file.persist(orders)
        return self._to_record(raw)

    def add_item(self, order_id: str, row: dict[str, Any]) -> str:
        orders = self._file.load_for_write()
        raw = self._find(orders, order_id)
        item_id = str(uuid.uuid4())
        raw["items"].append({**row, "id": item_id, "created_at": _now()})
        self._touch(raw)
        self._file.persist(orders)
        return item_id

    def update_item(
        self,
        order_id: str,
        item_id: str,
        quantity: int,
        subtotal: Money,
        notes: str | None,
    ) -> None:
        orders = self._file.load_for_write()
        raw = self._find(orders, order_id)
        item = self._find_item(raw, item_id)
        item["quantity"] = quantity
        item["subtotal"] = str(subtotal.amount)
        item["total"] = str(subtotal.amount)
        item["notes"] = notes
        self._touch(raw)
        self._file.persist(orders)

    def remove_item(self, order_id: str, item_id: str) -> None:
        orders = self._file.load_for_write()
        raw = self._find(orders, order_id)
        self._find_item(raw, item_id)
        raw["items"] = [item for item in raw["items"] if item.get("id") != item_id]
        self._touch(raw)
        self._file.persist(orders)

    def assign_customer(self, order_id: str, customer_id: str | None) -> None:
        self._update(order_id, customer_id=customer_id)

    def assign_table(self, order_id: str, table_id: str | None) -> None:
        self._update(order_id, table_id=table_id)

    def apply_discount(
        self,
        order_id: str,
        spec: DiscountSpec | None,
        amount: Money,
        applied_by: str | None,
    ) -> None:
        self._update(
            order_id,
            discount_kind=spec.kind.value if spec else None,
            discount_value=str(spec.value) if spec else None,
            discount_reason=spec.reason if spec else None,
            discount_amount=str(amount.amount),
            discount_applied_by=applied_by if spec else None,
            discount_applied_at=_now() if spec else None,
        )

    def set_hold(self, order_id: str, on_hold: bool) -> None:
        self._update(order_id, is_on_hold=on_hold)

    def delete(self, order_id: str) -> None:
        orders = self._file.load_for_write()
        self._find(orders, order_id)
        self._file.persist([raw for raw in orders if raw["id"] != order_id])

    # --- Internal helpers -----------------------------------------------------

    def _update(self, order_id: str, **fields: Any) -> None:
        orders = self._file.load_for_write()
        raw = self._find(orders, order_id)
        raw.update(fields)
        self._touch(raw)
        self._file.persist(orders)

    @staticmethod
    def _find(orders: list[dict], order_id: str) -> dict:
        for raw in orders:
            if raw["id"] == order_id:
                return raw
        raise PersistenceWriteError(f"Open order {order_id} does not exist")

    @staticmethod
    def _find_item(raw: dict, item_id: str) -> dict:
        for item in raw["items"]:
            if item.get("id") == item_id:
                return item
        raise PersistenceWriteError(f"Item {item_id} does not exist in order {raw['id']}")

    @staticmethod
    def _touch(raw: dict) -> None:
        """Re-derive order totals from the item rows and stamp the update."""
        subtotal = Decimal("0")
        for item in raw["items"]:
            try:
                gross = Decimal(str(item["quantity"])) * Decimal(str(item["unit_price"]))
                subtotal += max(gross - Decimal(str(item.get("discount_amount") or 0)), Decimal("0"))
            except (KeyError, ArithmeticError, ValueError):
                continue  # malformed rows are reported on restore
        discount = Decimal(raw.get("discount_amount") or "0")
        raw["subtotal"] = str(subtotal)
        raw["total"] = str(max(subtotal - discount, Decimal("0")))
        raw["updated_at"] = _now()

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_record(raw: dict) -> CurrentOrderRecord:
        applied_at = raw.get("discount_applied_at")
        return CurrentOrderRecord(
            id=raw["id"],
            operator_id=raw["operator_id"],
            items=[dict(item) for item in raw.get("items", [])],
            customer_id=raw.get("customer_id"),
            table_id=raw.get("table_id"),
            is_on_hold=bool(raw.get("is_on_hold", False)),
            discount_kind=raw.get("discount_kind"),
            discount_value=raw.get("discount_value"),
            discount_reason=raw.get("discount_reason"),
            discount_applied_by=raw.get("discount_applied_by"),
            discount_applied_at=datetime.fromisoformat(applied_at) if applied_at else None,
            currency=raw.get("currency", DEFAULT_CURRENCY),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
