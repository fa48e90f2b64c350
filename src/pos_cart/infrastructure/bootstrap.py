"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.  Settings come from the
environment and can be overridden by CLI options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from pos_cart.application.reconciliation_controller import ReconciliationController
from pos_cart.application.session_store import SessionStore
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY
from pos_cart.infrastructure.persistence.json_completed_order_repository import (
    JsonCompletedOrderRepository,
)
from pos_cart.infrastructure.persistence.json_current_order_repository import (
    JsonCurrentOrderRepository,
)
from pos_cart.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    currency: str = DEFAULT_CURRENCY
    log_level: str = "WARNING"
    log_json: bool = False
    operator_id: str | None = None

    @staticmethod
    def from_env() -> Settings:
        return Settings(
            data_dir=Path(os.environ.get("POS_CART_DATA_DIR") or _DEFAULT_DATA_DIR),
            currency=os.environ.get("POS_CART_CURRENCY") or DEFAULT_CURRENCY,
            log_level=os.environ.get("POS_CART_LOG_LEVEL") or "WARNING",
            log_json=os.environ.get("POS_CART_LOG_JSON", "").lower() in ("1", "true", "yes"),
            operator_id=os.environ.get("POS_CART_OPERATOR") or None,
        )


def product_repository(settings: Settings) -> JsonProductRepository:
    return JsonProductRepository(settings.data_dir / "products.json")


def current_order_repository(settings: Settings) -> JsonCurrentOrderRepository:
    return JsonCurrentOrderRepository(settings.data_dir / "current_orders.json", settings.currency)


def completed_order_repository(settings: Settings) -> JsonCompletedOrderRepository:
    return JsonCompletedOrderRepository(settings.data_dir / "completed_orders.json")


def reconciliation_controller(settings: Settings) -> ReconciliationController:
    return ReconciliationController(
        store=SessionStore(settings.currency),
        current_orders=current_order_repository(settings),
        completed_orders=completed_order_repository(settings),
    )
