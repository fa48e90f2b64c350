"""JSON-file-backed implementation of ProductRepository."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from pos_cart.domain.model.product import Product
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY, Money
from pos_cart.domain.repository.product_repository import ProductRepository
from pos_cart.infrastructure.persistence.json_file import JsonFile


class JsonProductRepository(ProductRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def get_by_name(self, name: str) -> Product | None:
        wanted = name.strip().lower()
        for raw in self._file.load():
            if raw["name"].lower() == wanted:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Product]:
        return [self._to_domain(raw) for raw in self._file.load()]

    def save(self, product: Product) -> None:
        products = self._file.load_for_write()
        products = [raw for raw in products if raw["id"] != product.id]
        products.append(self._to_raw(product))
        products.sort(key=lambda raw: int(raw["id"]))
        self._file.persist(products)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "price": str(product.price.amount),
            "currency": product.price.currency,
            "is_package": product.is_package,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        return Product(
            id=raw["id"],
            name=raw["name"],
            price=Money(Decimal(raw["price"]), raw.get("currency", DEFAULT_CURRENCY)),
            is_package=bool(raw.get("is_package", False)),
        )
