"""Application service: Add Product use case."""

from __future__ import annotations

from pos_cart.domain.exceptions import ValidationError
from pos_cart.domain.model.product import Product
from pos_cart.domain.model.value_objects import DEFAULT_CURRENCY, Money
from pos_cart.domain.repository.product_repository import ProductRepository


class AddProductHandler:

    def __init__(self, product_repo: ProductRepository, currency: str = DEFAULT_CURRENCY) -> None:
        self._product_repo = product_repo
        self._currency = currency

    def handle(self, name: str, price: str, is_package: bool = False) -> Product:
        """Add a new product or package to the catalog."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")

        existing = self._product_repo.get_by_name(name.strip())
        if existing is not None:
            raise ValidationError(f"Product '{name.strip()}' already exists")

        amount = Money.of(price, self._currency)
        if amount.amount <= 0:
            raise ValidationError("Product price must be greater than zero")

        # Auto-assign ID based on existing products
        all_products = self._product_repo.list_all()
        if all_products:
            next_id = str(max(int(p.id) for p in all_products) + 1)
        else:
            next_id = "1"

        product = Product(id=next_id, name=name.strip(), price=amount, is_package=is_package)
        self._product_repo.save(product)
        return product
