"""Abstract repository for the product catalog.

Defined in the domain layer so the domain never depends on
infrastructure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pos_cart.domain.model.product import Product


class ProductRepository(ABC):

    @abstractmethod
    def get_by_name(self, name: str) -> Product | None:
        """Return a product by name (case-insensitive), or None."""

    @abstractmethod
    def list_all(self) -> list[Product]:
        """Return every product and package in the catalog."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product."""
