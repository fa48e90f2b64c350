"""Application service: Add To Cart use case.

Resolves a catalog name to a Product and hands it to the controller, which
takes the price snapshot and persists the line.
"""

from __future__ import annotations

from pos_cart.application.dto import CartLineDTO
from pos_cart.application.reconciliation_controller import ReconciliationController
from pos_cart.application.show_cart import line_to_dto
from pos_cart.domain.exceptions import EntityNotFoundError
from pos_cart.domain.repository.product_repository import ProductRepository


class AddToCartHandler:

    def __init__(
        self,
        controller: ReconciliationController,
        product_repo: ProductRepository,
    ) -> None:
        self._controller = controller
        self._product_repo = product_repo

    def handle(
        self,
        operator_id: str,
        product_name: str,
        quantity: int = 1,
        notes: str | None = None,
    ) -> CartLineDTO:
        product = self._product_repo.get_by_name(product_name)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{product_name}'")

        self._controller.restore(operator_id)
        item = self._controller.add_item(operator_id, product, quantity, notes)
        return line_to_dto(item)
