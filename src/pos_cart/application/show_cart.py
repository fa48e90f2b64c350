"""Application service: Show Cart use case (query)."""

from __future__ import annotations

from pos_cart.application.dto import CartDTO, CartLineDTO
from pos_cart.application.reconciliation_controller import ReconciliationController
from pos_cart.domain.model.discount import DiscountSpec
from pos_cart.domain.model.line_item import LineItem
from pos_cart.domain.model.session import SessionSnapshot


class ShowCartHandler:

    def __init__(self, controller: ReconciliationController) -> None:
        self._controller = controller

    def handle(self, operator_id: str) -> CartDTO:
        self._controller.restore(operator_id)
        return self._to_dto(self._controller.snapshot(operator_id))

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_dto(snapshot: SessionSnapshot) -> CartDTO:
        return CartDTO(
            operator_id=snapshot.operator_id,
            state=snapshot.state.value,
            order_id=snapshot.order_id,
            customer_id=snapshot.customer_id,
            table_id=snapshot.table_id,
            items=[line_to_dto(item) for item in snapshot.items],
            item_count=snapshot.item_count,
            subtotal=str(snapshot.subtotal),
            discount=describe_discount(snapshot.discount),
            discount_amount=str(snapshot.discount_amount),
            total=str(snapshot.total),
        )


def line_to_dto(item: LineItem) -> CartLineDTO:
    return CartLineDTO(
        id=item.id,
        item_name=item.item_name,
        quantity=item.quantity.value,
        unit_price=str(item.unit_price),
        subtotal=str(item.subtotal),
        notes=item.notes,
        is_package=item.is_package,
    )


def describe_discount(spec: DiscountSpec | None) -> str | None:
    if spec is None:
        return None
    label = f"{spec.kind.value} {spec.value.normalize():f}"
    if spec.reason:
        label += f" ({spec.reason})"
    return label
