"""Application service: Show Order use case (query over completed orders)."""

from __future__ import annotations

from pos_cart.application.dto import CompletedOrderDTO
from pos_cart.application.show_cart import describe_discount, line_to_dto
from pos_cart.domain.exceptions import EntityNotFoundError, ValidationError
from pos_cart.domain.model.discount import DiscountSpec
from pos_cart.domain.model.records import CompletedOrder
from pos_cart.domain.repository.completed_order_repository import (
    CompletedOrderRepository,
)


class ShowOrderHandler:

    def __init__(self, order_repo: CompletedOrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: int) -> CompletedOrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        return to_order_dto(order)

    def list_for(self, operator_id: str) -> list[CompletedOrderDTO]:
        return [to_order_dto(order) for order in self._order_repo.list_by_operator(operator_id)]


def to_order_dto(order: CompletedOrder) -> CompletedOrderDTO:
    if order.id is None:
        raise ValidationError("Order has not been stored yet")
    discount = None
    if order.discount is not None:
        discount = describe_discount(
            DiscountSpec(order.discount.kind, order.discount.value, order.discount.reason)
        )
    return CompletedOrderDTO(
        id=order.id,
        operator_id=order.operator_id,
        status=order.status.value,
        customer_id=order.customer_id,
        table_id=order.table_id,
        items=[line_to_dto(item) for item in order.items],
        subtotal=str(order.subtotal),
        discount=discount,
        discount_amount=str(order.discount_amount),
        total=str(order.total),
        payment_method=order.payment_method,
        amount_tendered=str(order.amount_tendered) if order.amount_tendered else None,
        change=str(order.change) if order.change is not None else None,
        completed_at=order.completed_at.strftime("%Y-%m-%d %H:%M UTC"),
    )
