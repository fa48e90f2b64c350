"""CLI commands for completed orders."""

from __future__ import annotations

import click

from pos_cart.application.dto import CompletedOrderDTO
from pos_cart.application.show_order import ShowOrderHandler
from pos_cart.domain.exceptions import DomainException
from pos_cart.infrastructure.bootstrap import Settings, completed_order_repository


def display_order(dto: CompletedOrderDTO) -> None:
    """Shared formatting for displaying a completed order."""
    click.echo(f"Order #{dto.id}  (status={dto.status})")
    click.echo(f"Cashier:   {dto.operator_id}")
    click.echo(f"Completed: {dto.completed_at}")
    if dto.customer_id:
        click.echo(f"Customer:  {dto.customer_id}")
    if dto.table_id:
        click.echo(f"Table:     {dto.table_id}")
    click.echo()

    click.echo(f"  {'Item':<20} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*47}")
    for item in dto.items:
        click.echo(
            f"  {item.item_name:<20} {item.quantity:>5} {item.unit_price:>10} {item.subtotal:>10}"
        )
    click.echo(f"  {'-'*47}")
    click.echo(f"  {'Subtotal':<27} {dto.subtotal:>20}")
    if dto.discount:
        click.echo(f"  {'Discount':<27} {'-' + dto.discount_amount:>20}")
        click.echo(f"    {dto.discount}")
    click.echo(f"  {'Order Total':<27} {dto.total:>20}")
    if dto.amount_tendered:
        click.echo(f"  {'Tendered (' + (dto.payment_method or 'cash') + ')':<27} {dto.amount_tendered:>20}")
        click.echo(f"  {'Change':<27} {dto.change:>20}")


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.pass_obj
def order_show(settings: Settings, order_id: int) -> None:
    """Show a completed order."""
    handler = ShowOrderHandler(completed_order_repository(settings))

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    display_order(dto)


@click.command("list")
@click.pass_obj
def order_list(settings: Settings) -> None:
    """List the operator's completed orders."""
    if not settings.operator_id:
        raise click.UsageError("No operator given. Use --operator or set POS_CART_OPERATOR.")
    handler = ShowOrderHandler(completed_order_repository(settings))

    try:
        orders = handler.list_for(settings.operator_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not orders:
        click.echo("No completed orders.")
        return
    for dto in orders:
        click.echo(f"  #{dto.id:<5} {dto.completed_at}  {dto.status:<10} {dto.total:>12}")
