"""CLI commands for the operator's cart.

Every command restores the operator's cart from storage first, so each
invocation starts from the persisted open order.
"""

from __future__ import annotations

import click

from pos_cart.application.add_to_cart import AddToCartHandler
from pos_cart.application.dto import CartDTO
from pos_cart.application.reconciliation_controller import ReconciliationController
from pos_cart.application.show_cart import ShowCartHandler
from pos_cart.application.show_order import to_order_dto
from pos_cart.domain.exceptions import DomainException
from pos_cart.domain.model.discount import DiscountKind, DiscountSpec
from pos_cart.infrastructure.bootstrap import (
    Settings,
    product_repository,
    reconciliation_controller,
)
from pos_cart.infrastructure.cli.order_commands import display_order


def _operator(settings: Settings) -> str:
    if not settings.operator_id:
        raise click.UsageError("No operator given. Use --operator or set POS_CART_OPERATOR.")
    return settings.operator_id


def _restored(settings: Settings) -> tuple[ReconciliationController, str]:
    operator_id = _operator(settings)
    controller = reconciliation_controller(settings)
    try:
        result = controller.restore(operator_id)
    except DomainException as exc:
        raise click.ClickException(f"Could not load cart: {exc}")
    if result.skipped:
        click.echo(f"Warning: {result.skipped} saved item(s) could not be restored.", err=True)
    return controller, operator_id


def _display_cart(dto: CartDTO) -> None:
    click.echo(f"Cart for {dto.operator_id}  (state={dto.state})")
    if dto.order_id:
        click.echo(f"Open order: {dto.order_id}")
    if dto.customer_id:
        click.echo(f"Customer:   {dto.customer_id}")
    if dto.table_id:
        click.echo(f"Table:      {dto.table_id}")
    click.echo()

    if not dto.items:
        click.echo("  (empty)")
        return

    click.echo(f"  {'ID':<36} {'Item':<20} {'Qty':>5} {'Price':>10} {'Subtotal':>10}")
    click.echo(f"  {'-'*85}")
    for item in dto.items:
        name = f"{item.item_name} [pkg]" if item.is_package else item.item_name
        click.echo(
            f"  {item.id:<36} {name:<20} {item.quantity:>5} {item.unit_price:>10} {item.subtotal:>10}"
        )
        if item.notes:
            click.echo(f"  {'':<36} note: {item.notes}")
    click.echo(f"  {'-'*85}")
    click.echo(f"  {'Subtotal':<63} {dto.subtotal:>20}")
    if dto.discount:
        click.echo(f"  {'Discount: ' + dto.discount:<63} {'-' + dto.discount_amount:>20}")
    click.echo(f"  {'Total':<63} {dto.total:>20}")


@click.command("show")
@click.pass_obj
def cart_show(settings: Settings) -> None:
    """Show the operator's cart."""
    controller, operator_id = _restored(settings)
    _display_cart(ShowCartHandler(controller).handle(operator_id))


@click.command("add")
@click.option("--product", "product_name", required=True, help="Product or package name.")
@click.option("--qty", "quantity", default=1, show_default=True, type=int, help="Quantity.")
@click.option("--note", default=None, help="Preparation note for the kitchen.")
@click.pass_obj
def cart_add(settings: Settings, product_name: str, quantity: int, note: str | None) -> None:
    """Add a product to the cart."""
    controller, operator_id = _restored(settings)
    handler = AddToCartHandler(controller, product_repository(settings))

    try:
        line = handler.handle(operator_id, product_name, quantity, note)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{line.item_name} x{line.quantity} in cart (line {line.id}, subtotal {line.subtotal})")


@click.command("qty")
@click.option("--item", "item_id", required=True, help="Cart line ID.")
@click.option("--qty", "quantity", required=True, type=int, help="New quantity.")
@click.pass_obj
def cart_qty(settings: Settings, item_id: str, quantity: int) -> None:
    """Change the quantity of a cart line."""
    controller, operator_id = _restored(settings)

    try:
        line = controller.update_quantity(operator_id, item_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{line.item_name} now x{line.quantity} (subtotal {line.subtotal})")


@click.command("note")
@click.option("--item", "item_id", required=True, help="Cart line ID.")
@click.option("--note", default="", help="Preparation note; empty clears it.")
@click.pass_obj
def cart_note(settings: Settings, item_id: str, note: str) -> None:
    """Set the preparation note of a cart line."""
    controller, operator_id = _restored(settings)

    try:
        line = controller.update_notes(operator_id, item_id, note)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Note for {line.item_name}: {line.notes or '(none)'}")


@click.command("remove")
@click.option("--item", "item_id", required=True, help="Cart line ID.")
@click.pass_obj
def cart_remove(settings: Settings, item_id: str) -> None:
    """Remove a line from the cart."""
    controller, operator_id = _restored(settings)

    try:
        line = controller.remove_item(operator_id, item_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Removed {line.item_name}.")


@click.command("customer")
@click.option("--id", "customer_id", default=None, help="Customer ID; omit to unset.")
@click.pass_obj
def cart_customer(settings: Settings, customer_id: str | None) -> None:
    """Attach a customer to the cart."""
    controller, operator_id = _restored(settings)

    try:
        controller.set_customer(operator_id, customer_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Customer set to {customer_id}." if customer_id else "Customer removed.")


@click.command("table")
@click.option("--id", "table_id", default=None, help="Table ID; omit to unset.")
@click.pass_obj
def cart_table(settings: Settings, table_id: str | None) -> None:
    """Attach a table to the cart."""
    controller, operator_id = _restored(settings)

    try:
        controller.set_table(operator_id, table_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Table set to {table_id}." if table_id else "Table removed.")


@click.command("discount")
@click.option(
    "--kind",
    required=True,
    type=click.Choice([kind.value for kind in DiscountKind]),
    help="Discount kind.",
)
@click.option("--value", default="0", help="Percentage (0-100) or fixed amount.")
@click.option("--reason", default=None, help="Why the discount was given.")
@click.pass_obj
def cart_discount(settings: Settings, kind: str, value: str, reason: str | None) -> None:
    """Apply a discount to the cart."""
    controller, operator_id = _restored(settings)

    try:
        amount = controller.apply_discount(operator_id, DiscountSpec.of(kind, value, reason))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Discount applied: {amount}")


@click.command("discount-remove")
@click.pass_obj
def cart_discount_remove(settings: Settings) -> None:
    """Remove the discount from the cart."""
    controller, operator_id = _restored(settings)

    try:
        controller.remove_discount(operator_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo("Discount removed.")


@click.command("clear")
@click.pass_obj
def cart_clear(settings: Settings) -> None:
    """Empty the cart and delete its open order."""
    controller, operator_id = _restored(settings)

    try:
        controller.clear(operator_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo("Cart cleared.")


@click.command("hold")
@click.pass_obj
def cart_hold(settings: Settings) -> None:
    """Put the current order on hold and start an empty cart."""
    controller, operator_id = _restored(settings)

    try:
        order_id = controller.hold(operator_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id} is on hold.")


@click.command("held")
@click.pass_obj
def cart_held(settings: Settings) -> None:
    """List the operator's held orders."""
    operator_id = _operator(settings)
    controller = reconciliation_controller(settings)

    try:
        held = controller.list_held(operator_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not held:
        click.echo("No held orders.")
        return
    for order in held:
        click.echo(f"  {order.id}  {len(order.items)} item(s)  updated {order.updated_at:%Y-%m-%d %H:%M}")


@click.command("resume")
@click.option("--order", "order_id", required=True, help="Held order ID.")
@click.pass_obj
def cart_resume(settings: Settings, order_id: str) -> None:
    """Resume a held order as the cart."""
    controller, operator_id = _restored(settings)

    try:
        result = controller.resume(operator_id, order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Resumed order {result.order_id} with {result.item_count} item(s).")


@click.command("checkout")
@click.option("--payment", "payment_method", default=None, help="Payment method, e.g. cash.")
@click.option("--tendered", "amount_tendered", default=None, help="Amount handed over.")
@click.pass_obj
def cart_checkout(settings: Settings, payment_method: str | None, amount_tendered: str | None) -> None:
    """Finalize the cart into a completed order."""
    controller, operator_id = _restored(settings)

    try:
        order = controller.finalize(operator_id, payment_method, amount_tendered)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    display_order(to_order_dto(order))
