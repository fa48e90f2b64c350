from dataclasses import replace
from pathlib import Path

import click

from pos_cart.infrastructure.bootstrap import Settings
from pos_cart.infrastructure.cli.cart_commands import (
    cart_add,
    cart_checkout,
    cart_clear,
    cart_customer,
    cart_discount,
    cart_discount_remove,
    cart_held,
    cart_hold,
    cart_note,
    cart_qty,
    cart_remove,
    cart_resume,
    cart_show,
    cart_table,
)
from pos_cart.infrastructure.cli.order_commands import order_list, order_show
from pos_cart.infrastructure.cli.product_commands import product_add, product_list
from pos_cart.infrastructure.logging_config import setup_logging


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the JSON data files.",
)
@click.option("--log-level", default=None, help="Logging level, e.g. INFO.")
@click.option("--operator", default=None, help="Cashier / operator ID.")
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, log_level: str | None, operator: str | None) -> None:
    """POS cart — cashier carts, held orders and checkout"""
    settings = Settings.from_env()
    settings = replace(
        settings,
        data_dir=data_dir or settings.data_dir,
        log_level=log_level or settings.log_level,
        operator_id=operator or settings.operator_id,
    )
    setup_logging(settings.log_level, settings.log_json)
    ctx.obj = settings


@cli.group()
def cart() -> None:
    """Manage the operator's cart."""


@cli.group()
def order() -> None:
    """Inspect completed orders."""


@cli.group()
def product() -> None:
    """Manage the product catalog."""


# Register subcommands
cart.add_command(cart_add)
cart.add_command(cart_checkout)
cart.add_command(cart_clear)
cart.add_command(cart_customer)
cart.add_command(cart_discount)
cart.add_command(cart_discount_remove)
cart.add_command(cart_held)
cart.add_command(cart_hold)
cart.add_command(cart_note)
cart.add_command(cart_qty)
cart.add_command(cart_remove)
cart.add_command(cart_resume)
cart.add_command(cart_show)
cart.add_command(cart_table)
order.add_command(order_list)
order.add_command(order_show)
product.add_command(product_add)
product.add_command(product_list)
