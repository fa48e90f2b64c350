"""CLI commands for the product catalog."""

from __future__ import annotations

import click

from pos_cart.application.add_product import AddProductHandler
from pos_cart.domain.exceptions import DomainException
from pos_cart.infrastructure.bootstrap import Settings, product_repository


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Unit price, e.g. 75.00.")
@click.option("--package", "is_package", is_flag=True, default=False, help="Sell as a package.")
@click.pass_obj
def product_add(settings: Settings, name: str, price: str, is_package: bool) -> None:
    """Add a product or package to the catalog."""
    handler = AddProductHandler(product_repository(settings), settings.currency)

    try:
        product = handler.handle(name, price, is_package)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    kind = "Package" if product.is_package else "Product"
    click.echo(f"{kind} '{product.name}' added (id={product.id}, price={product.price}).")


@click.command("list")
@click.pass_obj
def product_list(settings: Settings) -> None:
    """List all products in the catalog."""
    try:
        products = product_repository(settings).list_all()
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"  {'ID':<5} {'Name':<20} {'Price':>10}")
    click.echo(f"  {'-'*37}")
    for p in products:
        name = f"{p.name} [pkg]" if p.is_package else p.name
        click.echo(f"  {p.id:<5} {name:<20} {str(p.price):>10}")
