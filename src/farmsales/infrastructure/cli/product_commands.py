"""CLI commands for animal products and their stock."""

from __future__ import annotations

from datetime import datetime

import click

from farmsales.domain.exceptions import DomainException
from farmsales.infrastructure.bootstrap import (
    add_product_handler,
    expire_products_handler,
    operator,
    recall_product_handler,
    show_inventory_handler,
)
from farmsales.infrastructure.config import Settings


@click.command("add")
@click.option("--farm", "farm_id", required=True, help="Farm ID.")
@click.option("--name", required=True, help="Product name.")
@click.option("--type", "product_type", required=True, help="milk, eggs, meat, wool, honey, ...")
@click.option("--amount", required=True, help="Quantity produced (e.g. 120).")
@click.option("--unit", required=True, help="kg, lbs, liters, gallons, pieces or dozens.")
@click.option("--cost", "cost_price", required=True, help="Cost price per unit.")
@click.option("--price", "selling_price", required=True, help="Selling price per unit.")
@click.option("--available", required=True, help="Units available for sale.")
@click.option("--minimum-stock", default=None, help="Minimum stock level.")
@click.option("--reorder-point", default=None, help="Reorder point.")
@click.option("--produced", "production_date", type=click.DateTime(), default=None, help="Production date.")
@click.option("--expires", "expiry_date", type=click.DateTime(), default=None, help="Expiry date.")
@click.pass_obj
def product_add(
    settings: Settings,
    farm_id: str,
    name: str,
    product_type: str,
    amount: str,
    unit: str,
    cost_price: str,
    selling_price: str,
    available: str,
    minimum_stock: str | None,
    reorder_point: str | None,
    production_date: datetime | None,
    expiry_date: datetime | None,
) -> None:
    """Register a new animal product for a farm."""
    handler = add_product_handler(settings)

    try:
        product = handler.handle(
            operator(settings),
            farm_id=farm_id,
            name=name,
            product_type=product_type,
            amount=amount,
            unit=unit,
            cost_price=cost_price,
            selling_price=selling_price,
            available=available,
            currency=settings.CURRENCY,
            minimum_stock=minimum_stock,
            reorder_point=reorder_point,
            production_date=production_date,
            expiry_date=expiry_date,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Product #{product.id} '{product.name}' added at "
        f"{product.pricing.selling_price} ({product.inventory.available} available)"
    )


@click.command("inventory")
@click.option("--farm", "farm_id", required=True, help="Farm ID.")
@click.pass_obj
def product_inventory(settings: Settings, farm_id: str) -> None:
    """Show stock levels for a farm's products."""
    handler = show_inventory_handler(settings)

    try:
        lines = handler.handle(operator(settings), farm_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not lines:
        click.echo("No products found.")
        return

    click.echo(
        f"{'ID':<5} {'Product':<20} {'Available':>10} {'Sold':>8} "
        f"{'Avg Price':>10} {'Stock':>9} {'Expires in':>10}"
    )
    click.echo("-" * 78)
    for line in lines:
        click.echo(
            f"{line.product_id:<5} {line.product_name:<20} {line.available:>10} "
            f"{line.sold:>8} {line.average_price:>10} {line.stock_status:>9} "
            f"{_expiry_column(line.status, line.days_until_expiry):>10}"
        )


def _expiry_column(status: str, days: int | None) -> str:
    if status in ("expired", "recalled"):
        return status
    if days is None:
        return "-"
    return f"{days}d"


@click.command("recall")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.pass_obj
def product_recall(settings: Settings, product_id: str) -> None:
    """Recall a product so it can no longer be sold."""
    handler = recall_product_handler(settings)

    try:
        product = handler.handle(operator(settings), product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product #{product.id} '{product.name}' recalled")


@click.command("expire")
@click.option("--farm", "farm_id", required=True, help="Farm ID.")
@click.pass_obj
def product_expire(settings: Settings, farm_id: str) -> None:
    """Mark every product past its expiry date as expired."""
    handler = expire_products_handler(settings)

    try:
        expired = handler.handle(operator(settings), farm_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not expired:
        click.echo("No products expired.")
        return
    click.echo(f"Expired products: {', '.join(expired)}")
