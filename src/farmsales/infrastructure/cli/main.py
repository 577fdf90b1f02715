import logging

import click

from farmsales.infrastructure.cli.product_commands import (
    product_add,
    product_expire,
    product_inventory,
    product_recall,
)
from farmsales.infrastructure.cli.sale_commands import (
    sale_analytics,
    sale_cancel,
    sale_create,
    sale_list,
    sale_pay,
    sale_show,
    sale_status,
)
from farmsales.infrastructure.config import Settings


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """farmsales: farm product sales and inventory"""
    settings = Settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    ctx.obj = settings


@cli.group()
def sale() -> None:
    """Manage sales."""


@cli.group()
def product() -> None:
    """Manage animal products."""


# Register subcommands
sale.add_command(sale_analytics)
sale.add_command(sale_cancel)
sale.add_command(sale_create)
sale.add_command(sale_list)
sale.add_command(sale_pay)
sale.add_command(sale_show)
sale.add_command(sale_status)
product.add_command(product_add)
product.add_command(product_expire)
product.add_command(product_inventory)
product.add_command(product_recall)
