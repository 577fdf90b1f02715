"""CLI commands for the Sale aggregate."""

from __future__ import annotations

import click

from farmsales.application.dto import (
    CustomerSpec,
    OrderDetailsSpec,
    PaymentSpec,
    SaleDTO,
    SaleItemSpec,
)
from farmsales.application.sales_analytics import PERIODS
from farmsales.domain.exceptions import DomainException
from farmsales.infrastructure.bootstrap import operator, sale_handlers
from farmsales.infrastructure.config import Settings


def _parse_items(raw: str) -> list[SaleItemSpec]:
    """Parse '1:10,2:3.5:4.00' into animal-product SaleItemSpecs.

    Each entry is PRODUCT_ID:QTY[:UNIT_PRICE[:DISCOUNT]].
    """
    specs: list[SaleItemSpec] = []
    for entry in raw.split(","):
        parts = [p.strip() for p in entry.strip().split(":")]
        if len(parts) < 2 or len(parts) > 4:
            raise click.BadParameter(
                f"Invalid item format '{entry}'. Expected 'ProductId:Qty[:Price[:Discount]]'."
            )
        product_id, qty = parts[0], parts[1]
        unit_price = parts[2] if len(parts) > 2 and parts[2] else None
        discount = parts[3] if len(parts) > 3 else "0"
        specs.append(
            SaleItemSpec(
                product_id=product_id,
                quantity=qty,
                unit_price=unit_price,
                discount=discount,
            )
        )
    return specs


def _parse_farm_items(raw: str) -> list[SaleItemSpec]:
    """Parse 'c1:Carrots:5:1.20' into farm-product SaleItemSpecs."""
    specs: list[SaleItemSpec] = []
    for entry in raw.split(","):
        parts = [p.strip() for p in entry.strip().split(":")]
        if len(parts) != 4:
            raise click.BadParameter(
                f"Invalid farm item format '{entry}'. Expected 'ProductId:Name:Qty:Price'."
            )
        product_id, name, qty, unit_price = parts
        specs.append(
            SaleItemSpec(
                product_id=product_id,
                quantity=qty,
                product_kind="farm",
                unit_price=unit_price,
                name=name,
            )
        )
    return specs


def _display_sale(dto: SaleDTO) -> None:
    """Shared formatting for displaying a sale."""
    click.echo(f"Sale #{dto.id}  {dto.order_number}  (status={dto.status})")
    click.echo(f"Customer: {dto.customer_name} ({dto.customer_type})")
    click.echo(f"Ordered:  {dto.order_date}  [{dto.delivery_method}]")
    if dto.delivery_date:
        click.echo(f"Delivered: {dto.delivery_date}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>8} {'Price':>10} {'Discount':>10} {'Total':>10}")
    click.echo(f"  {'-'*62}")
    for item in dto.items:
        click.echo(
            f"  {item.name:<20} {item.quantity:>8} {item.unit_price:>10} "
            f"{item.discount:>10} {item.total_price:>10}"
        )
    click.echo(f"  {'-'*62}")
    click.echo(f"  {'Subtotal':<40} {dto.totals.subtotal:>21}")
    click.echo(f"  {'Tax':<40} {dto.totals.tax:>21}")
    click.echo(f"  {'Shipping':<40} {dto.totals.shipping:>21}")
    click.echo(f"  {'Discount':<40} {dto.totals.discount:>21}")
    click.echo(f"  {'Total':<40} {dto.totals.total:>21}")
    click.echo()
    click.echo(
        f"Payment: {dto.payment.status} via {dto.payment.method}, "
        f"paid {dto.payment.paid_amount}, due {dto.payment.due_amount}"
    )
    if dto.notes:
        click.echo(f"Notes: {dto.notes}")


@click.command("create")
@click.option("--farm", "farm_id", required=True, help="Farm ID.")
@click.option("--customer", required=True, help="Customer name.")
@click.option("--email", default="", help="Customer email.")
@click.option("--phone", default="", help="Customer phone.")
@click.option("--address", default="", help="Customer address.")
@click.option("--customer-type", default="individual", help="individual, business, wholesale or retail.")
@click.option("--items", "items_str", default=None, help="Animal products as 'Id:Qty[:Price[:Discount]],...'.")
@click.option("--farm-items", "farm_items_str", default=None, help="Farm products as 'Id:Name:Qty:Price,...'.")
@click.option("--delivery-method", default="pickup", help="pickup, delivery or shipping.")
@click.option("--delivery-address", default=None, help="Delivery address.")
@click.option("--payment-method", default="cash", help="cash, credit_card, bank_transfer, check or digital_wallet.")
@click.option("--paid", default="0", help="Amount paid up front.")
@click.option("--tax", default="0", help="Tax amount.")
@click.option("--shipping", default="0", help="Shipping amount.")
@click.option("--notes", default="", help="Free-form notes.")
@click.pass_obj
def sale_create(
    settings: Settings,
    farm_id: str,
    customer: str,
    email: str,
    phone: str,
    address: str,
    customer_type: str,
    items_str: str | None,
    farm_items_str: str | None,
    delivery_method: str,
    delivery_address: str | None,
    payment_method: str,
    paid: str,
    tax: str,
    shipping: str,
    notes: str,
) -> None:
    """Record a new sale (books animal-product stock)."""
    if not items_str and not farm_items_str:
        raise click.ClickException("Provide --items and/or --farm-items")

    specs: list[SaleItemSpec] = []
    if items_str:
        specs.extend(_parse_items(items_str))
    if farm_items_str:
        specs.extend(_parse_farm_items(farm_items_str))

    handler = sale_handlers(settings).create

    try:
        dto = handler.handle(
            operator(settings),
            farm_id=farm_id,
            customer=CustomerSpec(
                name=customer,
                email=email,
                phone=phone,
                address=address,
                customer_type=customer_type,
            ),
            items=specs,
            order_details=OrderDetailsSpec(
                delivery_method=delivery_method,
                delivery_address=delivery_address,
            ),
            payment=PaymentSpec(
                method=payment_method, paid_amount=paid, currency=settings.CURRENCY
            ),
            tax=tax,
            shipping=shipping,
            notes=notes,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Sale {dto.order_number} created.")
    _display_sale(dto)


@click.command("show")
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID to display.")
@click.pass_obj
def sale_show(settings: Settings, sale_id: int) -> None:
    """Show details of an existing sale."""
    handler = sale_handlers(settings).show

    try:
        dto = handler.handle(operator(settings), sale_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_sale(dto)


@click.command("list")
@click.option("--farm", "farm_id", required=True, help="Farm ID.")
@click.option("--status", default=None, help="Only sales in this status.")
@click.option("--customer-type", default=None, help="Only sales to this customer type.")
@click.option("--page", default=1, type=int, show_default=True)
@click.option("--limit", default=10, type=int, show_default=True)
@click.pass_obj
def sale_list(
    settings: Settings,
    farm_id: str,
    status: str | None,
    customer_type: str | None,
    page: int,
    limit: int,
) -> None:
    """List a farm's sales, newest first."""
    handler = sale_handlers(settings).list

    try:
        result = handler.handle(
            operator(settings),
            farm_id,
            status=status,
            customer_type=customer_type,
            page=page,
            limit=limit,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not result.sales:
        click.echo("No sales found.")
        return

    click.echo(f"{'ID':<5} {'Order':<14} {'Customer':<20} {'Status':<11} {'Total':>10}")
    click.echo("-" * 64)
    for dto in result.sales:
        click.echo(
            f"{dto.id:<5} {dto.order_number:<14} {dto.customer_name:<20} "
            f"{dto.status:<11} {dto.totals.total:>10}"
        )
    click.echo(
        f"Page {result.current_page} of {result.total_pages} "
        f"({result.total_sales} sales)"
    )


@click.command("pay")
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID.")
@click.option("--amount", required=True, help="Amount paid (e.g. 40.00).")
@click.option("--method", default="cash", help="Payment method.")
@click.option("--transaction-id", default=None, help="External transaction reference.")
@click.pass_obj
def sale_pay(
    settings: Settings,
    sale_id: int,
    amount: str,
    method: str,
    transaction_id: str | None,
) -> None:
    """Record a payment against a sale."""
    handler = sale_handlers(settings).add_payment

    try:
        dto = handler.handle(
            operator(settings),
            sale_id,
            amount=amount,
            method=method,
            transaction_id=transaction_id,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Payment recorded on {dto.order_number}: {dto.payment.status}, "
        f"paid {dto.payment.paid_amount}, due {dto.payment.due_amount}"
    )


@click.command("status")
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID.")
@click.option("--status", required=True, help="New status.")
@click.option("--notes", default=None, help="Replace the sale notes.")
@click.pass_obj
def sale_status(settings: Settings, sale_id: int, status: str, notes: str | None) -> None:
    """Move a sale to a new status."""
    handler = sale_handlers(settings).update_status

    try:
        dto = handler.handle(operator(settings), sale_id, status=status, notes=notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Sale {dto.order_number} is now {dto.status}.")


@click.command("cancel")
@click.option("--id", "sale_id", required=True, type=int, help="Sale ID to cancel.")
@click.option("--reason", default=None, help="Cancellation reason (replaces notes).")
@click.pass_obj
def sale_cancel(settings: Settings, sale_id: int, reason: str | None) -> None:
    """Cancel a sale that has not shipped yet."""
    handler = sale_handlers(settings).cancel

    try:
        dto = handler.handle(operator(settings), sale_id, reason=reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Sale {dto.order_number} cancelled.")


@click.command("analytics")
@click.option("--farm", "farm_id", required=True, help="Farm ID.")
@click.option("--period", type=click.Choice(PERIODS), default="month", show_default=True)
@click.pass_obj
def sale_analytics(settings: Settings, farm_id: str, period: str) -> None:
    """Summarize a farm's sales over a period."""
    handler = sale_handlers(settings).analytics

    try:
        report = handler.handle(operator(settings), farm_id, period=period)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    summary = report.summary
    click.echo(
        f"Sales for farm {farm_id} since {report.start_date:%Y-%m-%d} ({period})"
    )
    click.echo(f"  Orders:              {summary.total_sales}")
    click.echo(f"  Revenue:             {summary.total_revenue} {summary.currency}")
    click.echo(f"  Average order value: {summary.average_order_value}")
    click.echo(f"  Line items:          {summary.total_items}")

    if report.top_products:
        click.echo()
        click.echo(f"  {'Top products':<20} {'Qty':>8} {'Revenue':>12}")
        for line in report.top_products:
            click.echo(f"  {line.name:<20} {line.total_quantity:>8} {line.total_revenue:>12}")

    if report.sales_by_status:
        click.echo()
        for status, count in sorted(report.sales_by_status.items()):
            click.echo(f"  {status:<12} {count:>4}")
