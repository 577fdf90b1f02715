"""Data Transfer Objects: plain containers that cross layer boundaries.

Input specs carry what the caller asked for as plain strings and numbers.
Output DTOs carry formatted values so the CLI (or any other front end)
never touches domain internals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from farmsales.domain.model.sale import Sale

DATE_FORMAT = "%Y-%m-%d %H:%M UTC"

# --- Input --------------------------------------------------------------------


@dataclass(frozen=True)
class CustomerSpec:
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    customer_type: str = "individual"


@dataclass(frozen=True)
class SaleItemSpec:
    """Input: one requested line.

    For animal products ``name``, ``unit`` and ``unit_price`` default to
    the product's own values.  Farm items must supply name and price.
    """

    product_id: str
    quantity: str | int | Decimal
    product_kind: str = "animal"
    unit_price: str | int | Decimal | None = None
    discount: str | int | Decimal = "0"
    name: str | None = None
    unit: str | None = None
    notes: str = ""


@dataclass(frozen=True)
class OrderDetailsSpec:
    delivery_method: str = "pickup"
    order_date: datetime | None = None
    delivery_address: str | None = None
    delivery_notes: str | None = None


@dataclass(frozen=True)
class PaymentSpec:
    method: str = "cash"
    paid_amount: str | int | Decimal = "0"
    currency: str = "USD"


# --- Output -------------------------------------------------------------------


@dataclass(frozen=True)
class SaleLineItemDTO:
    product_kind: str
    product_id: str
    name: str
    quantity: str
    unit: str
    unit_price: str  # formatted, e.g. "$2.50"
    discount: str
    total_price: str


@dataclass(frozen=True)
class TotalsDTO:
    subtotal: str
    discount: str
    tax: str
    shipping: str
    total: str


@dataclass(frozen=True)
class PaymentDTO:
    method: str
    status: str
    amount: str
    paid_amount: str
    due_amount: str
    payment_date: str | None
    transaction_id: str | None


@dataclass(frozen=True)
class SaleDTO:
    """Output: a complete sale as displayed to the user."""

    id: int
    order_number: str
    farm_id: str
    customer_name: str
    customer_type: str
    status: str
    items: list[SaleLineItemDTO]
    totals: TotalsDTO
    payment: PaymentDTO
    order_date: str
    delivery_method: str
    delivery_date: str | None
    notes: str


@dataclass(frozen=True)
class SalePageDTO:
    sales: list[SaleDTO]
    current_page: int
    total_pages: int
    total_sales: int
    has_next: bool
    has_prev: bool


@dataclass(frozen=True)
class SalesSummaryDTO:
    total_sales: int
    total_revenue: str
    average_order_value: str
    total_items: int
    currency: str


@dataclass(frozen=True)
class ProductSalesDTO:
    name: str
    total_quantity: str
    total_revenue: str


@dataclass(frozen=True)
class SalesAnalyticsDTO:
    period: str
    start_date: datetime
    end_date: datetime
    summary: SalesSummaryDTO
    top_products: list[ProductSalesDTO]
    sales_by_status: dict[str, int]


# --- Mapping ------------------------------------------------------------------


def _format_date(value: datetime | None) -> str | None:
    return value.strftime(DATE_FORMAT) if value is not None else None


def to_sale_dto(sale: Sale) -> SaleDTO:
    return SaleDTO(
        id=sale.id,  # type: ignore[arg-type]
        order_number=sale.order_number,  # type: ignore[arg-type]
        farm_id=sale.farm_id,
        customer_name=sale.customer.name,
        customer_type=sale.customer.customer_type.value,
        status=sale.status.value,
        items=[
            SaleLineItemDTO(
                product_kind=item.product_kind.value,
                product_id=item.product_id,
                name=item.name,
                quantity=str(item.quantity),
                unit=item.unit,
                unit_price=str(item.unit_price),
                discount=str(item.discount),
                total_price=str(item.total_price),
            )
            for item in sale.items
        ],
        totals=TotalsDTO(
            subtotal=str(sale.totals.subtotal),
            discount=str(sale.totals.discount),
            tax=str(sale.totals.tax),
            shipping=str(sale.totals.shipping),
            total=str(sale.totals.total),
        ),
        payment=PaymentDTO(
            method=sale.payment.method.value,
            status=sale.payment.status.value,
            amount=str(sale.payment.amount),
            paid_amount=str(sale.payment.paid_amount),
            due_amount=str(sale.payment.due_amount),
            payment_date=_format_date(sale.payment.payment_date),
            transaction_id=sale.payment.transaction_id,
        ),
        order_date=_format_date(sale.order_details.order_date),  # type: ignore[arg-type]
        delivery_method=sale.order_details.delivery_method.value,
        delivery_date=_format_date(sale.order_details.delivery_date),
        notes=sale.notes,
    )
