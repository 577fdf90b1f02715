"""Application service: Sales Analytics use case (query).

Aggregates a farm's sales over a reporting period:

- week:    the last seven days
- month:   since the first day of the current month
- quarter: since the first day of the current three-month block
- year:    since January 1st

Only sales whose order date falls inside ``[start, now]`` are counted.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal

from farmsales.application.dto import (
    ProductSalesDTO,
    SalesAnalyticsDTO,
    SalesSummaryDTO,
)
from farmsales.application.ports import AccessPolicy, Requester
from farmsales.domain.exceptions import ValidationError
from farmsales.domain.model.sale import Sale
from farmsales.domain.model.value_objects import Money
from farmsales.domain.repository.sale_repository import SaleRepository
from farmsales.domain.service.clock import Clock, utc_now

PERIODS = ("week", "month", "quarter", "year")
TOP_PRODUCTS_LIMIT = 10


def period_start(period: str, now: datetime) -> datetime:
    if period == "week":
        return now - timedelta(days=7)

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "month":
        return midnight.replace(day=1)
    if period == "quarter":
        first_month = (now.month - 1) // 3 * 3 + 1
        return midnight.replace(month=first_month, day=1)
    if period == "year":
        return midnight.replace(month=1, day=1)
    raise ValidationError(
        f"Invalid period '{period}' (expected one of: {', '.join(PERIODS)})"
    )


class SalesAnalyticsHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        access_policy: AccessPolicy,
        clock: Clock = utc_now,
        currency: str = "USD",
    ) -> None:
        self._sale_repo = sale_repo
        self._access = access_policy
        self._clock = clock
        self._currency = currency

    def handle(self, requester: Requester, farm_id: str, period: str = "month") -> SalesAnalyticsDTO:
        self._access.check(requester, farm_id)

        now = self._clock()
        start = period_start(period, now)
        sales = [
            sale
            for sale in self._sale_repo.list_by_farm(farm_id)
            if start <= sale.order_details.order_date <= now
        ]

        return SalesAnalyticsDTO(
            period=period,
            start_date=start,
            end_date=now,
            summary=self._summarize(sales),
            top_products=self._top_products(sales),
            sales_by_status=dict(Counter(sale.status.value for sale in sales)),
        )

    def _summarize(self, sales: list[Sale]) -> SalesSummaryDTO:
        # A farm trades in one currency; the configured one only labels an empty report.
        currency = sales[0].totals.total.currency if sales else self._currency
        revenue = Money.zero(currency)
        for sale in sales:
            revenue = revenue + sale.totals.total

        return SalesSummaryDTO(
            total_sales=len(sales),
            total_revenue=str(revenue),
            average_order_value=str(revenue.divided_by(len(sales))),
            total_items=sum(sale.item_count for sale in sales),
            currency=currency,
        )

    def _top_products(self, sales: list[Sale]) -> list[ProductSalesDTO]:
        quantities: dict[str, Decimal] = {}
        revenues: dict[str, Money] = {}
        for sale in sales:
            for item in sale.items:
                quantities[item.name] = (
                    quantities.get(item.name, Decimal("0")) + item.quantity.value
                )
                if item.name in revenues:
                    revenues[item.name] = revenues[item.name] + item.total_price
                else:
                    revenues[item.name] = item.total_price

        ranked = sorted(quantities, key=lambda name: (-quantities[name], name))
        return [
            ProductSalesDTO(
                name=name,
                total_quantity=str(quantities[name]),
                total_revenue=str(revenues[name]),
            )
            for name in ranked[:TOP_PRODUCTS_LIMIT]
        ]
