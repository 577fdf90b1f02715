"""Application service: List Sales use case (query).

Filters a farm's sales by status, customer type and order-date range,
newest first, one page at a time.
"""

from __future__ import annotations

import math
from datetime import datetime

from farmsales.application.dto import SalePageDTO, to_sale_dto
from farmsales.application.parsing import as_utc, parse_enum
from farmsales.application.ports import AccessPolicy, Requester
from farmsales.domain.exceptions import ValidationError
from farmsales.domain.model.sale import CustomerType, SaleStatus
from farmsales.domain.repository.sale_repository import SaleRepository


class ListSalesHandler:

    def __init__(self, sale_repo: SaleRepository, access_policy: AccessPolicy) -> None:
        self._sale_repo = sale_repo
        self._access = access_policy

    def handle(
        self,
        requester: Requester,
        farm_id: str,
        status: str | None = None,
        customer_type: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> SalePageDTO:
        if page < 1 or limit < 1:
            raise ValidationError("Page and limit must be positive")
        self._access.check(requester, farm_id)

        sales = self._sale_repo.list_by_farm(farm_id)
        if status is not None:
            wanted_status = parse_enum(SaleStatus, status, "sale status")
            sales = [s for s in sales if s.status == wanted_status]
        if customer_type is not None:
            wanted_type = parse_enum(CustomerType, customer_type, "customer type")
            sales = [s for s in sales if s.customer.customer_type == wanted_type]
        if start_date is not None:
            start = as_utc(start_date)
            sales = [s for s in sales if s.order_details.order_date >= start]
        if end_date is not None:
            end = as_utc(end_date)
            sales = [s for s in sales if s.order_details.order_date <= end]

        sales.sort(key=lambda s: s.order_details.order_date, reverse=True)

        total = len(sales)
        offset = (page - 1) * limit
        return SalePageDTO(
            sales=[to_sale_dto(s) for s in sales[offset:offset + limit]],
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_sales=total,
            has_next=page * limit < total,
            has_prev=page > 1,
        )
