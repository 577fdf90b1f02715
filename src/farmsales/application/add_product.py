"""Application service: Add Product use case."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from farmsales.application.parsing import as_utc, parse_enum
from farmsales.application.ports import AccessPolicy, Requester
from farmsales.domain.model.product import (
    AnimalProductType,
    Measure,
    MeasureUnit,
    Pricing,
    Product,
    Production,
)
from farmsales.domain.model.value_objects import Money, to_decimal
from farmsales.domain.repository.product_repository import ProductRepository
from farmsales.domain.service.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class AddProductHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        access_policy: AccessPolicy,
        clock: Clock = utc_now,
    ) -> None:
        self._product_repo = product_repo
        self._access = access_policy
        self._clock = clock

    def handle(
        self,
        requester: Requester,
        farm_id: str,
        name: str,
        product_type: str,
        amount: str | int | Decimal,
        unit: str,
        cost_price: str | int | Decimal,
        selling_price: str | int | Decimal,
        available: str | int | Decimal,
        currency: str = "USD",
        minimum_stock: str | int | Decimal | None = None,
        reorder_point: str | int | Decimal | None = None,
        production_date: datetime | None = None,
        expiry_date: datetime | None = None,
    ) -> Product:
        """Register a new animal product for a farm.

        The repository assigns the next sequential id on insert.
        """
        self._access.check(requester, farm_id)

        product = Product.create(
            id=None,
            farm_id=farm_id,
            name=name,
            product_type=parse_enum(AnimalProductType, product_type, "product type"),
            quantity=Measure(
                amount=to_decimal(amount, "quantity"),
                unit=parse_enum(MeasureUnit, unit, "unit"),
            ),
            pricing=Pricing(
                cost_price=Money.of(cost_price, currency),
                selling_price=Money.of(selling_price, currency),
            ),
            available=to_decimal(available, "available stock"),
            minimum_stock=(
                None if minimum_stock is None else to_decimal(minimum_stock, "minimum stock")
            ),
            reorder_point=(
                None if reorder_point is None else to_decimal(reorder_point, "reorder point")
            ),
            production=Production(
                date=None if production_date is None else as_utc(production_date),
                expiry_date=None if expiry_date is None else as_utc(expiry_date),
            ),
            now=self._clock(),
        )
        self._product_repo.add(product)
        logger.info("Product %s '%s' added to farm %s", product.id, product.name, farm_id)
        return product
