"""Product aggregate: a sellable animal product (milk, eggs, meat, ...).

Products live independently of sales. They are registered per farm and
their stock is only changed by the inventory ledger when a sale goes
through.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from farmsales.domain.exceptions import ProductUnavailableError, ValidationError
from farmsales.domain.model.inventory import (
    DEFAULT_MINIMUM_STOCK,
    DEFAULT_REORDER_POINT,
    SalesStats,
    StockLevels,
    StockStatus,
)
from farmsales.domain.model.value_objects import Money


class AnimalProductType(Enum):
    MILK = "milk"
    EGGS = "eggs"
    MEAT = "meat"
    WOOL = "wool"
    HONEY = "honey"
    CHEESE = "cheese"
    YOGURT = "yogurt"
    BUTTER = "butter"
    OTHER = "other"


class MeasureUnit(Enum):
    KG = "kg"
    LBS = "lbs"
    LITERS = "liters"
    GALLONS = "gallons"
    PIECES = "pieces"
    DOZENS = "dozens"


class ProductStatus(Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"
    EXPIRED = "expired"
    RECALLED = "recalled"


@dataclass(frozen=True)
class Measure:
    amount: Decimal
    unit: MeasureUnit

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValidationError("Product quantity cannot be negative")


@dataclass(frozen=True)
class Pricing:
    """Cost and selling price.  Selling below cost is not allowed."""

    cost_price: Money
    selling_price: Money

    def __post_init__(self) -> None:
        if self.selling_price < self.cost_price:
            raise ValidationError("Selling price cannot be less than cost price")

    @property
    def currency(self) -> str:
        return self.selling_price.currency


UNSELLABLE_STATUSES = frozenset({ProductStatus.EXPIRED, ProductStatus.RECALLED})


@dataclass(frozen=True)
class Production:
    """When a batch was produced and when it goes off.  Both optional."""

    date: datetime | None = None
    expiry_date: datetime | None = None

    def validate(self, now: datetime) -> None:
        if self.date is not None and self.date > now:
            raise ValidationError("Production date cannot be in the future")
        if (
            self.date is not None
            and self.expiry_date is not None
            and self.expiry_date <= self.date
        ):
            raise ValidationError("Expiry date must be after production date")


@dataclass
class Product:
    """Aggregate root for an inventory-backed product.

    Use ``Product.create()`` for new products.  The ``__init__`` does no
    validation; repositories use it to reconstitute persisted products.
    """

    id: str | None
    farm_id: str
    name: str
    product_type: AnimalProductType
    quantity: Measure
    pricing: Pricing
    inventory: StockLevels
    sales: SalesStats
    production: Production = field(default_factory=Production)
    status: ProductStatus = ProductStatus.AVAILABLE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def create(
        id: str | None,
        farm_id: str,
        name: str,
        product_type: AnimalProductType,
        quantity: Measure,
        pricing: Pricing,
        available: Decimal,
        minimum_stock: Decimal | None = None,
        reorder_point: Decimal | None = None,
        production: Production | None = None,
        now: datetime | None = None,
    ) -> Product:
        """Create a new product.  Pass ``id=None`` to let the repository
        assign one on ``add``."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        if not farm_id:
            raise ValidationError("Farm is required")

        now = now or datetime.now(timezone.utc)
        production = production or Production()
        production.validate(now)

        inventory = StockLevels(
            available=available,
            minimum_stock=(
                DEFAULT_MINIMUM_STOCK if minimum_stock is None else minimum_stock
            ),
            reorder_point=(
                DEFAULT_REORDER_POINT if reorder_point is None else reorder_point
            ),
        )

        return Product(
            id=id,
            farm_id=farm_id,
            name=name.strip(),
            product_type=product_type,
            quantity=quantity,
            pricing=pricing,
            inventory=inventory,
            sales=SalesStats.empty(pricing.currency),
            production=production,
            created_at=now,
        )

    # --- Ledger mutation ------------------------------------------------------

    def apply_sale(self, quantity: Decimal, unit_price: Money, when: datetime) -> None:
        """Book a sale of ``quantity`` units at ``unit_price``.

        Either every counter moves or none does: sellability, currency and
        stock are all checked before anything is written.
        """
        self.ensure_sellable(when)
        self.ensure_currency(unit_price)
        self.inventory.withdraw(quantity, product_id=self.id, product_name=self.name)
        self.sales.record(quantity, unit_price, when)
        if self.inventory.available == 0:
            self.status = ProductStatus.SOLD

    def ensure_sellable(self, now: datetime) -> None:
        if self.status in UNSELLABLE_STATUSES:
            raise ProductUnavailableError(
                f"Product {self.name} is {self.status.value} and cannot be sold"
            )
        if self.is_past_expiry(now):
            raise ProductUnavailableError(
                f"Product {self.name} expired on "
                f"{self.production.expiry_date:%Y-%m-%d}"
            )

    def ensure_currency(self, unit_price: Money) -> None:
        if unit_price.currency != self.sales.total_revenue.currency:
            raise ValidationError(
                f"Cannot combine {self.sales.total_revenue.currency} "
                f"with {unit_price.currency}"
            )

    # --- Lifecycle ------------------------------------------------------------

    def expire(self, now: datetime) -> bool:
        """Mark the product expired if its expiry date has passed."""
        if self.status in UNSELLABLE_STATUSES or not self.is_past_expiry(now):
            return False
        self.status = ProductStatus.EXPIRED
        return True

    def recall(self) -> None:
        if self.status == ProductStatus.RECALLED:
            raise ValidationError(f"Product {self.name} is already recalled")
        self.status = ProductStatus.RECALLED

    # --- Computed properties --------------------------------------------------

    def is_past_expiry(self, now: datetime) -> bool:
        expiry = self.production.expiry_date
        return expiry is not None and expiry <= now

    def days_until_expiry(self, now: datetime) -> int | None:
        """Whole days left before expiry, rounded up; negative once past."""
        expiry = self.production.expiry_date
        if expiry is None:
            return None
        return math.ceil((expiry - now).total_seconds() / 86400)

    @property
    def total_inventory(self) -> Decimal:
        return self.inventory.total

    @property
    def stock_status(self) -> StockStatus:
        return self.inventory.status

    @property
    def profit_margin(self) -> Decimal:
        """Margin over cost as a percentage, rounded to two places."""
        cost = self.pricing.cost_price.amount
        if cost == 0:
            return Decimal("0")
        margin = (self.pricing.selling_price.amount - cost) / cost * 100
        return margin.quantize(Decimal("0.01"))
