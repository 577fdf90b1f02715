"""Stock levels and sales statistics kept on every animal product.

These are the two halves of the inventory ledger: how much stock is left,
and what the stock that left has earned so far.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from farmsales.domain.exceptions import InsufficientInventoryError, ValidationError
from farmsales.domain.model.value_objects import Money

DEFAULT_MINIMUM_STOCK = Decimal("10")
DEFAULT_REORDER_POINT = Decimal("5")


class StockStatus(Enum):
    HEALTHY = "healthy"
    CRITICAL = "critical"
    LOW = "low"


@dataclass
class StockLevels:
    """Running stock balance for one product.

    Invariants:
    - ``available``, ``reserved`` and ``sold`` are never negative
    - a withdrawal never takes more than ``available``
    """

    available: Decimal = Decimal("0")
    reserved: Decimal = Decimal("0")
    sold: Decimal = Decimal("0")
    minimum_stock: Decimal = DEFAULT_MINIMUM_STOCK
    reorder_point: Decimal = DEFAULT_REORDER_POINT

    def __post_init__(self) -> None:
        for name in ("available", "reserved", "sold", "minimum_stock", "reorder_point"):
            if getattr(self, name) < 0:
                raise ValidationError(f"Inventory {name} cannot be negative")

    @property
    def total(self) -> Decimal:
        return self.available + self.reserved

    @property
    def status(self) -> StockStatus:
        # Reorder point is checked before minimum stock.
        if self.available <= self.reorder_point:
            return StockStatus.LOW
        if self.available <= self.minimum_stock:
            return StockStatus.CRITICAL
        return StockStatus.HEALTHY

    def can_withdraw(self, quantity: Decimal) -> bool:
        return quantity <= self.available

    def withdraw(self, quantity: Decimal, product_id: str, product_name: str) -> None:
        """Move ``quantity`` from available to sold.

        Raises InsufficientInventoryError without touching any counter if
        the stock is short.
        """
        if quantity <= 0:
            raise ValidationError("Sale quantity must be positive")
        if not self.can_withdraw(quantity):
            raise InsufficientInventoryError(
                product_id=product_id,
                product_name=product_name,
                requested=quantity,
                available=self.available,
            )
        self.available -= quantity
        self.sold += quantity


@dataclass
class SalesStats:
    """Cumulative sales economics for one product."""

    total_revenue: Money
    total_sold: Decimal = Decimal("0")
    average_price: Money = field(default_factory=Money.zero)
    last_sale_date: datetime | None = None

    def record(self, quantity: Decimal, unit_price: Money, when: datetime) -> None:
        total_sold = self.total_sold + quantity
        total_revenue = self.total_revenue + unit_price * quantity
        self.total_sold = total_sold
        self.total_revenue = total_revenue
        self.average_price = total_revenue.divided_by(total_sold)
        self.last_sale_date = when

    @staticmethod
    def empty(currency: str = "USD") -> SalesStats:
        return SalesStats(
            total_revenue=Money.zero(currency),
            average_price=Money.zero(currency),
        )
