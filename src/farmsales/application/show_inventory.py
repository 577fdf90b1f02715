"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from farmsales.application.ports import AccessPolicy, Requester
from farmsales.domain.repository.product_repository import ProductRepository
from farmsales.domain.service.clock import Clock, utc_now


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    product_name: str
    unit: str
    available: str
    reserved: str
    sold: str
    stock_status: str
    status: str
    average_price: str
    expiry_date: str | None
    days_until_expiry: int | None


class ShowInventoryHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        access_policy: AccessPolicy,
        clock: Clock = utc_now,
    ) -> None:
        self._product_repo = product_repo
        self._access = access_policy
        self._clock = clock

    def handle(self, requester: Requester, farm_id: str) -> list[InventoryLineDTO]:
        self._access.check(requester, farm_id)
        now = self._clock()
        products = self._product_repo.list_by_farm(farm_id)
        return [
            InventoryLineDTO(
                product_id=p.id,  # type: ignore[arg-type]
                product_name=p.name,
                unit=p.quantity.unit.value,
                available=str(p.inventory.available),
                reserved=str(p.inventory.reserved),
                sold=str(p.inventory.sold),
                stock_status=p.stock_status.value,
                status=p.status.value,
                average_price=str(p.sales.average_price),
                expiry_date=(
                    p.production.expiry_date.strftime("%Y-%m-%d")
                    if p.production.expiry_date is not None
                    else None
                ),
                days_until_expiry=p.days_until_expiry(now),
            )
            for p in products
        ]
