"""Application service: Expire Products use case.

Marks every product of a farm whose expiry date has passed as expired.
Expired products are refused by the inventory ledger.
"""

from __future__ import annotations

import logging

from farmsales.application.ports import AccessPolicy, Requester
from farmsales.domain.repository.product_repository import ProductRepository
from farmsales.domain.service.clock import Clock, utc_now
from farmsales.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class ExpireProductsHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        ledger: InventoryLedger,
        access_policy: AccessPolicy,
        clock: Clock = utc_now,
    ) -> None:
        self._product_repo = product_repo
        self._ledger = ledger
        self._access = access_policy
        self._clock = clock

    def handle(self, requester: Requester, farm_id: str) -> list[str]:
        """Return the ids of the products that were marked expired."""
        self._access.check(requester, farm_id)

        now = self._clock()
        expired: list[str] = []
        for candidate in self._product_repo.list_by_farm(farm_id):
            with self._ledger.hold([candidate.id]):
                product = self._product_repo.get_by_id(candidate.id)
                if product is None or not product.expire(now):
                    continue
                self._product_repo.save(product)
            expired.append(product.id)
            logger.info("Product %s '%s' expired", product.id, product.name)
        return expired
