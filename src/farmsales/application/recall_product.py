"""Application service: Recall Product use case."""

from __future__ import annotations

import logging

from farmsales.application.ports import AccessPolicy, Requester
from farmsales.domain.exceptions import EntityNotFoundError
from farmsales.domain.model.product import Product
from farmsales.domain.repository.product_repository import ProductRepository
from farmsales.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class RecallProductHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        ledger: InventoryLedger,
        access_policy: AccessPolicy,
    ) -> None:
        self._product_repo = product_repo
        self._ledger = ledger
        self._access = access_policy

    def handle(self, requester: Requester, product_id: str) -> Product:
        with self._ledger.hold([product_id]):
            product = self._product_repo.get_by_id(product_id)
            if product is None:
                raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
            self._access.check(requester, product.farm_id)

            product.recall()
            self._product_repo.save(product)

        logger.warning("Product %s '%s' recalled", product.id, product.name)
        return product
