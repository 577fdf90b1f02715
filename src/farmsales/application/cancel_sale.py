"""Application service: Cancel Sale use case.

Shipped and delivered sales cannot be cancelled.  The cancellation reason,
when given, replaces the sale's notes.  Stock booked at creation is not
returned to inventory.
"""

from __future__ import annotations

import logging

from farmsales.application.dto import SaleDTO, to_sale_dto
from farmsales.application.ports import (
    AccessPolicy,
    EventPublisher,
    Requester,
    publish_event,
)
from farmsales.domain.exceptions import EntityNotFoundError
from farmsales.domain.repository.sale_repository import SaleRepository
from farmsales.domain.service.clock import Clock, utc_now
from farmsales.domain.service.locking import KeyedLock

logger = logging.getLogger(__name__)


class CancelSaleHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        access_policy: AccessPolicy,
        publisher: EventPublisher,
        locks: KeyedLock | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._sale_repo = sale_repo
        self._access = access_policy
        self._publisher = publisher
        self._locks = locks or KeyedLock()
        self._clock = clock

    def handle(self, requester: Requester, sale_id: int, reason: str | None = None) -> SaleDTO:
        with self._locks.hold(sale_id):
            sale = self._sale_repo.get_by_id(sale_id)
            if sale is None:
                raise EntityNotFoundError(f"Sale #{sale_id} not found")
            self._access.check(requester, sale.farm_id)

            sale.cancel(reason, self._clock())
            self._sale_repo.save(sale)

        logger.info("Sale cancelled: %s", sale.order_number)
        publish_event(
            self._publisher,
            sale.farm_id,
            "sale-cancelled",
            {
                "saleId": sale.id,
                "orderNumber": sale.order_number,
                "reason": reason,
            },
        )
        return to_sale_dto(sale)
