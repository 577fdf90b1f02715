"""Application service: Update Sale Status use case.

Moves a sale along its status machine (see ``ALLOWED_TRANSITIONS`` on the
Sale aggregate).  Optional notes replace the sale's current notes.
"""

from __future__ import annotations

import logging

from farmsales.application.dto import SaleDTO, to_sale_dto
from farmsales.application.parsing import parse_enum
from farmsales.application.ports import (
    AccessPolicy,
    EventPublisher,
    Requester,
    publish_event,
)
from farmsales.domain.exceptions import EntityNotFoundError
from farmsales.domain.model.sale import SaleStatus
from farmsales.domain.repository.sale_repository import SaleRepository
from farmsales.domain.service.clock import Clock, utc_now
from farmsales.domain.service.locking import KeyedLock

logger = logging.getLogger(__name__)


class UpdateSaleStatusHandler:

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

    def handle(
        self,
        requester: Requester,
        sale_id: int,
        status: str,
        notes: str | None = None,
    ) -> SaleDTO:
        new_status = parse_enum(SaleStatus, status, "sale status")

        with self._locks.hold(sale_id):
            sale = self._sale_repo.get_by_id(sale_id)
            if sale is None:
                raise EntityNotFoundError(f"Sale #{sale_id} not found")
            self._access.check(requester, sale.farm_id)

            sale.transition_to(new_status, self._clock())
            if notes:
                sale.notes = notes
            self._sale_repo.save(sale)

        logger.info(
            "Sale status updated: %s to %s", sale.order_number, new_status.value
        )
        publish_event(
            self._publisher,
            sale.farm_id,
            "sale-status-updated",
            {
                "saleId": sale.id,
                "orderNumber": sale.order_number,
                "status": sale.status.value,
            },
        )
        return to_sale_dto(sale)
