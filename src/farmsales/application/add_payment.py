"""Application service: Add Payment use case.

Records a payment against a sale.  The paid amount may never exceed the
sale total; a payment that would overshoot is rejected outright.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from farmsales.application.dto import SaleDTO, to_sale_dto
from farmsales.application.parsing import parse_enum
from farmsales.application.ports import (
    AccessPolicy,
    EventPublisher,
    Requester,
    publish_event,
)
from farmsales.domain.exceptions import EntityNotFoundError
from farmsales.domain.model.sale import PaymentMethod
from farmsales.domain.model.value_objects import Money
from farmsales.domain.repository.sale_repository import SaleRepository
from farmsales.domain.service.clock import Clock, utc_now
from farmsales.domain.service.locking import KeyedLock

logger = logging.getLogger(__name__)


class AddPaymentHandler:

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
        amount: str | int | Decimal,
        method: str = "cash",
        transaction_id: str | None = None,
    ) -> SaleDTO:
        with self._locks.hold(sale_id):
            sale = self._sale_repo.get_by_id(sale_id)
            if sale is None:
                raise EntityNotFoundError(f"Sale #{sale_id} not found")
            self._access.check(requester, sale.farm_id)

            sale.add_payment(
                amount=Money.of(amount, sale.payment.currency),
                method=parse_enum(PaymentMethod, method, "payment method"),
                transaction_id=transaction_id,
                now=self._clock(),
            )
            self._sale_repo.save(sale)

        logger.info("Payment added to sale: %s", sale.order_number)
        publish_event(
            self._publisher,
            sale.farm_id,
            "sale-payment-added",
            {
                "saleId": sale.id,
                "orderNumber": sale.order_number,
                "paymentStatus": sale.payment.status.value,
                "paidAmount": str(sale.payment.paid_amount.amount),
            },
        )
        return to_sale_dto(sale)
