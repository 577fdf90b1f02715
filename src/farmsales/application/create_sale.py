"""Application service: Create Sale use case.

Orchestrates the flow between repositories, the inventory ledger and the
Sale aggregate.  Creation is all or nothing:

1. Check farm access before touching anything.
2. Resolve each animal-product line to its product (price snapshot).
3. Let the Sale aggregate compute totals and validate the payment.
4. Under the farm lock and the ledger locks for every product
   involved: check the farm currency, validate stock, store the sale
   under a fresh order number, then book the stock.  If booking fails the stored sale is removed again.
5. Publish ``sale-created`` once everything is committed.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from farmsales.application.dto import (
    CustomerSpec,
    OrderDetailsSpec,
    PaymentSpec,
    SaleDTO,
    SaleItemSpec,
    to_sale_dto,
)
from farmsales.application.parsing import as_utc, parse_enum
from farmsales.application.ports import (
    AccessPolicy,
    EventPublisher,
    Requester,
    publish_event,
)
from farmsales.domain.exceptions import (
    DuplicateOrderNumberError,
    EntityNotFoundError,
    OrderNumberExhaustedError,
    ValidationError,
)
from farmsales.domain.model.sale import (
    Customer,
    CustomerType,
    DeliveryMethod,
    OrderDetails,
    PaymentMethod,
    ProductKind,
    Sale,
    SaleLineItem,
)
from farmsales.domain.model.value_objects import Money, Quantity
from farmsales.domain.repository.product_repository import ProductRepository
from farmsales.domain.repository.sale_repository import SaleRepository
from farmsales.domain.service.clock import Clock, utc_now
from farmsales.domain.service.inventory_ledger import InventoryLedger, StockWithdrawal
from farmsales.domain.service.order_number import OrderNumberGenerator

logger = logging.getLogger(__name__)

DEFAULT_ORDER_NUMBER_ATTEMPTS = 10


def farm_lock_key(farm_id: str) -> str:
    return f"farm:{farm_id}"


class CreateSaleHandler:

    def __init__(
        self,
        sale_repo: SaleRepository,
        product_repo: ProductRepository,
        ledger: InventoryLedger,
        access_policy: AccessPolicy,
        publisher: EventPublisher,
        order_numbers: OrderNumberGenerator | None = None,
        clock: Clock = utc_now,
        max_order_number_attempts: int = DEFAULT_ORDER_NUMBER_ATTEMPTS,
    ) -> None:
        self._sale_repo = sale_repo
        self._product_repo = product_repo
        self._ledger = ledger
        self._access = access_policy
        self._publisher = publisher
        self._order_numbers = order_numbers or OrderNumberGenerator(clock)
        self._clock = clock
        self._max_attempts = max_order_number_attempts

    def handle(
        self,
        requester: Requester,
        farm_id: str,
        customer: CustomerSpec,
        items: list[SaleItemSpec],
        order_details: OrderDetailsSpec | None = None,
        payment: PaymentSpec | None = None,
        tax: str = "0",
        shipping: str = "0",
        notes: str = "",
    ) -> SaleDTO:
        self._access.check(requester, farm_id)

        order_details = order_details or OrderDetailsSpec()
        payment = payment or PaymentSpec()
        currency = payment.currency
        now = self._clock()

        draft = Sale.create(
            farm_id=farm_id,
            customer=Customer(
                name=customer.name.strip(),
                email=customer.email.strip().lower(),
                phone=customer.phone.strip(),
                address=customer.address,
                customer_type=parse_enum(
                    CustomerType, customer.customer_type, "customer type"
                ),
            ),
            items=[self._build_line(spec, farm_id, currency) for spec in items],
            order_details=OrderDetails(
                order_date=as_utc(order_details.order_date or now),
                delivery_method=parse_enum(
                    DeliveryMethod, order_details.delivery_method, "delivery method"
                ),
                delivery_address=order_details.delivery_address,
                delivery_notes=order_details.delivery_notes,
            ),
            payment_method=parse_enum(PaymentMethod, payment.method, "payment method"),
            paid_amount=Money.of(payment.paid_amount, currency),
            tax=Money.of(tax, currency),
            shipping=Money.of(shipping, currency),
            notes=notes,
            now=now,
        )

        withdrawals = [
            StockWithdrawal(
                product_id=item.product_id,
                quantity=item.quantity.value,
                unit_price=item.unit_price,
            )
            for item in draft.inventory_lines()
        ]

        locked = [farm_lock_key(farm_id), *(w.product_id for w in withdrawals)]
        with self._ledger.hold(locked):
            self._ensure_farm_currency(farm_id, currency)
            self._ledger.ensure_available(withdrawals)
            sale = self._insert_with_order_number(draft)
            try:
                self._ledger.apply_all(withdrawals)
            except Exception:
                logger.error(
                    "Stock update failed for sale %s, removing it", sale.order_number
                )
                self._sale_repo.delete(sale.id)  # type: ignore[arg-type]
                raise

        logger.info("Sale created: %s for farm %s", sale.order_number, farm_id)
        publish_event(
            self._publisher,
            farm_id,
            "sale-created",
            {
                "saleId": sale.id,
                "orderNumber": sale.order_number,
                "total": str(sale.totals.total.amount),
            },
        )
        return to_sale_dto(sale)

    # --- Internal helpers -----------------------------------------------------

    def _ensure_farm_currency(self, farm_id: str, currency: str) -> None:
        """A farm keeps all of its sales in one currency."""
        existing = self._sale_repo.list_by_farm(farm_id)
        if existing and existing[0].totals.total.currency != currency:
            raise ValidationError(
                f"Farm '{farm_id}' sells in {existing[0].totals.total.currency}, "
                f"not {currency}"
            )

    def _build_line(self, spec: SaleItemSpec, farm_id: str, currency: str) -> SaleLineItem:
        kind = parse_enum(ProductKind, spec.product_kind, "product kind")
        quantity = Quantity.of(spec.quantity)
        discount = Money.of(spec.discount, currency)

        if kind == ProductKind.FARM:
            if spec.unit_price is None:
                raise ValidationError(
                    f"Unit price is required for farm product '{spec.product_id}'"
                )
            return SaleLineItem(
                product_kind=kind,
                product_id=spec.product_id,
                name=(spec.name or "").strip(),
                quantity=quantity,
                unit=spec.unit or "",
                unit_price=Money.of(spec.unit_price, currency),
                discount=discount,
                notes=spec.notes,
            )

        product = self._product_repo.get_by_id(spec.product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{spec.product_id}'")
        if product.farm_id != farm_id:
            raise ValidationError(
                f"Product '{product.name}' does not belong to farm '{farm_id}'"
            )

        if spec.unit_price is None:
            unit_price = product.pricing.selling_price  # <-- price snapshot
        else:
            unit_price = Money.of(spec.unit_price, currency)

        return SaleLineItem(
            product_kind=kind,
            product_id=product.id,
            name=(spec.name or product.name).strip(),
            quantity=quantity,
            unit=spec.unit or product.quantity.unit.value,
            unit_price=unit_price,
            discount=discount,
            notes=spec.notes,
        )

    def _insert_with_order_number(self, draft: Sale) -> Sale:
        """Store the sale, drawing new order numbers until one is free."""
        for attempt in range(1, self._max_attempts + 1):
            candidate = replace(draft, order_number=self._order_numbers.generate())
            try:
                self._sale_repo.add(candidate)
            except DuplicateOrderNumberError:
                logger.warning(
                    "Order number %s already taken (attempt %d of %d)",
                    candidate.order_number, attempt, self._max_attempts,
                )
                continue
            return candidate
        raise OrderNumberExhaustedError(
            f"Could not allocate a free order number after {self._max_attempts} attempts"
        )
