"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.  Nothing here is cached
at module level: each call builds a fresh, explicitly wired object graph.
"""

from __future__ import annotations

from dataclasses import dataclass

from farmsales.application.add_payment import AddPaymentHandler
from farmsales.application.add_product import AddProductHandler
from farmsales.application.cancel_sale import CancelSaleHandler
from farmsales.application.create_sale import CreateSaleHandler
from farmsales.application.expire_products import ExpireProductsHandler
from farmsales.application.list_sales import ListSalesHandler
from farmsales.application.ports import AccessPolicy, EventPublisher, Requester
from farmsales.application.recall_product import RecallProductHandler
from farmsales.application.sales_analytics import SalesAnalyticsHandler
from farmsales.application.show_inventory import ShowInventoryHandler
from farmsales.application.show_sale import ShowSaleHandler
from farmsales.application.update_sale_status import UpdateSaleStatusHandler
from farmsales.domain.service.inventory_ledger import InventoryLedger
from farmsales.domain.service.locking import KeyedLock
from farmsales.infrastructure.access import FarmMembershipPolicy
from farmsales.infrastructure.config import Settings
from farmsales.infrastructure.events import LoggingEventPublisher
from farmsales.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from farmsales.infrastructure.persistence.json_sale_repository import (
    JsonSaleRepository,
)


def product_repository(settings: Settings) -> JsonProductRepository:
    return JsonProductRepository(settings.DATA_DIR / "products.json")


def sale_repository(settings: Settings) -> JsonSaleRepository:
    return JsonSaleRepository(settings.DATA_DIR / "sales.json")


def operator(settings: Settings) -> Requester:
    """The identity the command line tool acts as."""
    return Requester(
        user_id=settings.OPERATOR_ID,
        role=settings.OPERATOR_ROLE,
        farm_ids=frozenset(settings.OPERATOR_FARMS),
    )


@dataclass(frozen=True)
class SaleHandlers:
    create: CreateSaleHandler
    add_payment: AddPaymentHandler
    update_status: UpdateSaleStatusHandler
    cancel: CancelSaleHandler
    show: ShowSaleHandler
    list: ListSalesHandler
    analytics: SalesAnalyticsHandler


def sale_handlers(
    settings: Settings,
    access_policy: AccessPolicy | None = None,
    publisher: EventPublisher | None = None,
) -> SaleHandlers:
    """Build every sale handler around one set of repositories and locks."""
    access_policy = access_policy or FarmMembershipPolicy()
    publisher = publisher or LoggingEventPublisher()
    sales = sale_repository(settings)
    products = product_repository(settings)
    sale_locks = KeyedLock()

    return SaleHandlers(
        create=CreateSaleHandler(
            sale_repo=sales,
            product_repo=products,
            ledger=InventoryLedger(products),
            access_policy=access_policy,
            publisher=publisher,
            max_order_number_attempts=settings.ORDER_NUMBER_ATTEMPTS,
        ),
        add_payment=AddPaymentHandler(sales, access_policy, publisher, locks=sale_locks),
        update_status=UpdateSaleStatusHandler(
            sales, access_policy, publisher, locks=sale_locks
        ),
        cancel=CancelSaleHandler(sales, access_policy, publisher, locks=sale_locks),
        show=ShowSaleHandler(sales, access_policy),
        list=ListSalesHandler(sales, access_policy),
        analytics=SalesAnalyticsHandler(
            sales, access_policy, currency=settings.CURRENCY
        ),
    )


def add_product_handler(settings: Settings) -> AddProductHandler:
    return AddProductHandler(product_repository(settings), FarmMembershipPolicy())


def show_inventory_handler(settings: Settings) -> ShowInventoryHandler:
    return ShowInventoryHandler(product_repository(settings), FarmMembershipPolicy())


def recall_product_handler(settings: Settings) -> RecallProductHandler:
    products = product_repository(settings)
    return RecallProductHandler(products, InventoryLedger(products), FarmMembershipPolicy())


def expire_products_handler(settings: Settings) -> ExpireProductsHandler:
    products = product_repository(settings)
    return ExpireProductsHandler(products, InventoryLedger(products), FarmMembershipPolicy())
