"""Tests for the CreateSaleHandler use case."""

import threading
from decimal import Decimal

import pytest

from farmsales.application.create_sale import CreateSaleHandler
from farmsales.application.dto import CustomerSpec, PaymentSpec, SaleItemSpec
from farmsales.domain.exceptions import (
    AccessDeniedError,
    EntityNotFoundError,
    InsufficientInventoryError,
    InvalidPaymentError,
    OrderNumberExhaustedError,
    ProductUnavailableError,
    ValidationError,
)
from farmsales.domain.model.value_objects import Money
from farmsales.domain.service.inventory_ledger import InventoryLedger
from tests.fakes import (
    ADMIN,
    FARMER,
    NOW,
    STRANGER,
    BrokenPublisher,
    FakeProductRepository,
    FakeSaleRepository,
    FixedClock,
    FlakyProductRepository,
    MembershipPolicy,
    RecordingPublisher,
    make_product,
)

JANE = CustomerSpec(name="Jane Doe", email="Jane@Example.com ")


class ScriptedNumbers:
    """Hands out order numbers from a fixed list, repeating the last one."""

    def __init__(self, *numbers: str) -> None:
        self._numbers = list(numbers)

    def generate(self) -> str:
        if len(self._numbers) > 1:
            return self._numbers.pop(0)
        return self._numbers[0]


class TestCreateSale:

    def _setup(self, products=None, publisher=None, order_numbers=None, product_repo=None):
        sale_repo = FakeSaleRepository()
        product_repo = product_repo or FakeProductRepository(
            products if products is not None else [make_product(available="50")]
        )
        publisher = publisher or RecordingPublisher()
        clock = FixedClock()
        handler = CreateSaleHandler(
            sale_repo,
            product_repo,
            InventoryLedger(product_repo, clock=clock),
            MembershipPolicy(),
            publisher,
            order_numbers=order_numbers,
            clock=clock,
        )
        return handler, sale_repo, product_repo, publisher

    def test_happy_path(self):
        handler, sale_repo, product_repo, _ = self._setup()

        dto = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "10")])

        assert dto.id == 1
        assert dto.order_number.startswith("ORD241215")
        assert dto.status == "pending"
        assert dto.customer_name == "Jane Doe"
        assert dto.items[0].name == "Whole Milk"
        assert dto.items[0].unit == "liters"
        assert dto.items[0].unit_price == "$2.50"
        assert dto.totals.subtotal == "$25.00"
        assert dto.totals.total == "$25.00"
        assert dto.payment.status == "pending"
        assert dto.payment.due_amount == "$25.00"

        product = product_repo.get_by_id("1")
        assert product.inventory.available == Decimal("40")
        assert product.inventory.sold == Decimal("10")
        assert product.sales.total_revenue == Money.of("25.00")
        assert product.sales.average_price == Money.of("2.50")
        assert product.sales.last_sale_date == NOW

        stored = sale_repo.get_by_id(1)
        assert stored.customer.email == "jane@example.com"

    def test_explicit_price_overrides_product_price(self):
        handler, _, _, _ = self._setup()
        dto = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "4", unit_price="3.00")])
        assert dto.totals.total == "$12.00"

    def test_farm_items_do_not_touch_stock(self):
        handler, _, product_repo, _ = self._setup()
        dto = handler.handle(
            FARMER,
            "farm-1",
            JANE,
            [
                SaleItemSpec("1", "2"),
                SaleItemSpec("c1", "5", product_kind="farm", unit_price="1.20", name="Carrots"),
            ],
        )
        assert dto.totals.subtotal == "$11.00"
        assert product_repo.get_by_id("1").inventory.available == Decimal("48")

    def test_farm_item_without_price_rejected(self):
        handler, sale_repo, _, _ = self._setup()
        with pytest.raises(ValidationError, match="Unit price is required"):
            handler.handle(
                FARMER, "farm-1", JANE,
                [SaleItemSpec("c1", "5", product_kind="farm", name="Carrots")],
            )
        assert sale_repo.list_all() == []

    def test_insufficient_stock(self):
        handler, sale_repo, product_repo, publisher = self._setup(
            products=[make_product(available="5")]
        )

        with pytest.raises(InsufficientInventoryError, match="need 10, have 5"):
            handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "10")])

        assert sale_repo.list_all() == []
        assert sale_repo.add_calls == 0
        product = product_repo.get_by_id("1")
        assert product.inventory.available == Decimal("5")
        assert product.sales.total_sold == 0
        assert publisher.events == []

    def test_multi_item_sale_is_all_or_nothing(self):
        handler, sale_repo, product_repo, _ = self._setup(products=[
            make_product(id="1", available="50"),
            make_product(id="2", name="Eggs", available="5"),
        ])

        with pytest.raises(InsufficientInventoryError):
            handler.handle(
                FARMER, "farm-1", JANE,
                [SaleItemSpec("1", "10"), SaleItemSpec("2", "10")],
            )

        assert sale_repo.list_all() == []
        assert product_repo.get_by_id("1").inventory.available == Decimal("50")
        assert product_repo.get_by_id("2").inventory.available == Decimal("5")

    def test_failed_stock_write_removes_the_sale(self):
        product_repo = FlakyProductRepository(
            [make_product(id="1"), make_product(id="2", name="Eggs")], fail_on_save=2
        )
        handler, sale_repo, _, publisher = self._setup(product_repo=product_repo)

        with pytest.raises(OSError):
            handler.handle(
                FARMER, "farm-1", JANE,
                [SaleItemSpec("1", "1"), SaleItemSpec("2", "1")],
            )

        assert sale_repo.list_all() == []
        assert product_repo.get_by_id("1").inventory.available == Decimal("50")
        assert publisher.events == []

    def test_farm_keeps_one_currency(self):
        handler, sale_repo, product_repo, _ = self._setup()
        carrots = SaleItemSpec("c1", "5", product_kind="farm", unit_price="1.20", name="Carrots")

        dto = handler.handle(
            FARMER, "farm-1", JANE, [carrots], payment=PaymentSpec(currency="EUR")
        )
        assert dto.totals.total == "$6.00"

        with pytest.raises(ValidationError, match="sells in EUR, not USD"):
            handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "2")])

        assert len(sale_repo.list_all()) == 1
        assert product_repo.get_by_id("1").inventory.available == Decimal("50")

    def test_product_priced_in_another_currency_rejected(self):
        handler, sale_repo, product_repo, _ = self._setup()
        with pytest.raises(ValidationError, match="Cannot combine USD with EUR"):
            handler.handle(
                FARMER, "farm-1", JANE, [SaleItemSpec("1", "2", unit_price="2.00")],
                payment=PaymentSpec(currency="EUR"),
            )
        assert sale_repo.list_all() == []
        assert product_repo.get_by_id("1").sales.total_sold == 0

    def test_recalled_product_cannot_be_sold(self):
        product = make_product(available="50")
        product.recall()
        handler, sale_repo, product_repo, publisher = self._setup(products=[product])

        with pytest.raises(ProductUnavailableError, match="is recalled"):
            handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "1")])

        assert sale_repo.list_all() == []
        assert product_repo.get_by_id("1").inventory.available == Decimal("50")
        assert publisher.events == []

    def test_free_sale_is_paid(self):
        handler, _, _, _ = self._setup()
        dto = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "2", unit_price="0")])
        assert dto.totals.total == "$0.00"
        assert dto.payment.status == "paid"

    def test_unknown_product(self):
        handler, _, _, _ = self._setup()
        with pytest.raises(EntityNotFoundError, match="Product not found"):
            handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("99", "1")])

    def test_product_of_another_farm_rejected(self):
        handler, _, _, _ = self._setup(products=[make_product(farm_id="farm-2")])
        with pytest.raises(ValidationError, match="does not belong to farm"):
            handler.handle(ADMIN, "farm-1", JANE, [SaleItemSpec("1", "1")])

    def test_access_denied(self):
        handler, sale_repo, product_repo, _ = self._setup()
        with pytest.raises(AccessDeniedError):
            handler.handle(STRANGER, "farm-1", JANE, [SaleItemSpec("1", "10")])
        assert sale_repo.list_all() == []
        assert product_repo.get_by_id("1").inventory.available == Decimal("50")

    def test_admin_can_sell_for_any_farm(self):
        handler, _, _, _ = self._setup()
        dto = handler.handle(ADMIN, "farm-1", JANE, [SaleItemSpec("1", "1")])
        assert dto.farm_id == "farm-1"

    def test_paid_amount_above_total_rejected(self):
        handler, sale_repo, product_repo, _ = self._setup()
        with pytest.raises(InvalidPaymentError):
            handler.handle(
                FARMER, "farm-1", JANE, [SaleItemSpec("1", "10")],
                payment=PaymentSpec(paid_amount="30"),
            )
        assert sale_repo.list_all() == []
        assert product_repo.get_by_id("1").inventory.available == Decimal("50")

    def test_publishes_sale_created(self):
        handler, _, _, publisher = self._setup()
        dto = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "10")])

        assert publisher.events == [
            (
                "farm-farm-1",
                "sale-created",
                {"saleId": 1, "orderNumber": dto.order_number, "total": "25.00"},
            )
        ]

    def test_broken_publisher_does_not_undo_the_sale(self):
        handler, sale_repo, product_repo, _ = self._setup(publisher=BrokenPublisher())

        dto = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "10")])

        assert sale_repo.get_by_id(dto.id) is not None
        assert product_repo.get_by_id("1").inventory.available == Decimal("40")


class TestOrderNumbers:

    def _setup(self, order_numbers):
        sale_repo = FakeSaleRepository()
        product_repo = FakeProductRepository([make_product(available="50")])
        clock = FixedClock()
        handler = CreateSaleHandler(
            sale_repo,
            product_repo,
            InventoryLedger(product_repo, clock=clock),
            MembershipPolicy(),
            RecordingPublisher(),
            order_numbers=order_numbers,
            clock=clock,
            max_order_number_attempts=3,
        )
        return handler, sale_repo, product_repo

    def test_taken_number_is_retried(self):
        numbers = ScriptedNumbers("ORD241215001", "ORD241215001", "ORD241215002")
        handler, sale_repo, _ = self._setup(numbers)

        first = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "1")])
        second = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "1")])

        assert first.order_number == "ORD241215001"
        assert second.order_number == "ORD241215002"
        assert sale_repo.add_calls == 3

    def test_gives_up_after_max_attempts(self):
        handler, sale_repo, product_repo = self._setup(ScriptedNumbers("ORD241215001"))
        handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "1")])

        with pytest.raises(OrderNumberExhaustedError):
            handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "1")])

        assert len(sale_repo.list_all()) == 1
        assert sale_repo.add_calls == 4
        assert product_repo.get_by_id("1").inventory.available == Decimal("49")

    def test_concurrent_sales_get_distinct_numbers_and_never_oversell(self):
        sale_repo = FakeSaleRepository()
        product_repo = FakeProductRepository([make_product(available="10")])
        handler = CreateSaleHandler(
            sale_repo,
            product_repo,
            InventoryLedger(product_repo),
            MembershipPolicy(),
            RecordingPublisher(),
        )
        created: list[str] = []
        rejected: list[Exception] = []
        guard = threading.Lock()

        def buy():
            try:
                dto = handler.handle(FARMER, "farm-1", JANE, [SaleItemSpec("1", "1")])
            except InsufficientInventoryError as exc:
                with guard:
                    rejected.append(exc)
            else:
                with guard:
                    created.append(dto.order_number)

        threads = [threading.Thread(target=buy) for _ in range(15)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == 10
        assert len(set(created)) == 10
        assert len(rejected) == 5
        assert product_repo.get_by_id("1").inventory.available == 0
