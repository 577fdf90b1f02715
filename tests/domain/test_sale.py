"""Unit tests for the Sale aggregate."""

from datetime import timedelta
from decimal import Decimal

import pytest

from farmsales.domain.exceptions import (
    InvalidPaymentError,
    InvalidTransitionError,
    ValidationError,
)
from farmsales.domain.model.sale import (
    MAX_LINE_ITEMS,
    Customer,
    OrderDetails,
    PaymentMethod,
    PaymentStatus,
    ProductKind,
    Sale,
    SaleLineItem,
    SaleStatus,
    Totals,
    can_transition,
)
from farmsales.domain.model.value_objects import Money, Quantity
from tests.fakes import NOW


def _line(qty: str = "10", price: str = "2.50", discount: str = "0", name: str = "Whole Milk") -> SaleLineItem:
    return SaleLineItem(
        product_kind=ProductKind.ANIMAL,
        product_id="1",
        name=name,
        quantity=Quantity.of(qty),
        unit="liters",
        unit_price=Money.of(price),
        discount=Money.of(discount),
    )


def _sale(items=None, paid: str = "0", tax: str = "0", shipping: str = "0") -> Sale:
    return Sale.create(
        farm_id="farm-1",
        customer=Customer(name="Jane Doe"),
        items=items if items is not None else [_line()],
        order_details=OrderDetails(order_date=NOW),
        payment_method=PaymentMethod.CASH,
        paid_amount=Money.of(paid),
        tax=Money.of(tax),
        shipping=Money.of(shipping),
        now=NOW,
    )


class TestTotals:

    def test_single_line(self):
        sale = _sale()
        assert sale.totals.subtotal == Money.of("25.00")
        assert sale.totals.total == Money.of("25.00")
        assert sale.payment.due_amount == Money.of("25.00")

    def test_tax_shipping_and_discount(self):
        sale = _sale(items=[_line(discount="5")], tax="2", shipping="3")
        assert sale.totals.subtotal == Money.of("25.00")
        assert sale.totals.discount == Money.of("5")
        assert sale.totals.total == Money.of("25.00")

    def test_compute_is_pure(self):
        items = [_line(), _line(qty="1.5", price="4.00", name="Eggs")]
        first = Totals.compute(items, tax=Money.of("1"), shipping=Money.zero())
        second = Totals.compute(items, tax=Money.of("1"), shipping=Money.zero())
        assert first == second
        assert first.total == Money.of("32.00")

    def test_discount_larger_than_order_rejected(self):
        with pytest.raises(ValidationError, match="exceeds the order amount"):
            _sale(items=[_line(qty="1", price="1.00", discount="5")])


class TestCreate:

    def test_new_sale_is_pending_without_number(self):
        sale = _sale()
        assert sale.status == SaleStatus.PENDING
        assert sale.id is None
        assert sale.order_number is None
        assert sale.payment.status == PaymentStatus.PENDING
        assert sale.payment.payment_date is None

    def test_partial_upfront_payment(self):
        sale = _sale(paid="10")
        assert sale.payment.status == PaymentStatus.PARTIAL
        assert sale.payment.due_amount == Money.of("15.00")
        assert sale.payment.payment_date == NOW

    def test_full_upfront_payment(self):
        sale = _sale(paid="25")
        assert sale.payment.status == PaymentStatus.PAID
        assert sale.payment.due_amount == Money.zero()

    def test_free_sale_is_paid(self):
        sale = _sale(items=[_line(price="0")])
        assert sale.totals.total == Money.zero()
        assert sale.payment.status == PaymentStatus.PAID
        assert sale.payment.due_amount == Money.zero()

    def test_fully_discounted_sale_is_paid(self):
        sale = _sale(items=[_line(qty="2", price="1.00", discount="2")])
        assert sale.totals.total == Money.zero()
        assert sale.payment.status == PaymentStatus.PAID

    def test_paid_above_total_rejected(self):
        with pytest.raises(InvalidPaymentError, match="cannot exceed total"):
            _sale(paid="30")

    def test_empty_sale_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            _sale(items=[])

    def test_too_many_items_rejected(self):
        with pytest.raises(ValidationError, match="Maximum"):
            _sale(items=[_line() for _ in range(MAX_LINE_ITEMS + 1)])

    def test_blank_customer_rejected(self):
        with pytest.raises(ValidationError, match="Customer name is required"):
            Sale.create(
                farm_id="farm-1",
                customer=Customer(name=" "),
                items=[_line()],
                order_details=OrderDetails(order_date=NOW),
                payment_method=PaymentMethod.CASH,
                paid_amount=Money.zero(),
                tax=Money.zero(),
                shipping=Money.zero(),
            )


class TestAddPayment:

    def test_partial_then_full(self):
        sale = _sale(items=[_line(qty="40", price="2.50")])
        later = NOW + timedelta(hours=1)

        sale.add_payment(Money.of("60"), PaymentMethod.CASH, None, later)
        assert sale.payment.status == PaymentStatus.PARTIAL
        assert sale.payment.due_amount == Money.of("40.00")
        assert sale.status == SaleStatus.PENDING

        sale.add_payment(Money.of("40"), PaymentMethod.BANK_TRANSFER, "tx-9", later)
        assert sale.payment.status == PaymentStatus.PAID
        assert sale.payment.due_amount == Money.zero()
        assert sale.payment.method == PaymentMethod.BANK_TRANSFER
        assert sale.payment.transaction_id == "tx-9"
        assert sale.status == SaleStatus.CONFIRMED
        assert sale.updated_at == later

    def test_overpayment_rejected_without_changes(self):
        sale = _sale(paid="20")
        with pytest.raises(InvalidPaymentError, match="exceeds the amount due"):
            sale.add_payment(Money.of("10"), PaymentMethod.CASH, None, NOW)
        assert sale.payment.paid_amount == Money.of("20")
        assert sale.payment.status == PaymentStatus.PARTIAL

    def test_zero_payment_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            _sale().add_payment(Money.zero(), PaymentMethod.CASH, None, NOW)

    def test_full_payment_does_not_move_processing_sale(self):
        sale = _sale()
        sale.transition_to(SaleStatus.CONFIRMED, NOW)
        sale.transition_to(SaleStatus.PROCESSING, NOW)
        sale.add_payment(Money.of("25"), PaymentMethod.CASH, None, NOW)
        assert sale.status == SaleStatus.PROCESSING
        assert sale.payment.status == PaymentStatus.PAID

    def test_payment_on_cancelled_sale_rejected(self):
        sale = _sale()
        sale.cancel("changed mind", NOW)
        with pytest.raises(InvalidPaymentError, match="cancelled"):
            sale.add_payment(Money.of("5"), PaymentMethod.CASH, None, NOW)


class TestTransitions:

    def test_happy_path_to_delivered(self):
        sale = _sale()
        for status in (
            SaleStatus.CONFIRMED,
            SaleStatus.PROCESSING,
            SaleStatus.SHIPPED,
            SaleStatus.DELIVERED,
        ):
            sale.transition_to(status, NOW)
        assert sale.status == SaleStatus.DELIVERED
        assert sale.order_details.delivery_date == NOW
        assert sale.is_terminal

    def test_skipping_steps_rejected(self):
        sale = _sale()
        with pytest.raises(InvalidTransitionError, match="from 'pending' to 'delivered'"):
            sale.transition_to(SaleStatus.DELIVERED, NOW)
        assert sale.status == SaleStatus.PENDING

    def test_same_status_rejected(self):
        with pytest.raises(InvalidTransitionError, match="already pending"):
            _sale().transition_to(SaleStatus.PENDING, NOW)

    @pytest.mark.parametrize("terminal", [SaleStatus.DELIVERED, SaleStatus.CANCELLED, SaleStatus.REFUNDED])
    def test_terminal_statuses_have_no_way_out(self, terminal):
        for target in SaleStatus:
            assert not can_transition(terminal, target)

    def test_refund_allowed_after_shipping(self):
        assert can_transition(SaleStatus.SHIPPED, SaleStatus.REFUNDED)


class TestCancel:

    def test_cancel_pending_records_reason(self):
        sale = _sale()
        sale.cancel("customer request", NOW)
        assert sale.status == SaleStatus.CANCELLED
        assert sale.notes == "customer request"

    def test_cancel_without_reason_keeps_notes(self):
        sale = _sale()
        sale.notes = "leave at gate"
        sale.cancel(None, NOW)
        assert sale.notes == "leave at gate"

    @pytest.mark.parametrize("path", [
        [SaleStatus.CONFIRMED, SaleStatus.PROCESSING, SaleStatus.SHIPPED],
        [SaleStatus.CONFIRMED, SaleStatus.PROCESSING, SaleStatus.SHIPPED, SaleStatus.DELIVERED],
    ])
    def test_cancel_after_shipping_rejected(self, path):
        sale = _sale()
        for status in path:
            sale.transition_to(status, NOW)
        with pytest.raises(InvalidTransitionError, match="shipped or delivered"):
            sale.cancel("too late", NOW)
        assert sale.status == path[-1]

    def test_cancel_twice_rejected(self):
        sale = _sale()
        sale.cancel(None, NOW)
        with pytest.raises(InvalidTransitionError, match="already cancelled"):
            sale.cancel(None, NOW)


class TestDerivedValues:

    def test_item_count_and_inventory_lines(self):
        farm_line = SaleLineItem(
            product_kind=ProductKind.FARM,
            product_id="c1",
            name="Carrots",
            quantity=Quantity.of("5"),
            unit="kg",
            unit_price=Money.of("1.20"),
            discount=Money.zero(),
        )
        sale = _sale(items=[_line(), farm_line])
        assert sale.item_count == 2
        assert [i.product_id for i in sale.inventory_lines()] == ["1"]

    def test_days_since_order_rounds_up(self):
        sale = _sale()
        assert sale.days_since_order(NOW + timedelta(days=2, hours=1)) == 3

    def test_line_total(self):
        assert _line(qty="1.5", price="4.00").total_price.amount == Decimal("6.00")
