"""Sale aggregate: the core of the domain.

The Sale is an aggregate root that owns its line items, totals and
payment record.  All business invariants are enforced here:

- totals are always computed from the line items, never taken from input
- the paid amount never exceeds the sale total
- status changes follow ``ALLOWED_TRANSITIONS``
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from farmsales.domain.exceptions import (
    InvalidPaymentError,
    InvalidTransitionError,
    ValidationError,
)
from farmsales.domain.model.value_objects import Money, Quantity


class SaleStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    DIGITAL_WALLET = "digital_wallet"


class CustomerType(Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"
    WHOLESALE = "wholesale"
    RETAIL = "retail"


class DeliveryMethod(Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    SHIPPING = "shipping"


class ProductKind(Enum):
    """Where a line item comes from.  Only animal products carry stock."""

    FARM = "farm"
    ANIMAL = "animal"


# ---------------------------------------------------------------------------
# Status machine
# ---------------------------------------------------------------------------
TERMINAL_STATUSES = frozenset(
    {SaleStatus.DELIVERED, SaleStatus.CANCELLED, SaleStatus.REFUNDED}
)

NON_CANCELLABLE_STATUSES = frozenset({SaleStatus.SHIPPED, SaleStatus.DELIVERED})

ALLOWED_TRANSITIONS: dict[SaleStatus, frozenset[SaleStatus]] = {
    SaleStatus.PENDING: frozenset(
        {SaleStatus.CONFIRMED, SaleStatus.CANCELLED, SaleStatus.REFUNDED}
    ),
    SaleStatus.CONFIRMED: frozenset(
        {SaleStatus.PROCESSING, SaleStatus.CANCELLED, SaleStatus.REFUNDED}
    ),
    SaleStatus.PROCESSING: frozenset(
        {SaleStatus.SHIPPED, SaleStatus.CANCELLED, SaleStatus.REFUNDED}
    ),
    SaleStatus.SHIPPED: frozenset({SaleStatus.DELIVERED, SaleStatus.REFUNDED}),
    SaleStatus.DELIVERED: frozenset(),
    SaleStatus.CANCELLED: frozenset(),
    SaleStatus.REFUNDED: frozenset(),
}


def can_transition(from_status: SaleStatus, to_status: SaleStatus) -> bool:
    if from_status in TERMINAL_STATUSES:
        return False
    return to_status in ALLOWED_TRANSITIONS[from_status]


# ---------------------------------------------------------------------------
# Parts of a sale
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Customer:
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    customer_type: CustomerType = CustomerType.INDIVIDUAL


@dataclass(frozen=True)
class SaleLineItem:
    """One product, quantity and price within a sale.

    ``unit_price`` is a snapshot taken when the sale was created.
    """

    product_kind: ProductKind
    product_id: str
    name: str
    quantity: Quantity
    unit: str
    unit_price: Money
    discount: Money
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Line item name is required")
        if self.discount.currency != self.unit_price.currency:
            raise ValidationError(
                f"Cannot combine {self.unit_price.currency} with {self.discount.currency}"
            )

    @property
    def total_price(self) -> Money:
        return self.unit_price * self.quantity.value

    @property
    def is_inventory_backed(self) -> bool:
        return self.product_kind == ProductKind.ANIMAL


@dataclass(frozen=True)
class Totals:
    subtotal: Money
    discount: Money
    tax: Money
    shipping: Money
    total: Money

    @staticmethod
    def compute(items: list[SaleLineItem], tax: Money, shipping: Money) -> Totals:
        """Derive totals from line items.  Pure: same input, same output."""
        subtotal = Money.zero(tax.currency)
        discount = Money.zero(tax.currency)
        for item in items:
            subtotal = subtotal + item.total_price
            discount = discount + item.discount

        gross = subtotal + tax + shipping
        if discount > gross:
            raise ValidationError(
                f"Discount {discount} exceeds the order amount {gross}"
            )
        return Totals(
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            shipping=shipping,
            total=gross - discount,
        )


@dataclass
class OrderDetails:
    order_date: datetime
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    delivery_date: datetime | None = None
    delivery_address: str | None = None
    delivery_notes: str | None = None


@dataclass
class Payment:
    method: PaymentMethod
    amount: Money
    paid_amount: Money
    due_amount: Money
    status: PaymentStatus = PaymentStatus.PENDING
    payment_date: datetime | None = None
    transaction_id: str | None = None

    @property
    def currency(self) -> str:
        return self.amount.currency


def _payment_status(paid: Money, total: Money) -> PaymentStatus:
    if paid >= total:
        return PaymentStatus.PAID
    if not paid.is_zero:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 100


@dataclass
class Sale:
    """Aggregate root for farm sales.

    Use the ``Sale.create()`` factory for new sales.  The ``__init__`` does
    no validation; repositories use it to reconstitute persisted sales.
    """

    id: int | None
    order_number: str | None
    farm_id: str
    customer: Customer
    items: list[SaleLineItem]
    order_details: OrderDetails
    payment: Payment
    totals: Totals
    status: SaleStatus = SaleStatus.PENDING
    notes: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # --- Factory (used for NEW sales only) ------------------------------------

    @staticmethod
    def create(
        farm_id: str,
        customer: Customer,
        items: list[SaleLineItem],
        order_details: OrderDetails,
        payment_method: PaymentMethod,
        paid_amount: Money,
        tax: Money,
        shipping: Money,
        notes: str = "",
        now: datetime | None = None,
    ) -> Sale:
        """Create a new pending sale, enforcing all invariants."""
        if not farm_id:
            raise ValidationError("Farm is required")
        if not customer.name or not customer.name.strip():
            raise ValidationError("Customer name is required")
        if not items:
            raise ValidationError("Sale must contain at least one item")
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per sale")

        totals = Totals.compute(items, tax=tax, shipping=shipping)
        if paid_amount > totals.total:
            raise InvalidPaymentError(
                f"Paid amount {paid_amount} cannot exceed total amount {totals.total}"
            )

        now = now or datetime.now(timezone.utc)
        payment = Payment(
            method=payment_method,
            amount=totals.total,
            paid_amount=paid_amount,
            due_amount=totals.total - paid_amount,
            status=_payment_status(paid_amount, totals.total),
            payment_date=now if not paid_amount.is_zero else None,
        )
        return Sale(
            id=None,
            order_number=None,
            farm_id=farm_id,
            customer=customer,
            items=list(items),
            order_details=order_details,
            payment=payment,
            totals=totals,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

    # --- Payments -------------------------------------------------------------

    def add_payment(
        self,
        amount: Money,
        method: PaymentMethod,
        transaction_id: str | None,
        now: datetime,
    ) -> None:
        """Record a payment against the sale total.

        A payment that would take the paid amount above the total is
        rejected without changing anything.
        """
        if amount.is_zero:
            raise ValidationError("Payment amount must be positive")
        if self.status in (SaleStatus.CANCELLED, SaleStatus.REFUNDED):
            raise InvalidPaymentError(
                f"Cannot add payment to a {self.status.value} sale"
            )

        new_paid = self.payment.paid_amount + amount
        if new_paid > self.totals.total:
            raise InvalidPaymentError(
                f"Payment of {amount} exceeds the amount due {self.payment.due_amount}"
            )

        self.payment.paid_amount = new_paid
        self.payment.due_amount = self.totals.total - new_paid
        self.payment.payment_date = now
        self.payment.transaction_id = transaction_id
        self.payment.method = method

        if new_paid >= self.totals.total:
            self.payment.status = PaymentStatus.PAID
            if self.status == SaleStatus.PENDING:
                self.status = SaleStatus.CONFIRMED
        elif not new_paid.is_zero:
            self.payment.status = PaymentStatus.PARTIAL

        self.updated_at = now

    # --- State transitions ----------------------------------------------------

    def transition_to(self, new_status: SaleStatus, now: datetime) -> None:
        if new_status == self.status:
            raise InvalidTransitionError(f"Sale is already {self.status.value}")
        if not can_transition(self.status, new_status):
            raise InvalidTransitionError(
                f"Cannot change sale status from '{self.status.value}' "
                f"to '{new_status.value}'"
            )
        self.status = new_status
        if new_status == SaleStatus.DELIVERED:
            self.order_details.delivery_date = now
        self.updated_at = now

    def cancel(self, reason: str | None, now: datetime) -> None:
        """Cancel the sale.  A given reason replaces the existing notes."""
        if self.status in NON_CANCELLABLE_STATUSES:
            raise InvalidTransitionError(
                "Cannot cancel sale that has been shipped or delivered"
            )
        if self.status == SaleStatus.CANCELLED:
            raise InvalidTransitionError("Sale is already cancelled")
        if self.status == SaleStatus.REFUNDED:
            raise InvalidTransitionError("Cannot cancel a refunded sale")

        self.status = SaleStatus.CANCELLED
        if reason:
            self.notes = reason
        self.updated_at = now

    # --- Computed properties --------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def item_count(self) -> int:
        return len(self.items)

    def days_since_order(self, now: datetime) -> int:
        elapsed = now - self.order_details.order_date
        return math.ceil(elapsed.total_seconds() / 86400)

    def inventory_lines(self) -> list[SaleLineItem]:
        return [item for item in self.items if item.is_inventory_backed]
