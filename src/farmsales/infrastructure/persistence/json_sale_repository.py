"""JSON-file-backed implementation of SaleRepository.

The order-number uniqueness check and the insert happen under the same
lock, which plays the role of a unique index.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from farmsales.domain.exceptions import DuplicateOrderNumberError, EntityNotFoundError
from farmsales.domain.model.sale import (
    Customer,
    CustomerType,
    DeliveryMethod,
    OrderDetails,
    Payment,
    PaymentMethod,
    PaymentStatus,
    ProductKind,
    Sale,
    SaleLineItem,
    SaleStatus,
    Totals,
)
from farmsales.domain.model.value_objects import Money, Quantity
from farmsales.domain.repository.sale_repository import SaleRepository


class JsonSaleRepository(SaleRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._lock = threading.Lock()
        self._ensure_file()

    # --- SaleRepository interface ---------------------------------------------

    def add(self, sale: Sale) -> None:
        with self._lock:
            sales = self._load_raw()
            if any(raw["order_number"] == sale.order_number for raw in sales):
                raise DuplicateOrderNumberError(
                    f"Order number {sale.order_number} already exists"
                )
            sale.id = max((raw["id"] for raw in sales), default=0) + 1
            sales.append(self._to_raw(sale))
            self._persist_raw(sales)

    def get_by_id(self, sale_id: int) -> Sale | None:
        for raw in self._read():
            if raw["id"] == sale_id:
                return self._to_domain(raw)
        return None

    def get_by_order_number(self, order_number: str) -> Sale | None:
        for raw in self._read():
            if raw["order_number"] == order_number:
                return self._to_domain(raw)
        return None

    def list_by_farm(self, farm_id: str) -> list[Sale]:
        return [
            self._to_domain(raw) for raw in self._read() if raw["farm_id"] == farm_id
        ]

    def save(self, sale: Sale) -> None:
        if sale.id is None:
            self.add(sale)
            return

        with self._lock:
            sales = self._load_raw()
            for i, raw in enumerate(sales):
                if raw["id"] == sale.id:
                    sales[i] = self._to_raw(sale)
                    break
            else:
                raise EntityNotFoundError(f"Sale #{sale.id} not found")
            self._persist_raw(sales)

    def delete(self, sale_id: int) -> None:
        with self._lock:
            sales = self._load_raw()
            self._persist_raw([raw for raw in sales if raw["id"] != sale_id])

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(sale: Sale) -> dict:
        details = sale.order_details
        payment = sale.payment
        return {
            "id": sale.id,
            "order_number": sale.order_number,
            "farm_id": sale.farm_id,
            "customer": {
                "name": sale.customer.name,
                "email": sale.customer.email,
                "phone": sale.customer.phone,
                "address": sale.customer.address,
                "customer_type": sale.customer.customer_type.value,
            },
            "items": [
                {
                    "product_kind": item.product_kind.value,
                    "product_id": item.product_id,
                    "name": item.name,
                    "quantity": str(item.quantity.value),
                    "unit": item.unit,
                    "unit_price": str(item.unit_price.amount),
                    "discount": str(item.discount.amount),
                    "notes": item.notes,
                }
                for item in sale.items
            ],
            "order_details": {
                "order_date": details.order_date.isoformat(),
                "delivery_method": details.delivery_method.value,
                "delivery_date": _iso(details.delivery_date),
                "delivery_address": details.delivery_address,
                "delivery_notes": details.delivery_notes,
            },
            "payment": {
                "method": payment.method.value,
                "status": payment.status.value,
                "currency": payment.currency,
                "amount": str(payment.amount.amount),
                "paid_amount": str(payment.paid_amount.amount),
                "due_amount": str(payment.due_amount.amount),
                "payment_date": _iso(payment.payment_date),
                "transaction_id": payment.transaction_id,
            },
            "totals": {
                "subtotal": str(sale.totals.subtotal.amount),
                "discount": str(sale.totals.discount.amount),
                "tax": str(sale.totals.tax.amount),
                "shipping": str(sale.totals.shipping.amount),
                "total": str(sale.totals.total.amount),
            },
            "status": sale.status.value,
            "notes": sale.notes,
            "created_at": sale.created_at.isoformat(),
            "updated_at": sale.updated_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Sale:
        currency = raw["payment"].get("currency", "USD")

        def money(value: str) -> Money:
            return Money(Decimal(value), currency)

        details = raw["order_details"]
        payment = raw["payment"]
        totals = raw["totals"]
        return Sale(
            id=raw["id"],
            order_number=raw["order_number"],
            farm_id=raw["farm_id"],
            customer=Customer(
                name=raw["customer"]["name"],
                email=raw["customer"].get("email", ""),
                phone=raw["customer"].get("phone", ""),
                address=raw["customer"].get("address", ""),
                customer_type=CustomerType(raw["customer"]["customer_type"]),
            ),
            items=[
                SaleLineItem(
                    product_kind=ProductKind(i["product_kind"]),
                    product_id=i["product_id"],
                    name=i["name"],
                    quantity=Quantity(Decimal(i["quantity"])),
                    unit=i["unit"],
                    unit_price=money(i["unit_price"]),
                    discount=money(i.get("discount", "0")),
                    notes=i.get("notes", ""),
                )
                for i in raw["items"]
            ],
            order_details=OrderDetails(
                order_date=datetime.fromisoformat(details["order_date"]),
                delivery_method=DeliveryMethod(details["delivery_method"]),
                delivery_date=_from_iso(details.get("delivery_date")),
                delivery_address=details.get("delivery_address"),
                delivery_notes=details.get("delivery_notes"),
            ),
            payment=Payment(
                method=PaymentMethod(payment["method"]),
                amount=money(payment["amount"]),
                paid_amount=money(payment["paid_amount"]),
                due_amount=money(payment["due_amount"]),
                status=PaymentStatus(payment["status"]),
                payment_date=_from_iso(payment.get("payment_date")),
                transaction_id=payment.get("transaction_id"),
            ),
            totals=Totals(
                subtotal=money(totals["subtotal"]),
                discount=money(totals["discount"]),
                tax=money(totals["tax"]),
                shipping=money(totals["shipping"]),
                total=money(totals["total"]),
            ),
            status=SaleStatus(raw["status"]),
            notes=raw.get("notes", ""),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _read(self) -> list[dict]:
        with self._lock:
            return self._load_raw()

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, sales: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(sales, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
