"""JSON-file-backed implementation of ProductRepository."""

from __future__ import annotations

import json
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from farmsales.domain.model.inventory import SalesStats, StockLevels
from farmsales.domain.model.product import (
    AnimalProductType,
    Measure,
    MeasureUnit,
    Pricing,
    Product,
    ProductStatus,
    Production,
)
from farmsales.domain.model.value_objects import Money
from farmsales.domain.repository.product_repository import ProductRepository


class JsonProductRepository(ProductRepository):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._lock = threading.Lock()
        self._ensure_file()

    # --- ProductRepository interface ------------------------------------------

    def add(self, product: Product) -> None:
        with self._lock:
            records = self._load_raw()
            product.id = str(max((int(raw["id"]) for raw in records), default=0) + 1)
            records.append(self._to_raw(product))
            self._persist_raw(records)

    def get_by_id(self, product_id: str) -> Product | None:
        for raw in self._read():
            if raw["id"] == product_id:
                return self._to_domain(raw)
        return None

    def list_by_farm(self, farm_id: str) -> list[Product]:
        return [
            self._to_domain(raw) for raw in self._read() if raw["farm_id"] == farm_id
        ]

    def list_all(self) -> list[Product]:
        return [self._to_domain(raw) for raw in self._read()]

    def save(self, product: Product) -> None:
        with self._lock:
            records = self._load_raw()
            for i, raw in enumerate(records):
                if raw["id"] == product.id:
                    records[i] = self._to_raw(product)
                    break
            else:
                records.append(self._to_raw(product))
            self._persist_raw(records)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(product: Product) -> dict:
        inv = product.inventory
        stats = product.sales
        return {
            "id": product.id,
            "farm_id": product.farm_id,
            "name": product.name,
            "product_type": product.product_type.value,
            "quantity": {
                "amount": str(product.quantity.amount),
                "unit": product.quantity.unit.value,
            },
            "pricing": {
                "cost_price": str(product.pricing.cost_price.amount),
                "selling_price": str(product.pricing.selling_price.amount),
                "currency": product.pricing.currency,
            },
            "inventory": {
                "available": str(inv.available),
                "reserved": str(inv.reserved),
                "sold": str(inv.sold),
                "minimum_stock": str(inv.minimum_stock),
                "reorder_point": str(inv.reorder_point),
            },
            "production": {
                "date": _iso(product.production.date),
                "expiry_date": _iso(product.production.expiry_date),
            },
            "sales": {
                "total_sold": str(stats.total_sold),
                "total_revenue": str(stats.total_revenue.amount),
                "average_price": str(stats.average_price.amount),
                "last_sale_date": _iso(stats.last_sale_date),
            },
            "status": product.status.value,
            "created_at": product.created_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        currency = raw["pricing"].get("currency", "USD")
        inv = raw["inventory"]
        stats = raw["sales"]
        production = raw.get("production", {})
        return Product(
            id=raw["id"],
            farm_id=raw["farm_id"],
            name=raw["name"],
            product_type=AnimalProductType(raw["product_type"]),
            quantity=Measure(
                amount=Decimal(raw["quantity"]["amount"]),
                unit=MeasureUnit(raw["quantity"]["unit"]),
            ),
            pricing=Pricing(
                cost_price=Money(Decimal(raw["pricing"]["cost_price"]), currency),
                selling_price=Money(Decimal(raw["pricing"]["selling_price"]), currency),
            ),
            inventory=StockLevels(
                available=Decimal(inv["available"]),
                reserved=Decimal(inv.get("reserved", "0")),
                sold=Decimal(inv.get("sold", "0")),
                minimum_stock=Decimal(inv["minimum_stock"]),
                reorder_point=Decimal(inv["reorder_point"]),
            ),
            sales=SalesStats(
                total_sold=Decimal(stats["total_sold"]),
                total_revenue=Money(Decimal(stats["total_revenue"]), currency),
                average_price=Money(Decimal(stats["average_price"]), currency),
                last_sale_date=_from_iso(stats.get("last_sale_date")),
            ),
            production=Production(
                date=_from_iso(production.get("date")),
                expiry_date=_from_iso(production.get("expiry_date")),
            ),
            status=ProductStatus(raw["status"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
        )

    # --- File helpers ---------------------------------------------------------

    def _read(self) -> list[dict]:
        with self._lock:
            return self._load_raw()

    def _load_raw(self) -> list[dict]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _persist_raw(self, records: list[dict]) -> None:
        self._file_path.write_text(
            json.dumps(records, indent=2) + "\n", encoding="utf-8"
        )

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text("[]", encoding="utf-8")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
