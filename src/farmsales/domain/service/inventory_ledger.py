"""Domain service: Inventory Ledger.

Books sales against product stock: decrements ``available``, increments
``sold`` and keeps the per-product sales statistics up to date.

Every read-check-write on a product runs under that product's lock, so
two sales of the same product cannot both pass the stock check on the
same units.  For sales with several lines the caller takes all the locks
with ``hold()`` and then uses the two-phase pair:

  Phase 1, ``ensure_available``: validate every line.  Fails fast
  before any mutation.
  Phase 2, ``apply_all``: mutate and persist.  If persisting fails part
  way, every product touched so far is restored.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from decimal import Decimal

from farmsales.domain.exceptions import EntityNotFoundError, InsufficientInventoryError
from farmsales.domain.model.product import Product
from farmsales.domain.model.value_objects import Money
from farmsales.domain.repository.product_repository import ProductRepository
from farmsales.domain.service.clock import Clock, utc_now
from farmsales.domain.service.locking import KeyedLock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockWithdrawal:
    """One line of a sale as seen by the ledger."""

    product_id: str
    quantity: Decimal
    unit_price: Money


class InventoryLedger:

    def __init__(
        self,
        product_repo: ProductRepository,
        locks: KeyedLock | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._product_repo = product_repo
        self._locks = locks or KeyedLock()
        self._clock = clock

    def apply_sale(self, product_id: str, quantity: Decimal, unit_price: Money) -> Product:
        """Book a single sale line and return the updated product."""
        with self.hold([product_id]):
            product = self._load(product_id)
            product.apply_sale(quantity, unit_price, self._clock())
            self._product_repo.save(product)
        logger.info(
            "Stock updated for product %s: sold %s, %s left",
            product.id, quantity, product.inventory.available,
        )
        return product

    def hold(self, keys: Iterable[str]) -> AbstractContextManager[None]:
        """Lock every key (product ID, farm key) for the duration of a block."""
        return self._locks.hold_all(keys)

    def ensure_available(self, lines: list[StockWithdrawal]) -> None:
        """Check that every line can be booked.  Caller must hold the locks.

        Lines for the same product are summed before the stock check.  An
        expired or recalled product, or a price in another currency, fails
        here too.
        """
        now = self._clock()
        requested: dict[str, Decimal] = {}
        for line in lines:
            product = self._load(line.product_id)
            product.ensure_sellable(now)
            product.ensure_currency(line.unit_price)
            requested[line.product_id] = (
                requested.get(line.product_id, Decimal("0")) + line.quantity
            )

        for product_id, quantity in requested.items():
            product = self._load(product_id)
            if not product.inventory.can_withdraw(quantity):
                raise InsufficientInventoryError(
                    product_id=product.id,
                    product_name=product.name,
                    requested=quantity,
                    available=product.inventory.available,
                )

    def apply_all(self, lines: list[StockWithdrawal]) -> list[Product]:
        """Book every line.  Caller must hold the locks.

        All or nothing: on failure, every product touched so far is written
        back in their previous state before the error is re-raised.
        """
        now = self._clock()
        snapshots: list[Product] = []
        updated: list[Product] = []
        try:
            for line in lines:
                product = self._load(line.product_id)
                snapshots.append(copy.deepcopy(product))
                product.apply_sale(line.quantity, line.unit_price, now)
                self._product_repo.save(product)
                updated.append(product)
        except Exception:
            self._restore(snapshots)
            raise
        return updated

    # --- Internal helpers -----------------------------------------------------

    def _load(self, product_id: str) -> Product:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
        return product

    def _restore(self, snapshots: list[Product]) -> None:
        for snapshot in reversed(snapshots):
            try:
                self._product_repo.save(snapshot)
            except Exception:
                logger.exception("Failed to restore stock for product %s", snapshot.id)
