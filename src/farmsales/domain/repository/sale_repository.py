"""Abstract repository for Sale aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from farmsales.domain.model.sale import Sale


class SaleRepository(ABC):

    @abstractmethod
    def add(self, sale: Sale) -> None:
        """Persist a new sale and assign its ID.

        Raises DuplicateOrderNumberError if another sale already holds
        ``sale.order_number``.  The check and the insert are one step.
        """

    @abstractmethod
    def get_by_id(self, sale_id: int) -> Sale | None:
        """Return a sale by its ID, or None if not found."""

    @abstractmethod
    def get_by_order_number(self, order_number: str) -> Sale | None:
        """Return a sale by its order number, or None if not found."""

    @abstractmethod
    def list_by_farm(self, farm_id: str) -> list[Sale]:
        """Return every sale recorded for a farm."""

    @abstractmethod
    def save(self, sale: Sale) -> None:
        """Persist changes to an existing sale."""

    @abstractmethod
    def delete(self, sale_id: int) -> None:
        """Remove a sale.  Used to undo a sale whose stock update failed."""
