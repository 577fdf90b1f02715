"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""

from __future__ import annotations

from decimal import Decimal


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InsufficientInventoryError(DomainException):
    """Requested quantity exceeds the product's available stock."""

    def __init__(
        self,
        product_id: str,
        product_name: str,
        requested: Decimal,
        available: Decimal,
    ) -> None:
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient inventory for {product_name} "
            f"(need {requested}, have {available} available)"
        )


class InvalidPaymentError(DomainException):
    """A payment would break the paid-amount invariant."""


class InvalidTransitionError(DomainException):
    """A sale status change is not allowed from the current status."""


class AccessDeniedError(DomainException):
    """The requester has no access to the farm."""


class DuplicateOrderNumberError(DomainException):
    """The order number is already used by another sale."""


class OrderNumberExhaustedError(DomainException):
    """No free order number could be found within the retry budget."""


class ProductUnavailableError(DomainException):
    """The product is expired or recalled and cannot be sold."""
