"""Helpers for turning plain caller input into domain values."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

from farmsales.domain.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: str | E, what: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Invalid {what} '{value}' (expected one of: {allowed})"
        ) from exc


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
