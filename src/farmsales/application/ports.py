"""Ports for the collaborators the sale handlers depend on.

Access control and event delivery live outside this package.  The
handlers only see these interfaces; concrete implementations are wired
in ``farmsales.infrastructure.bootstrap``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from farmsales.domain.exceptions import AccessDeniedError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Requester:
    """Who is asking: a user, their role and the farms they belong to."""

    user_id: str
    role: str = "farmer"
    farm_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class AccessPolicy(ABC):

    @abstractmethod
    def is_allowed(self, requester: Requester, farm_id: str) -> bool:
        """Return True if ``requester`` may act on ``farm_id``."""

    def check(self, requester: Requester, farm_id: str) -> None:
        if not self.is_allowed(requester, farm_id):
            logger.warning(
                "Access denied: user %s on farm %s", requester.user_id, farm_id
            )
            raise AccessDeniedError(f"Access denied to farm '{farm_id}'")


class EventPublisher(ABC):

    @abstractmethod
    def publish(self, topic: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver ``event`` with ``payload`` to subscribers of ``topic``."""


def farm_topic(farm_id: str) -> str:
    return f"farm-{farm_id}"


def publish_event(
    publisher: EventPublisher,
    farm_id: str,
    event: str,
    payload: dict[str, Any],
) -> None:
    """Publish after a committed change.

    Delivery is best effort: a failing publisher is logged and never
    undoes the change that was already persisted.
    """
    try:
        publisher.publish(farm_topic(farm_id), event, payload)
    except Exception:
        logger.exception("Failed to publish %s for farm %s", event, farm_id)
