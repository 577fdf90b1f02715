"""Event publisher that writes every event to the application log.

Stands in for a websocket / pub-sub broadcaster when the sales core runs
from the command line.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from farmsales.application.ports import EventPublisher

logger = logging.getLogger(__name__)


class LoggingEventPublisher(EventPublisher):

    def publish(self, topic: str, event: str, payload: dict[str, Any]) -> None:
        logger.info("[%s] %s %s", topic, event, json.dumps(payload, default=str))
