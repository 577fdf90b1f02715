"""Order number generator.

Format: ``ORD`` + YYMMDD + three random digits, e.g. ``ORD241215047``.
The generator only proposes candidates; uniqueness is enforced by the
sale repository and the caller retries with a fresh candidate.
"""

from __future__ import annotations

import random

from farmsales.domain.service.clock import Clock, utc_now

ORDER_NUMBER_PREFIX = "ORD"
SUFFIX_SPACE = 1000


class OrderNumberGenerator:

    def __init__(self, clock: Clock = utc_now, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng or random.Random()

    def generate(self) -> str:
        today = self._clock()
        suffix = self._rng.randrange(SUFFIX_SPACE)
        return f"{ORDER_NUMBER_PREFIX}{today:%y%m%d}{suffix:03d}"
