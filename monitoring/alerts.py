# PATH: monitoring/alerts.py
"""
Alert deduplication for ARBWATCH.

Alerts are the console/log-level "notable spread" emissions, not the
durable records. For one pair, an alert is suppressed when the previous
alert fired within the cooldown AND the spread moved less than the
minimum delta since then. A change of direction always alerts.
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict

from core.constants import DEFAULT_DEDUP_COOLDOWN_S, DEFAULT_DEDUP_MIN_DELTA_PCT


@dataclass
class LastAlert:
    spread_pct: Decimal
    direction: str
    at: float


class AlertDeduplicator:
    """
    Per-pair alert suppression.

    Usage:
        dedup = AlertDeduplicator()
        if dedup.should_alert(trip.pair, trip.direction, trip.spread_pct):
            logger.info(...)
    """

    def __init__(
        self,
        cooldown_s: float = DEFAULT_DEDUP_COOLDOWN_S,
        min_delta_pct: Decimal = DEFAULT_DEDUP_MIN_DELTA_PCT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cooldown_s = cooldown_s
        self.min_delta_pct = min_delta_pct
        self.clock = clock
        self.last: Dict[str, LastAlert] = {}
        self.emitted = 0
        self.suppressed = 0

    def should_alert(self, pair: str, direction: str, spread_pct: Decimal) -> bool:
        """Decide and, when emitting, remember this alert."""
        now = self.clock()
        prev = self.last.get(pair)

        if prev is not None and prev.direction == direction:
            within_cooldown = (now - prev.at) < self.cooldown_s
            small_move = abs(spread_pct - prev.spread_pct) < self.min_delta_pct
            if within_cooldown and small_move:
                self.suppressed += 1
                return False

        self.last[pair] = LastAlert(spread_pct=spread_pct, direction=direction, at=now)
        self.emitted += 1
        return True
