"""
strategy/persistence.py - Spike / persistence tracking.

Per key (pair, direction, notional), two states:
- Idle: no SpikeState
- Active: SpikeState present

Idle -> Active      on the first observation at or above threshold
Active -> Active    count += 1, max_spread = max(max_spread, spread)
Active -> Idle      on the first observation below threshold; emits a
                    PersistenceEvent when count >= MIN_PERSISTENCE_COUNT.
                    The state is dropped either way.

There is no timeout eviction. A spread that never drops keeps its entry,
so the map is bounded only by configured pairs x directions x notionals.
"""

import time
from decimal import Decimal
from typing import Callable, Optional

from core.constants import DEFAULT_LOG_THRESHOLD_PCT, MIN_PERSISTENCE_COUNT, SpreadSign
from core.logging import get_logger
from core.models import PersistenceEvent, RoundTrip, SpikeState

logger = get_logger(__name__)

SpikeKey = tuple[str, str, Decimal]


class SpikeTracker:
    """
    Tracks above-threshold excursions across observations.

    Usage:
        tracker = SpikeTracker(threshold_pct=Decimal("0.3"))
        event = tracker.observe("WETH/USDC", "A→B", Decimal("1000"), Decimal("0.4"), block)
    """

    def __init__(
        self,
        threshold_pct: Decimal = DEFAULT_LOG_THRESHOLD_PCT,
        sign: SpreadSign = SpreadSign.SIGNED,
        min_count: int = MIN_PERSISTENCE_COUNT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.threshold_pct = threshold_pct
        self.sign = sign
        self.min_count = min_count
        self.clock = clock
        self.active: dict[SpikeKey, SpikeState] = {}

    def _magnitude(self, spread_pct: Decimal) -> Decimal:
        return abs(spread_pct) if self.sign == SpreadSign.ABSOLUTE else spread_pct

    def is_above(self, spread_pct: Decimal) -> bool:
        return self._magnitude(spread_pct) >= self.threshold_pct

    def get(self, pair: str, direction: str, notional_usd: Decimal) -> Optional[SpikeState]:
        return self.active.get((pair, direction, notional_usd))

    def observe(
        self,
        pair: str,
        direction: str,
        notional_usd: Decimal,
        spread_pct: Decimal,
        observation_index: int,
    ) -> Optional[PersistenceEvent]:
        """Feed one observation; returns a PersistenceEvent when a spike closes."""
        key = (pair, direction, notional_usd)
        state = self.active.get(key)
        magnitude = self._magnitude(spread_pct)

        if magnitude >= self.threshold_pct:
            if state is None:
                self.active[key] = SpikeState(
                    start_index=observation_index,
                    start_time=self.clock(),
                    count=1,
                    max_spread=magnitude,
                )
            else:
                state.count += 1
                state.max_spread = max(state.max_spread, magnitude)
            return None

        if state is None:
            return None

        del self.active[key]

        if state.count < self.min_count:
            return None

        event = PersistenceEvent(
            pair=pair,
            direction=direction,
            notional_usd=notional_usd,
            duration=state.count,
            max_spread=state.max_spread,
            wall_duration_s=self.clock() - state.start_time,
            start_index=state.start_index,
            end_index=observation_index,
        )

        logger.info(
            f"PERSISTENT: {pair} {direction} ${notional_usd} - "
            f"{event.duration} observations ({event.wall_duration_s:.0f}s), max {event.max_spread:.3f}%",
            extra={"context": event.to_dict()},
        )

        return event

    def observe_round_trip(self, trip: RoundTrip, observation_index: int) -> Optional[PersistenceEvent]:
        return self.observe(
            trip.pair, trip.direction, trip.notional_usd, trip.spread_pct, observation_index
        )

    def __len__(self) -> int:
        return len(self.active)
