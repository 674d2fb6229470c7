# PATH: monitoring/stats.py
"""
Run statistics for ARBWATCH.

MonitorStats is an explicit context object owned by one monitor run (one
chain), never process-global. Counters are monotonic and reset only when a
new MonitorStats is created.

- PairStats: per (pair, notional) checks, best spread, threshold crossings,
  persistence events, running net % sum
- VenueHealth: per venue quote failures by error code, so configuration
  defects (schema mismatch, unreachable) stand apart from plain
  "no liquidity" signals (no route, reverted call)
"""

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from core.constants import (
    CONFIG_DEFECT_CODES,
    DEFAULT_LOG_THRESHOLD_PCT,
    LIQUIDITY_SIGNAL_CODES,
    SPIKE_THRESHOLDS_PCT,
    ErrorCode,
    Verdict,
)
from core.format_money import format_pct
from core.models import PersistenceEvent, Quote, RoundTrip

# Crossing at this level without persistence still says "extend the test"
EXTEND_THRESHOLD_PCT = Decimal("0.5")


@dataclass
class PairStats:
    """Monotonic counters for one (pair, notional)."""
    pair: str
    notional_usd: Decimal
    thresholds_pct: tuple[Decimal, ...] = SPIKE_THRESHOLDS_PCT
    checks: int = 0
    best_spread_pct: Optional[Decimal] = None
    crossings: Dict[Decimal, int] = field(default_factory=dict)
    persistence_events: int = 0
    total_net_pct: Decimal = Decimal("0")

    def __post_init__(self):
        for t in self.thresholds_pct:
            self.crossings.setdefault(t, 0)

    def record(self, trip: RoundTrip) -> None:
        self.checks += 1
        self.total_net_pct += trip.net_pct
        if self.best_spread_pct is None or trip.spread_pct > self.best_spread_pct:
            self.best_spread_pct = trip.spread_pct
        for t in self.thresholds_pct:
            if trip.spread_pct >= t:
                self.crossings[t] += 1

    @property
    def mean_net_pct(self) -> Optional[Decimal]:
        if self.checks == 0:
            return None
        return self.total_net_pct / self.checks

    def crossings_at(self, threshold_pct: Decimal) -> int:
        return self.crossings.get(threshold_pct, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "notional_usd": str(self.notional_usd),
            "checks": self.checks,
            "best_spread_pct": format_pct(self.best_spread_pct) if self.best_spread_pct is not None else None,
            "crossings": {str(t): n for t, n in self.crossings.items()},
            "persistence_events": self.persistence_events,
            "mean_net_pct": format_pct(self.mean_net_pct) if self.mean_net_pct is not None else None,
        }


@dataclass
class VenueHealth:
    """Quote outcome counters for one venue."""
    venue: str
    successes: int = 0
    failures: Counter = field(default_factory=Counter)

    def record(self, quote: Quote) -> None:
        if quote.ok:
            self.successes += 1
        else:
            self.failures[quote.error_code or ErrorCode.UNKNOWN] += 1

    @property
    def total(self) -> int:
        return self.successes + sum(self.failures.values())

    @property
    def config_defects(self) -> int:
        return sum(n for code, n in self.failures.items() if code in CONFIG_DEFECT_CODES)

    @property
    def liquidity_signals(self) -> int:
        return sum(n for code, n in self.failures.items() if code in LIQUIDITY_SIGNAL_CODES)

    @property
    def status(self) -> str:
        """OK / NO_LIQUIDITY / CONFIG_DEFECT, judged over all observed quotes."""
        if self.successes == 0 and self.config_defects > 0:
            return "CONFIG_DEFECT"
        if self.successes == 0 and self.liquidity_signals > 0:
            return "NO_LIQUIDITY"
        return "OK"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venue": self.venue,
            "status": self.status,
            "successes": self.successes,
            "failures": {code.value: n for code, n in sorted(self.failures.items())},
            "config_defects": self.config_defects,
            "liquidity_signals": self.liquidity_signals,
        }


@dataclass
class MonitorStats:
    """All counters for one monitor run."""
    thresholds_pct: tuple[Decimal, ...] = SPIKE_THRESHOLDS_PCT
    pairs: Dict[tuple[str, Decimal], PairStats] = field(default_factory=dict)
    venues: Dict[str, VenueHealth] = field(default_factory=dict)
    cycles: int = 0
    skipped_ticks: int = 0
    records_written: int = 0
    records_dropped: int = 0
    alerts_emitted: int = 0
    alerts_suppressed: int = 0
    pair_errors: Counter = field(default_factory=Counter)

    def init_pair(self, pair: str, notional_usd: Decimal) -> PairStats:
        key = (pair, notional_usd)
        if key not in self.pairs:
            self.pairs[key] = PairStats(
                pair=pair, notional_usd=notional_usd, thresholds_pct=self.thresholds_pct
            )
        return self.pairs[key]

    def record_round_trip(self, trip: RoundTrip) -> None:
        self.init_pair(trip.pair, trip.notional_usd).record(trip)

    def record_persistence(self, event: PersistenceEvent) -> None:
        self.init_pair(event.pair, event.notional_usd).persistence_events += 1

    def record_quotes(self, quotes: Iterable[Quote]) -> None:
        for quote in quotes:
            name = quote.venue.name
            if name not in self.venues:
                self.venues[name] = VenueHealth(venue=name)
            self.venues[name].record(quote)

    def record_pair_error(self, code: ErrorCode) -> None:
        self.pair_errors[code] += 1

    @property
    def total_checks(self) -> int:
        return sum(s.checks for s in self.pairs.values())

    @property
    def best_spread_pct(self) -> Optional[Decimal]:
        spreads = [s.best_spread_pct for s in self.pairs.values() if s.best_spread_pct is not None]
        return max(spreads) if spreads else None

    def verdict(self, log_threshold_pct: Decimal = DEFAULT_LOG_THRESHOLD_PCT) -> Verdict:
        """
        Overall run verdict from the aggregates alone.

        PROMOTE     any persistence event
        EXTEND      any crossing at 0.5 % without persistence
        BORDERLINE  best spread reached the logging threshold
        KILL        otherwise
        """
        if any(s.persistence_events > 0 for s in self.pairs.values()):
            return Verdict.PROMOTE
        if any(
            s.best_spread_pct is not None and s.best_spread_pct >= EXTEND_THRESHOLD_PCT
            for s in self.pairs.values()
        ):
            return Verdict.EXTEND
        best = self.best_spread_pct
        if best is not None and best >= log_threshold_pct:
            return Verdict.BORDERLINE
        return Verdict.KILL

    def notionals(self) -> list[Decimal]:
        return sorted({n for _, n in self.pairs})

    def pairs_for(self, notional_usd: Decimal) -> list[PairStats]:
        return [s for (_, n), s in self.pairs.items() if n == notional_usd]
