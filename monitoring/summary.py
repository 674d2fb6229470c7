# PATH: monitoring/summary.py
"""
Run summary for ARBWATCH.

Built purely from MonitorStats aggregates. Written as summary_latest.json
next to the spread logs and printable to the console.

SCHEMA:
- schema_version, timestamp, chain, runtime_hours, cycles
- pairs[]: PairStats.to_dict() grouped by notional
- venues[]: VenueHealth.to_dict()
- detected_schemas: venue_id -> schema name
- verdict, best_spread_pct
- counters: records_written, records_dropped, alerts_emitted,
  alerts_suppressed, skipped_ticks, pair_errors
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.constants import DEFAULT_LOG_THRESHOLD_PCT, Verdict
from core.format_money import format_pct
from core.logging import get_logger
from core.time import now_iso
from monitoring.stats import EXTEND_THRESHOLD_PCT, MonitorStats

logger = get_logger(__name__)

SCHEMA_VERSION = "1.0.0"
SUMMARY_FILENAME = "summary_latest.json"

VERDICT_TEXT = {
    Verdict.PROMOTE: "Persistent positive spreads detected",
    Verdict.EXTEND: "Positive spreads exist but persistence unknown",
    Verdict.BORDERLINE: "Some positive signals but below threshold",
    Verdict.KILL: "No positive executable spreads found",
}


@dataclass
class RunSummary:
    """Serializable snapshot of a monitor run."""
    chain: str
    runtime_hours: float
    cycles: int
    verdict: Verdict
    best_spread_pct: Optional[str]
    pairs: List[Dict[str, Any]] = field(default_factory=list)
    venues: List[Dict[str, Any]] = field(default_factory=list)
    detected_schemas: Dict[str, str] = field(default_factory=dict)
    counters: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "timestamp": self.timestamp,
            "chain": self.chain,
            "runtime_hours": round(self.runtime_hours, 2),
            "cycles": self.cycles,
            "verdict": self.verdict.value,
            "best_spread_pct": self.best_spread_pct,
            "pairs": self.pairs,
            "venues": self.venues,
            "detected_schemas": self.detected_schemas,
            "counters": self.counters,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, directory: Path) -> Path:
        """Write summary_latest.json into directory."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / SUMMARY_FILENAME
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())
        logger.info(f"Summary written: {path}")
        return path


def build_summary(
    stats: MonitorStats,
    chain: str,
    runtime_hours: float,
    log_threshold_pct: Decimal = DEFAULT_LOG_THRESHOLD_PCT,
    detected_schemas: Optional[Dict[str, str]] = None,
) -> RunSummary:
    """Assemble a RunSummary from the run's counters."""
    pairs = []
    for notional in stats.notionals():
        for s in stats.pairs_for(notional):
            pairs.append(s.to_dict())

    best = stats.best_spread_pct

    return RunSummary(
        chain=chain,
        runtime_hours=runtime_hours,
        cycles=stats.cycles,
        verdict=stats.verdict(log_threshold_pct),
        best_spread_pct=format_pct(best) if best is not None else None,
        pairs=pairs,
        venues=[v.to_dict() for _, v in sorted(stats.venues.items())],
        detected_schemas=dict(detected_schemas or {}),
        counters={
            "records_written": stats.records_written,
            "records_dropped": stats.records_dropped,
            "alerts_emitted": stats.alerts_emitted,
            "alerts_suppressed": stats.alerts_suppressed,
            "skipped_ticks": stats.skipped_ticks,
            "pair_errors": {code.value: n for code, n in stats.pair_errors.items()},
        },
    )


def format_summary_lines(stats: MonitorStats) -> list[str]:
    """Per-notional one-line-per-pair table used by periodic and final reports."""
    lines = []
    for notional in stats.notionals():
        lines.append(f"--- ${notional} notional ---")
        for s in stats.pairs_for(notional):
            if s.checks == 0:
                continue
            crossings = " ".join(f">={t}%:{n}" for t, n in s.crossings.items())
            lines.append(
                f"{s.pair}: {s.checks} chk | best={s.best_spread_pct:.3f}% | {crossings} | "
                f"persist>=2:{s.persistence_events} | avgNet={s.mean_net_pct:.3f}%"
            )
    return lines


def print_summary(summary: RunSummary, stats: MonitorStats) -> None:
    """Print run summary to console in formatted style."""
    print("\n" + "=" * 60)
    print(f"SPREAD SUMMARY - {summary.chain}")
    print("=" * 60)
    print(f"Runtime: {summary.runtime_hours:.2f}h | Cycles: {summary.cycles} | Generated: {summary.timestamp}")

    print()
    for line in format_summary_lines(stats):
        print(line)

    print("\n--- VENUES ---")
    for v in summary.venues:
        failures = ", ".join(f"{code}={n}" for code, n in v["failures"].items()) or "none"
        print(f"  {v['venue']}: {v['status']} ({v['successes']} ok, failures: {failures})")
    for venue_id, schema in summary.detected_schemas.items():
        print(f"  {venue_id}: schema {schema}")

    print("\n--- VERDICT ---")
    print(f"{summary.verdict.value} - {VERDICT_TEXT[summary.verdict]}")
    if summary.verdict == Verdict.EXTEND:
        print(f"(best spread crossed {EXTEND_THRESHOLD_PCT}% without persisting)")
    print(f"Best spread seen: {summary.best_spread_pct or 'n/a'}%")
    print("=" * 60 + "\n")
