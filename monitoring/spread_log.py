# PATH: monitoring/spread_log.py
"""
Durable spread log for ARBWATCH.

Append-only JSON Lines, one record per round trip whose spread is above
the noise floor. No record is ever rewritten; there is no update or
delete, only whole-file pruning by retention.

RECORD CONTRACT:
- timestamp, observation_index, chain, pair, direction
- notional_usd, in_usd, out_usd: 2 dp strings
- spread_pct, net_pct, net_usd: 4 dp strings

Retention:
- at most max_files log files; oldest pruned first
- a file at or above max_file_bytes accepts no further records
  (dropped + warned); rolling to a new file is the namer's job
"""

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from core.constants import (
    DEFAULT_MAX_LOG_FILE_BYTES,
    DEFAULT_MAX_LOG_FILES,
    DEFAULT_NOISE_FLOOR_PCT,
)
from core.exceptions import LogWriteFailure
from core.format_money import format_pct, format_usd
from core.logging import get_logger
from core.models import RoundTrip
from core.time import date_stamp, now_utc

logger = get_logger(__name__)

LOG_PREFIX = "spreads_"
LOG_SUFFIX = ".jsonl"

LogFileNamer = Callable[[datetime], str]


def date_partitioned_name(dt: datetime) -> str:
    """spreads_YYYYMMDD.jsonl"""
    return f"{LOG_PREFIX}{date_stamp(dt)}{LOG_SUFFIX}"


def build_record(
    trip: RoundTrip,
    observation_index: int,
    chain: str,
    timestamp: str,
) -> Dict[str, Any]:
    """Project a RoundTrip onto the durable record schema."""
    return {
        "timestamp": timestamp,
        "observation_index": observation_index,
        "chain": chain,
        "pair": trip.pair,
        "direction": trip.direction,
        "notional_usd": format_usd(trip.notional_usd),
        "spread_pct": format_pct(trip.spread_pct),
        "net_pct": format_pct(trip.net_pct),
        "net_usd": format_pct(trip.net_usd),
        "in_usd": format_usd(trip.in_usd),
        "out_usd": format_usd(trip.out_usd),
    }


@dataclass
class WriteResult:
    """Outcome of one write() call."""
    written: int = 0
    below_floor: int = 0
    dropped: int = 0
    path: Optional[Path] = None


class SpreadLog:
    """
    Append-only, date-partitioned spread record store.

    Usage:
        log = SpreadLog(Path("spread_logs/arbitrum"), chain="arbitrum")
        result = log.write(trips, observation_index=block)
    """

    def __init__(
        self,
        directory: Path,
        chain: str,
        noise_floor_pct: Decimal = DEFAULT_NOISE_FLOOR_PCT,
        max_files: int = DEFAULT_MAX_LOG_FILES,
        max_file_bytes: int = DEFAULT_MAX_LOG_FILE_BYTES,
        namer: LogFileNamer = date_partitioned_name,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.directory = Path(directory)
        self.chain = chain
        self.noise_floor_pct = noise_floor_pct
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes
        self.namer = namer
        self.clock = clock
        self._full_warned: set[Path] = set()

    def should_record(self, trip: RoundTrip) -> bool:
        return trip.spread_pct > self.noise_floor_pct

    def current_path(self, now: Optional[datetime] = None) -> Path:
        return self.directory / self.namer(now or self.clock())

    def log_files(self) -> list[Path]:
        """Existing log files, oldest first."""
        if not self.directory.exists():
            return []
        return sorted(
            p for p in self.directory.glob(f"{LOG_PREFIX}*{LOG_SUFFIX}") if p.is_file()
        )

    def write(
        self,
        trips: Iterable[RoundTrip],
        observation_index: int,
        now: Optional[datetime] = None,
    ) -> WriteResult:
        """
        Append one record per trip above the noise floor.

        Raises:
            LogWriteFailure: the file could not be opened or written
        """
        now = now or self.clock()
        path = self.current_path(now)
        result = WriteResult(path=path)

        lines = []
        for trip in trips:
            if not self.should_record(trip):
                result.below_floor += 1
                continue
            record = build_record(trip, observation_index, self.chain, now.isoformat())
            lines.append(json.dumps(record, ensure_ascii=False))

        if not lines:
            return result

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            is_new = not path.exists()

            if not is_new and path.stat().st_size >= self.max_file_bytes:
                result.dropped = len(lines)
                if path not in self._full_warned:
                    self._full_warned.add(path)
                    logger.warning(
                        f"Spread log full, dropping records: {path.name}",
                        extra={"context": {"path": str(path), "max_file_bytes": self.max_file_bytes}},
                    )
                return result

            with open(path, "a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
        except OSError as e:
            raise LogWriteFailure(
                message=f"Cannot append to {path}: {e}",
                details={"path": str(path), "records": len(lines)},
            )

        result.written = len(lines)

        if is_new:
            self.prune()

        return result

    def prune(self) -> list[Path]:
        """Delete the oldest files beyond max_files."""
        files = self.log_files()
        excess = len(files) - self.max_files
        if excess <= 0:
            return []

        removed = []
        for path in files[:excess]:
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"Could not prune {path.name}: {e}")
                continue
            removed.append(path)
            self._full_warned.discard(path)

        if removed:
            logger.info(
                f"Pruned {len(removed)} old spread log(s)",
                extra={"context": {"removed": [p.name for p in removed]}},
            )
        return removed
