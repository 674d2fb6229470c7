"""
strategy/monitor.py - Spread monitoring cycle.

One cycle:
1. observation index (block number)
2. evaluate every pair concurrently; within a pair, notionals in order
3. once ALL pairs are done, commit in configured order:
   stats -> persistence tracker -> alerts -> durable log

A tick that arrives while a cycle is in flight is skipped, never queued.
A cancelled cycle commits nothing, so tracker and stats always reflect
the last fully observed cycle.
"""

import asyncio
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from core.constants import ErrorCode
from core.exceptions import ArbwatchError, InfraError, LogWriteFailure
from core.format_money import format_pct, format_usd
from core.logging import get_logger
from core.models import PersistenceEvent, Quote, RoundTrip, TradingPair
from monitoring.alerts import AlertDeduplicator
from monitoring.spread_log import SpreadLog
from monitoring.stats import MonitorStats
from strategy.config import MonitorSettings
from strategy.persistence import SpikeTracker
from strategy.pricing import PriceOracle
from strategy.round_trip import PairEvaluation, RoundTripEvaluator

logger = get_logger(__name__)

BlockSource = Callable[[], Awaitable[int]]
CycleHook = Callable[["CycleResult"], Awaitable[None]]


@dataclass
class PairOutcome:
    """Result of evaluating one pair for one cycle."""
    pair: TradingPair
    evaluations: list[PairEvaluation] = field(default_factory=list)
    error: Optional[ArbwatchError] = None


@dataclass
class CycleResult:
    """What one committed cycle produced."""
    cycle: int
    observation_index: int
    round_trips: list[RoundTrip] = field(default_factory=list)
    events: list[PersistenceEvent] = field(default_factory=list)
    alerts: list[RoundTrip] = field(default_factory=list)
    records_written: int = 0
    records_dropped: int = 0
    pair_errors: dict[str, str] = field(default_factory=dict)
    duration_s: float = 0.0


class SpreadMonitor:
    """
    Drives evaluation cycles for one chain.

    Owns the run's mutable state (tracker, stats, dedup). Nothing here is
    process-global, so several monitors can run side by side.
    """

    def __init__(
        self,
        chain: str,
        pairs: list[TradingPair],
        evaluator: RoundTripEvaluator,
        spread_log: SpreadLog,
        block_source: BlockSource,
        settings: Optional[MonitorSettings] = None,
        oracle: Optional[PriceOracle] = None,
        tracker: Optional[SpikeTracker] = None,
        stats: Optional[MonitorStats] = None,
        dedup: Optional[AlertDeduplicator] = None,
    ):
        self.chain = chain
        self.pairs = list(pairs)
        self.evaluator = evaluator
        self.spread_log = spread_log
        self.block_source = block_source
        self.settings = settings or MonitorSettings()
        self.oracle = oracle
        self.tracker = tracker or SpikeTracker(
            threshold_pct=self.settings.log_threshold_pct,
            sign=self.settings.spread_sign,
        )
        self.stats = stats or MonitorStats(thresholds_pct=self.settings.crossing_thresholds_pct)
        self.dedup = dedup or AlertDeduplicator(
            cooldown_s=self.settings.dedup_cooldown_s,
            min_delta_pct=self.settings.dedup_min_delta_pct,
        )

        self._in_cycle = False
        self._tasks: set[asyncio.Task] = set()

        for pair in self.pairs:
            for notional in self.settings.notionals_usd:
                self.stats.init_pair(pair.name, notional)

    @property
    def in_cycle(self) -> bool:
        return self._in_cycle

    # =========================================================================
    # EVALUATION
    # =========================================================================

    async def _evaluate_pair(self, pair: TradingPair, observation_index: int) -> PairOutcome:
        outcome = PairOutcome(pair=pair)
        try:
            for notional in self.settings.notionals_usd:
                outcome.evaluations.append(
                    await self.evaluator.evaluate_detailed(pair, notional, observation_index)
                )
        except ArbwatchError as e:
            outcome.error = e
            outcome.evaluations = []
            logger.warning(
                f"{pair.name} skipped this cycle: {e}",
                extra={"context": {"pair": pair.name, "error_code": e.code.value}},
            )
        except Exception as e:
            outcome.error = ArbwatchError(message=f"{type(e).__name__}: {e}")
            outcome.evaluations = []
            logger.error(
                f"{pair.name} evaluation crashed: {e}",
                exc_info=True,
                extra={"context": {"pair": pair.name}},
            )
        return outcome

    async def run_cycle(self) -> Optional[CycleResult]:
        """
        Run one full cycle.

        Returns None when the tick was skipped (cycle already in flight) or
        the observation index could not be fetched.
        """
        if self._in_cycle:
            self.stats.skipped_ticks += 1
            logger.warning(
                "Previous cycle still running, tick skipped",
                extra={"context": {"skipped_ticks": self.stats.skipped_ticks}},
            )
            return None

        self._in_cycle = True
        started = time.monotonic()
        try:
            try:
                observation_index = await self.block_source()
            except InfraError as e:
                logger.warning(f"Cycle aborted, no observation index: {e}")
                return None

            if (
                self.oracle is not None
                and self.stats.cycles > 0
                and self.stats.cycles % self.settings.price_refresh_cycles == 0
            ):
                await self.oracle.refresh()

            outcomes = await asyncio.gather(
                *(self._evaluate_pair(pair, observation_index) for pair in self.pairs)
            )

            result = self._commit(observation_index, outcomes)
            result.duration_s = time.monotonic() - started
            return result
        finally:
            self._in_cycle = False

    # =========================================================================
    # COMMIT
    # =========================================================================

    def _commit(self, observation_index: int, outcomes: list[PairOutcome]) -> CycleResult:
        """Apply one complete cycle to stats, tracker, alerts and the log."""
        self.stats.cycles += 1
        result = CycleResult(cycle=self.stats.cycles, observation_index=observation_index)

        for outcome in outcomes:
            if outcome.error is not None:
                self.stats.record_pair_error(outcome.error.code)
                result.pair_errors[outcome.pair.name] = str(outcome.error)
                continue

            for evaluation in outcome.evaluations:
                quotes: list[Quote] = evaluation.forward_quotes + evaluation.reverse_quotes
                self.stats.record_quotes(quotes)

                for trip in evaluation.round_trips:
                    result.round_trips.append(trip)
                    self.stats.record_round_trip(trip)

                    event = self.tracker.observe_round_trip(trip, observation_index)
                    if event is not None:
                        self.stats.record_persistence(event)
                        result.events.append(event)

                    if trip.spread_pct >= self.settings.alert_threshold_pct:
                        self._alert(trip, observation_index, result)

        self._write_log(observation_index, result)
        return result

    def _alert(self, trip: RoundTrip, observation_index: int, result: CycleResult) -> None:
        if not self.dedup.should_alert(trip.pair, trip.direction, trip.spread_pct):
            self.stats.alerts_suppressed += 1
            return

        self.stats.alerts_emitted += 1
        result.alerts.append(trip)
        logger.info(
            f"SPREAD {trip.pair} ${trip.notional_usd} {trip.direction}: "
            f"+{format_pct(trip.spread_pct)}% net={format_pct(trip.net_pct)}% "
            f"(${format_usd(trip.net_usd)}) [obs {observation_index}]",
            extra={"context": {
                "pair": trip.pair,
                "direction": trip.direction,
                "notional_usd": str(trip.notional_usd),
                "spread_pct": format_pct(trip.spread_pct),
                "observation_index": observation_index,
            }},
        )

    def _write_log(self, observation_index: int, result: CycleResult) -> None:
        try:
            written = self.spread_log.write(result.round_trips, observation_index)
        except LogWriteFailure as e:
            dropped = sum(1 for t in result.round_trips if self.spread_log.should_record(t))
            self.stats.records_dropped += dropped
            self.stats.record_pair_error(ErrorCode.LOG_WRITE_FAILURE)
            result.records_dropped = dropped
            logger.error(
                f"Spread log write failed, {dropped} record(s) lost: {e}",
                extra={"context": e.details},
            )
            return

        self.stats.records_written += written.written
        self.stats.records_dropped += written.dropped
        result.records_written = written.written
        result.records_dropped = written.dropped

    # =========================================================================
    # SELF-TEST / POLLER
    # =========================================================================

    async def self_test(self, notional_usd: Optional[Decimal] = None) -> list[Quote]:
        """Quote a small forward amount at every venue of every pair."""
        notional = notional_usd or self.settings.self_test_notional_usd
        quotes: list[Quote] = []

        for pair in self.pairs:
            try:
                amount_in = self.evaluator.native_amount(pair, notional)
            except ArbwatchError as e:
                logger.warning(f"Self-test {pair.name}: {e}")
                continue

            for venue in pair.venues:
                quote = await self.evaluator.quoter.fetch_quote(
                    venue, pair.asset0, pair.asset1, amount_in
                )
                quotes.append(quote)
                if quote.ok:
                    logger.info(
                        f"Self-test OK: {pair.name} on {venue.name} -> {quote.amount_out} {pair.asset1.symbol} units",
                        extra={"context": quote.to_dict()},
                    )
                else:
                    logger.warning(
                        f"Self-test FAIL: {pair.name} on {venue.name}: "
                        f"[{quote.error_code.value}] {quote.error_message[:70]}",
                        extra={"context": quote.to_dict()},
                    )

        return quotes

    async def _tick(self, on_cycle: Optional[CycleHook]) -> None:
        try:
            result = await self.run_cycle()
            if result is not None and on_cycle is not None:
                await on_cycle(result)
        except Exception as e:
            # later ticks still fire
            logger.error(f"Poll error: {e}", exc_info=True)

    async def run(
        self,
        shutdown: asyncio.Event,
        on_cycle: Optional[CycleHook] = None,
        once: bool = False,
    ) -> None:
        """
        Fire a tick every poll_interval_s until shutdown is set.

        Ticks are independent tasks, so a slow cycle makes later ticks
        skip rather than pile up. On shutdown, in-flight cycles are
        cancelled and commit nothing.
        """
        if once:
            await self._tick(on_cycle)
            return

        while not shutdown.is_set():
            task = asyncio.create_task(self._tick(on_cycle))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=self.settings.poll_interval_s)
            except asyncio.TimeoutError:
                continue

        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} in-flight cycle(s) on shutdown")
