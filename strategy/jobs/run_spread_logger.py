#!/usr/bin/env python3
"""
strategy/jobs/run_spread_logger.py - CLI entrypoint for spread monitoring.

Features:
- Executable (quoter-based) round trips across venues of different AMM families
- Persistence tracking per pair/direction/notional
- Append-only JSONL spread log with retention
- Periodic summaries and a final verdict (PROMOTE / EXTEND / BORDERLINE / KILL)
- Auto-stop after max_runtime_hours

Usage:
    python -m strategy.jobs.run_spread_logger --chain arbitrum
    python -m strategy.jobs.run_spread_logger --chain arbitrum --notional 100,300,1000
    python -m strategy.jobs.run_spread_logger --chain arbitrum --pair WETH/USDC --once
"""

import asyncio
import signal
import sys
import time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import click

from chains.block import fetch_block_number
from chains.providers import RPCProvider
from config import ChainConfig, load_chain_config
from core.constants import SUMMARY_FILE_EVERY_CYCLES, SUMMARY_LOG_EVERY_CYCLES
from core.exceptions import ArbwatchError, ConfigError, InfraError
from core.logging import get_logger, set_global_context, setup_logging
from core.time import hours_since
from dex.quoter import QuoteProvider
from monitoring.spread_log import SpreadLog
from monitoring.summary import build_summary, format_summary_lines, print_summary
from strategy.config import MonitorSettings, load_monitor_settings
from strategy.monitor import CycleResult, SpreadMonitor
from strategy.pricing import QuotePriceOracle
from strategy.round_trip import RoundTripEvaluator

logger = get_logger("arbwatch.spread_logger")

__version__ = "0.1.0"


def parse_notionals(value: Optional[str]) -> Optional[tuple[Decimal, ...]]:
    """'100,300,1000' -> (Decimal('100'), Decimal('300'), Decimal('1000'))"""
    if not value:
        return None
    try:
        notionals = tuple(Decimal(v.strip()) for v in value.split(",") if v.strip())
    except InvalidOperation:
        raise click.BadParameter(f"not a comma-separated list of numbers: {value}")
    if not notionals:
        raise click.BadParameter("at least one notional is required")
    return notionals


class CycleReporter:
    """Per-cycle hook: periodic summaries, summary file, runtime limit."""

    def __init__(
        self,
        monitor: SpreadMonitor,
        quoter: QuoteProvider,
        output_dir: Path,
        shutdown: asyncio.Event,
        started: float,
    ):
        self.monitor = monitor
        self.quoter = quoter
        self.output_dir = output_dir
        self.shutdown = shutdown
        self.started = started

    @property
    def runtime_hours(self) -> float:
        return hours_since(self.started)

    def write_summary(self) -> Path:
        summary = build_summary(
            self.monitor.stats,
            chain=self.monitor.chain,
            runtime_hours=self.runtime_hours,
            log_threshold_pct=self.monitor.settings.log_threshold_pct,
            detected_schemas=self.quoter.detected_schemas(),
        )
        return summary.save(self.output_dir)

    def final_report(self) -> None:
        summary = build_summary(
            self.monitor.stats,
            chain=self.monitor.chain,
            runtime_hours=self.runtime_hours,
            log_threshold_pct=self.monitor.settings.log_threshold_pct,
            detected_schemas=self.quoter.detected_schemas(),
        )
        summary.save(self.output_dir)
        print_summary(summary, self.monitor.stats)
        for url, health in self.quoter.provider.health_summary().items():
            logger.info(
                f"RPC {url}: {health['ok']} ok, {health['reverts']} reverts, {health['errors']} errors, "
                f"avg {health['avg_latency_ms']}ms",
                extra={"context": {"endpoint": url, **health}},
            )

    async def __call__(self, result: CycleResult) -> None:
        logger.info(
            f"Cycle {result.cycle} done: {len(result.round_trips)} round trips, "
            f"{result.records_written} records, {len(result.events)} persistence events",
            extra={"context": {
                "cycle": result.cycle,
                "observation_index": result.observation_index,
                "duration_s": round(result.duration_s, 2),
                "pair_errors": len(result.pair_errors),
            }},
        )

        if result.cycle % SUMMARY_LOG_EVERY_CYCLES == 0:
            logger.info(
                f"Summary ({self.runtime_hours:.2f}h, cycle {result.cycle}, obs {result.observation_index})"
            )
            for line in format_summary_lines(self.monitor.stats):
                logger.info(line)

        if result.cycle == 1 or result.cycle % SUMMARY_FILE_EVERY_CYCLES == 0:
            self.write_summary()

        if self.runtime_hours >= self.monitor.settings.max_runtime_hours:
            logger.info(
                f"{self.monitor.settings.max_runtime_hours}h reached, auto-shutdown"
            )
            self.shutdown.set()


def build_monitor(
    chain_config: ChainConfig,
    settings: MonitorSettings,
    provider: RPCProvider,
    pair_filter: Optional[str],
) -> tuple[SpreadMonitor, QuoteProvider, QuotePriceOracle]:
    """Wire quoter, oracle, evaluator, log and monitor for one chain."""
    pairs = chain_config.select_pairs(pair_filter)
    quoter = QuoteProvider(provider)
    oracle = QuotePriceOracle(quoter, chain_config)

    evaluator = RoundTripEvaluator(
        quoter=quoter,
        oracle=oracle,
        gas_cost_usd=chain_config.gas_cost_usd,
        pacing_ms=settings.pacing_ms,
    )

    spread_log = SpreadLog(
        directory=settings.output_dir / chain_config.key,
        chain=chain_config.key,
        noise_floor_pct=settings.noise_floor_pct,
        max_files=settings.max_log_files,
        max_file_bytes=settings.max_log_file_bytes,
    )

    async def block_source() -> int:
        state = await fetch_block_number(provider)
        return state.block_number

    monitor = SpreadMonitor(
        chain=chain_config.key,
        pairs=pairs,
        evaluator=evaluator,
        spread_log=spread_log,
        block_source=block_source,
        settings=settings,
        oracle=oracle,
    )
    return monitor, quoter, oracle


async def run_spread_logger(
    chain_config: ChainConfig,
    settings: MonitorSettings,
    pair_filter: Optional[str] = None,
    once: bool = False,
) -> SpreadMonitor:
    """Run the monitor until shutdown, auto-stop, or one cycle with once=True."""
    provider = RPCProvider(chain_id=chain_config.chain_id, rpc_urls=chain_config.rpc_urls)
    shutdown = asyncio.Event()

    def request_shutdown(signum: int) -> None:
        logger.info("Shutdown requested", extra={"context": {"signal": signum}})
        shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown, sig)
        except NotImplementedError:
            signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(request_shutdown, signum))

    try:
        monitor, quoter, oracle = build_monitor(chain_config, settings, provider, pair_filter)
        output_dir = monitor.spread_log.directory
        reporter = CycleReporter(monitor, quoter, output_dir, shutdown, time.monotonic())

        block = await fetch_block_number(provider)
        logger.info(
            f"Connected to {chain_config.name} (block {block.block_number})",
            extra={"context": {
                "chain_id": chain_config.chain_id,
                "pairs": [p.name for p in monitor.pairs],
                "venues": {v.venue_id: v.family.value for v in chain_config.venues.values()},
                "notionals_usd": [str(n) for n in settings.notionals_usd],
                "poll_interval_s": settings.poll_interval_s,
                "gas_cost_usd": str(chain_config.gas_cost_usd),
                "output": str(monitor.spread_log.current_path()),
            }},
        )

        await oracle.refresh()

        if settings.self_test:
            await monitor.self_test()

        try:
            await monitor.run(shutdown, on_cycle=reporter, once=once)
        finally:
            reporter.final_report()

        return monitor
    finally:
        await provider.close()


@click.command()
@click.option("--chain", "-c", required=True, help="Chain config name (config/chains/<name>.yaml)")
@click.option("--notional", "-n", default=None, help="Comma-separated USD notionals, e.g. 100,300,1000")
@click.option("--pair", "-p", default="all", help="Only monitor this pair (e.g. WETH/USDC)")
@click.option("--interval", "-i", type=float, default=None, help="Poll interval in seconds")
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.option("--output-dir", "-o", default=None, help="Root directory for spread logs and summaries")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Monitor settings YAML (default: config/strategy.yaml)")
@click.option("--self-test/--no-self-test", default=None, help="Quote every venue once at startup")
@click.option("--log-level", "-l", default="INFO", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]))
@click.option("--json-logs/--no-json-logs", default=False)
def main(
    chain: str,
    notional: Optional[str],
    pair: str,
    interval: Optional[float],
    once: bool,
    output_dir: Optional[str],
    config_path: Optional[str],
    self_test: Optional[bool],
    log_level: str,
    json_logs: bool,
) -> None:
    """ARBWATCH Spread Logger - executable cross-venue spreads, kill or promote in 24h."""
    setup_logging(level=log_level, json_output=json_logs)
    set_global_context(service="arbwatch-spread-logger", version=__version__, chain=chain)

    try:
        chain_config = load_chain_config(chain)
        settings = load_monitor_settings(
            Path(config_path) if config_path else None, chain=chain
        ).with_overrides(
            notionals_usd=parse_notionals(notional),
            poll_interval_s=interval,
            output_dir=output_dir,
            self_test=self_test,
        )
    except ConfigError as e:
        logger.error(f"Config error: {e}", extra={"context": e.details})
        sys.exit(1)

    try:
        asyncio.run(run_spread_logger(chain_config, settings, pair_filter=pair, once=once))
    except ConfigError as e:
        logger.error(f"Config error: {e}", extra={"context": e.details})
        sys.exit(1)
    except InfraError as e:
        logger.error(f"Cannot reach {chain_config.name}: {e}", extra={"context": e.details})
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Spread logger interrupted")
    except ArbwatchError as e:
        logger.error(f"Spread logger error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
