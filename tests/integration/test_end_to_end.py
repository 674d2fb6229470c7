# PATH: tests/integration/test_end_to_end.py
"""
End-to-end: mocked RPC -> adapters -> quoter -> evaluator -> monitor -> JSONL.

Two concentrated-liquidity venues A and B quote WETH/USDC at $1000:
- A sells 0.4 WETH for 1000.5 USDC and has no USDC->WETH pool
- B buys back 0.4016 WETH (worth $1004) for that USDC and has no WETH->USDC pool
So exactly one round trip exists, A→B, at +0.40% gross and +0.395% net
of $0.05 gas.
"""

import asyncio
import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from chains.providers import RPCResponse
from core.constants import ErrorCode
from core.exceptions import CallRevertedError
from dex.quoter import QuoteProvider
from monitoring.spread_log import SpreadLog
from monitoring.summary import build_summary
from strategy.config import MonitorSettings
from strategy.monitor import SpreadMonitor
from strategy.pricing import StaticPriceOracle
from strategy.round_trip import RoundTripEvaluator
from tests.stubs import USDC_ADDRESS, WETH_ADDRESS, make_pair

pytestmark = pytest.mark.integration

BLOCK = 0x1A2B3C4


def words(*values: int) -> str:
    return "0x" + "".join(hex(v)[2:].zfill(64) for v in values)


def token_in_of(call_data: str) -> str:
    return "0x" + call_data[10:74][-40:]


def build_provider(pair) -> MagicMock:
    venue_a = pair.venues[0].venue.address
    venue_b = pair.venues[1].venue.address

    async def eth_call(to, data, block="latest"):
        token_in = token_in_of(data)
        if to == venue_a and token_in == WETH_ADDRESS.lower():
            return RPCResponse(result=words(1_000_500_000, 2**96, 1, 80000), latency_ms=5, endpoint_used="mock")
        if to == venue_b and token_in == USDC_ADDRESS.lower():
            return RPCResponse(result=words(401_600_000_000_000_000, 2**96, 1, 80000), latency_ms=5, endpoint_used="mock")
        raise CallRevertedError("Call reverted: execution reverted", revert_data="0x")

    provider = MagicMock()
    provider.eth_call = AsyncMock(side_effect=eth_call)
    return provider


@pytest.fixture
def pair():
    return make_pair("A", "B")


@pytest.fixture
def monitor(pair, tmp_path):
    quoter = QuoteProvider(build_provider(pair))
    evaluator = RoundTripEvaluator(
        quoter=quoter,
        oracle=StaticPriceOracle({"WETH": 2500.0}),
        gas_cost_usd=Decimal("0.05"),
        pacing_ms=0,
    )
    settings = MonitorSettings(notionals_usd=(Decimal("1000"),), pacing_ms=0, output_dir=tmp_path)
    return SpreadMonitor(
        chain="arbitrum",
        pairs=[pair],
        evaluator=evaluator,
        spread_log=SpreadLog(tmp_path / "arbitrum", chain="arbitrum"),
        block_source=AsyncMock(return_value=BLOCK),
        settings=settings,
    )


class TestEndToEnd:
    """Full pipeline against stubbed venues."""

    @pytest.mark.asyncio
    async def test_evaluator_round_trip(self, pair, monitor):
        trips = await monitor.evaluator.evaluate(pair, Decimal("1000"))

        assert len(trips) == 1
        trip = trips[0]
        assert trip.direction == "A→B"
        assert trip.amount_in == 4 * 10**17
        assert trip.amount_back == 401_600_000_000_000_000
        assert trip.spread_pct == Decimal("0.4")
        assert trip.net_pct == Decimal("0.395")

    @pytest.mark.asyncio
    async def test_one_cycle_one_record(self, monitor):
        results = []

        async def collect(result):
            results.append(result)

        await monitor.run(asyncio.Event(), on_cycle=collect, once=True)

        assert len(results) == 1
        assert results[0].observation_index == BLOCK
        assert results[0].records_written == 1

        lines = monitor.spread_log.current_path().read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["direction"] == "A→B"
        assert record["pair"] == "WETH/USDC"
        assert record["observation_index"] == BLOCK
        assert record["spread_pct"] == "0.4000"
        assert record["net_pct"] == "0.3950"
        assert record["in_usd"] == "1000.00"
        assert record["out_usd"] == "1004.00"

    @pytest.mark.asyncio
    async def test_failures_classified_as_no_liquidity(self, monitor):
        await monitor.run_cycle()

        venues = monitor.stats.venues
        assert venues["B"].failures[ErrorCode.NO_ROUTE] == 1
        assert venues["B"].successes == 1
        assert venues["A"].successes == 1
        assert venues["A"].status == "OK"

    @pytest.mark.asyncio
    async def test_summary_after_cycles(self, monitor, tmp_path):
        for _ in range(3):
            await monitor.run_cycle()

        summary = build_summary(monitor.stats, chain="arbitrum", runtime_hours=0.1)
        path = summary.save(tmp_path)
        data = json.loads(path.read_text(encoding="utf-8"))

        # 0.4% every cycle, never dropping: one open spike, no event yet
        assert data["verdict"] == "BORDERLINE"
        assert data["best_spread_pct"] == "0.4000"
        assert data["counters"]["records_written"] == 3
        assert len(monitor.tracker) == 1
