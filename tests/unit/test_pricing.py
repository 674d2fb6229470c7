"""
Unit tests for strategy/pricing.py
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from config import parse_chain_config
from core.exceptions import NoRouteError, UnreachableError
from strategy.pricing import QuotePriceOracle, StaticPriceOracle

WETH = "0x" + "11" * 20
USDC = "0x" + "22" * 20
ARB = "0x" + "33" * 20


def chain(fallback=2500):
    return parse_chain_config("test", {
        "chain_id": 1,
        "rpc_urls": ["http://localhost:8545"],
        "tokens": {
            "WETH": {"address": WETH, "decimals": 18},
            "USDC": {"address": USDC, "decimals": 6, "price_usd": 1.0},
            "ARB": {"address": ARB, "decimals": 18},
        },
        "dexes": {
            "uni": {"type": "v3", "address": "0x" + "aa" * 20},
            "camelot": {"type": "algebra", "address": "0x" + "bb" * 20},
        },
        "pairs": [
            {"token0": "WETH", "token1": "USDC", "venues": [{"dex": "uni", "fee": 500}, {"dex": "camelot"}]},
            {"token0": "WETH", "token1": "ARB", "venues": [{"dex": "uni", "fee": 3000}, {"dex": "camelot"}]},
        ],
        "price_reference": {"base": "WETH", "quote": "USDC", "venue": "uni", "fee": 500, "fallback_usd": fallback},
    })


def quoter_with(answer):
    quoter = MagicMock()
    quoter.quote = AsyncMock(side_effect=answer)
    return quoter


class TestStaticPriceOracle:
    def test_lookup_and_fallback_to_asset(self):
        cfg = chain()
        oracle = StaticPriceOracle({"WETH": 2000.0})

        assert oracle.price_usd(cfg.assets["WETH"]) == 2000.0
        assert oracle.price_usd(cfg.assets["USDC"]) == 1.0
        assert oracle.price_usd(cfg.assets["ARB"]) is None


class TestQuotePriceOracle:
    """Prices derived from venue quotes."""

    @pytest.mark.asyncio
    async def test_refresh_prices_base_then_others(self):
        cfg = chain()

        async def answer(pair_venue, token, other, amount_in, block_number=None):
            if token.symbol == "WETH":
                return 2600 * 10**6
            if token.symbol == "ARB":
                return 4 * 10**14  # 0.0004 WETH
            raise NoRouteError("none")

        quoter = quoter_with(answer)
        oracle = QuotePriceOracle(quoter, cfg)
        await oracle.refresh()

        assert oracle.price_usd(cfg.assets["WETH"]) == 2600.0
        assert oracle.price_usd(cfg.assets["ARB"]) == pytest.approx(1.04)
        assert oracle.price_usd(cfg.assets["USDC"]) == 1.0

        first = quoter.quote.await_args_list[0].args[0]
        assert first.venue.venue_id == "uni"
        assert first.route.fee == 500

    @pytest.mark.asyncio
    async def test_falls_through_venues(self):
        cfg = chain()
        calls = []

        async def answer(pair_venue, token, other, amount_in, block_number=None):
            calls.append(pair_venue.venue.venue_id)
            if pair_venue.venue.venue_id == "uni":
                raise UnreachableError("down")
            return 2550 * 10**6 if token.symbol == "WETH" else 10**15

        oracle = QuotePriceOracle(quoter_with(answer), cfg)
        await oracle.refresh()

        assert cfg.assets["WETH"].price_usd == 2550.0
        assert calls[:2] == ["uni", "uni"]

    @pytest.mark.asyncio
    async def test_fallback_price(self):
        cfg = chain(fallback=2400)

        async def answer(*args, **kwargs):
            raise NoRouteError("none")

        oracle = QuotePriceOracle(quoter_with(answer), cfg)
        await oracle.refresh()

        assert cfg.assets["WETH"].price_usd == 2400.0
        assert cfg.assets["ARB"].price_usd is None

    @pytest.mark.asyncio
    async def test_keeps_last_price_on_failure(self):
        cfg = chain(fallback=None)

        async def answer(*args, **kwargs):
            raise NoRouteError("none")

        oracle = QuotePriceOracle(quoter_with(answer), cfg)
        cfg.assets["WETH"].price_usd = 2700.0
        await oracle.refresh()

        assert cfg.assets["WETH"].price_usd == 2700.0

    def test_fixed_assets_never_requoted(self):
        oracle = QuotePriceOracle(MagicMock(), chain())
        assert oracle.fixed == {"USDC"}
