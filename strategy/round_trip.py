"""
strategy/round_trip.py - Closed-loop round-trip evaluation.

For one pair and one USD notional:
1. notional -> native amount of asset0 (rounded down)
2. forward quote asset0->asset1 at every venue, paced
3. for every ordered (i, j), i != j, with a forward output at i:
   reverse quote asset1->asset0 at j using i's output
4. USD in/out at asset0's reference price, gas deducted from net

Amounts stay integer until the USD step. No filtering by sign here.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Protocol, Union

from core.constants import DEFAULT_GAS_COST_USD, DEFAULT_PACING_MS
from core.exceptions import InvalidNotionalError
from core.logging import get_logger
from core.math import HUNDRED, native_to_usd, pct_change, safe_decimal, usd_to_native
from core.models import Asset, PairVenue, Quote, RoundTrip, TradingPair
from strategy.pricing import PriceOracle

logger = get_logger(__name__)


class QuoteSource(Protocol):
    """The slice of QuoteProvider the evaluator needs."""

    async def fetch_quote(
        self,
        pair_venue: PairVenue,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        block_number: int | None = None,
    ) -> Quote:
        ...


@dataclass
class PairEvaluation:
    """Everything one evaluate() pass produced for a (pair, notional)."""
    pair: TradingPair
    notional_usd: Decimal
    amount_in: int
    forward_quotes: list[Quote] = field(default_factory=list)
    reverse_quotes: list[Quote] = field(default_factory=list)
    round_trips: list[RoundTrip] = field(default_factory=list)

    @property
    def failed_quotes(self) -> list[Quote]:
        return [q for q in self.forward_quotes + self.reverse_quotes if not q.ok]


class RoundTripEvaluator:
    """
    Computes buy-here/sell-there round trips across every venue pair.

    Usage:
        evaluator = RoundTripEvaluator(quoter, oracle, gas_cost_usd=Decimal("0.05"))
        trips = await evaluator.evaluate(pair, Decimal("1000"))
    """

    def __init__(
        self,
        quoter: QuoteSource,
        oracle: PriceOracle,
        gas_cost_usd: Decimal = DEFAULT_GAS_COST_USD,
        pacing_ms: int = DEFAULT_PACING_MS,
    ):
        self.quoter = quoter
        self.oracle = oracle
        self.gas_cost_usd = gas_cost_usd
        self.pacing_ms = pacing_ms

    async def _pace(self) -> None:
        if self.pacing_ms > 0:
            await asyncio.sleep(self.pacing_ms / 1000)

    def _base_price(self, pair: TradingPair) -> Decimal:
        price = self.oracle.price_usd(pair.asset0)
        if price is None or price <= 0:
            raise InvalidNotionalError(
                message=f"{pair.name}: {pair.asset0.symbol} has no price",
                details={"pair": pair.name, "asset": pair.asset0.symbol},
            )
        return safe_decimal(price)

    def native_amount(self, pair: TradingPair, notional_usd: Union[Decimal, int, str]) -> int:
        """
        Native units of asset0 worth notional_usd, rounded down.

        Raises:
            InvalidNotionalError: non-positive notional, unpriced asset0, or zero amount
        """
        notional = safe_decimal(notional_usd)
        if notional <= 0:
            raise InvalidNotionalError(
                message=f"Notional must be positive: {notional_usd}",
                details={"pair": pair.name, "notional_usd": str(notional_usd)},
            )

        amount_in = usd_to_native(notional, self._base_price(pair), pair.asset0.decimals)
        if amount_in <= 0:
            raise InvalidNotionalError(
                message=f"{pair.name}: ${notional} rounds to zero {pair.asset0.symbol}",
                details={"pair": pair.name, "notional_usd": str(notional)},
            )
        return amount_in

    def build_round_trip(
        self,
        pair: TradingPair,
        notional_usd: Decimal,
        buy: PairVenue,
        sell: PairVenue,
        amount_in: int,
        amount_back: int,
        price_usd: Decimal,
    ) -> RoundTrip:
        """USD projection of a completed forward+reverse pair of quotes."""
        decimals = pair.asset0.decimals
        in_usd = native_to_usd(amount_in, price_usd, decimals)
        out_usd = native_to_usd(amount_back, price_usd, decimals)
        net_usd = out_usd - in_usd - self.gas_cost_usd

        return RoundTrip(
            pair=pair.name,
            notional_usd=notional_usd,
            buy_venue=buy.name,
            sell_venue=sell.name,
            amount_in=amount_in,
            amount_back=amount_back,
            in_usd=in_usd,
            out_usd=out_usd,
            net_usd=net_usd,
            spread_pct=pct_change(out_usd, in_usd),
            net_pct=net_usd / in_usd * HUNDRED,
        )

    async def evaluate_detailed(
        self,
        pair: TradingPair,
        notional_usd: Union[Decimal, int, str],
        block_number: Optional[int] = None,
    ) -> PairEvaluation:
        """
        Evaluate all round trips for one pair and notional.

        Raises:
            InvalidNotionalError: see native_amount()
        """
        notional = safe_decimal(notional_usd)
        amount_in = self.native_amount(pair, notional)
        price = self._base_price(pair)

        result = PairEvaluation(pair=pair, notional_usd=notional, amount_in=amount_in)

        for i, venue in enumerate(pair.venues):
            if i > 0:
                await self._pace()
            result.forward_quotes.append(
                await self.quoter.fetch_quote(
                    venue, pair.asset0, pair.asset1, amount_in, block_number
                )
            )

        for i, forward in enumerate(result.forward_quotes):
            if not forward.ok or forward.amount_out == 0:
                continue
            for j, sell in enumerate(pair.venues):
                if i == j:
                    continue
                await self._pace()
                reverse = await self.quoter.fetch_quote(
                    sell, pair.asset1, pair.asset0, forward.amount_out, block_number
                )
                result.reverse_quotes.append(reverse)
                if not reverse.ok:
                    continue

                # forward.amount_in is the amount actually quoted (after clamping)
                result.round_trips.append(self.build_round_trip(
                    pair, notional, forward.venue, sell,
                    forward.amount_in, reverse.amount_out, price,
                ))

        logger.debug(
            f"{pair.name} ${notional}: {len(result.round_trips)} round trips, "
            f"{len(result.failed_quotes)} failed quotes",
            extra={"context": {"pair": pair.name, "notional_usd": str(notional)}},
        )

        return result

    async def evaluate(
        self,
        pair: TradingPair,
        notional_usd: Union[Decimal, int, str],
        block_number: Optional[int] = None,
    ) -> list[RoundTrip]:
        """Round trips for one pair and notional (see evaluate_detailed)."""
        result = await self.evaluate_detailed(pair, notional_usd, block_number)
        return result.round_trips
