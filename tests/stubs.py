"""
tests/stubs.py - In-memory stand-ins shared by unit and integration tests.
"""

from decimal import Decimal
from typing import Callable, Optional

from core.constants import ErrorCode, VenueFamily
from core.models import Asset, PairVenue, Quote, RouteParams, TradingPair, Venue

WETH_ADDRESS = "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1"
USDC_ADDRESS = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"

# (venue name, asset_in symbol, amount_in) -> amount_out, or an ErrorCode
QuoteRule = Callable[[str, str, int], object]


def make_venue(venue_id: str, family: VenueFamily = VenueFamily.CONCENTRATED_LIQUIDITY) -> Venue:
    return Venue(
        venue_id=venue_id,
        name=venue_id,
        family=family,
        address="0x" + venue_id.encode().hex().rjust(40, "0")[-40:],
    )


def make_assets(price: Optional[float] = 2500.0) -> tuple[Asset, Asset]:
    weth = Asset(symbol="WETH", address=WETH_ADDRESS, decimals=18, price_usd=price)
    usdc = Asset(symbol="USDC", address=USDC_ADDRESS, decimals=6, price_usd=1.0)
    return weth, usdc


def make_pair(*venue_ids: str, price: Optional[float] = 2500.0, name: str = "WETH/USDC") -> TradingPair:
    weth, usdc = make_assets(price)
    return TradingPair(
        name=name,
        asset0=weth,
        asset1=usdc,
        venues=tuple(PairVenue(venue=make_venue(v), route=RouteParams(fee=500)) for v in venue_ids),
    )


class StubQuoter:
    """Quote source driven by a rule function; records every call."""

    def __init__(self, rule: QuoteRule):
        self.rule = rule
        self.calls: list[tuple[str, str, int]] = []

    async def fetch_quote(self, pair_venue, asset_in, asset_out, amount_in, block_number=None) -> Quote:
        self.calls.append((pair_venue.name, asset_in.symbol, amount_in))
        outcome = self.rule(pair_venue.name, asset_in.symbol, amount_in)
        quote = Quote(venue=pair_venue, asset_in=asset_in, asset_out=asset_out, amount_in=amount_in)
        if isinstance(outcome, ErrorCode):
            quote.error_code = outcome
            quote.error_message = f"stub {outcome.value}"
        else:
            quote.amount_out = outcome
        return quote


def rate_rule(buy_rates: dict[str, Decimal], sell_rates: dict[str, Decimal]) -> QuoteRule:
    """
    Quote WETH/USDC at fixed per-venue rates.

    buy_rates:  USDC per 1 WETH when selling WETH at the venue
    sell_rates: WETH per 1 USDC when selling USDC at the venue
    """
    def rule(venue: str, asset_in: str, amount_in: int) -> object:
        if asset_in == "WETH":
            return int(Decimal(amount_in) / Decimal(10**18) * buy_rates[venue] * Decimal(10**6))
        return int(Decimal(amount_in) / Decimal(10**6) * sell_rates[venue] * Decimal(10**18))
    return rule


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
