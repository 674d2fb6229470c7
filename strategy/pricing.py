"""
strategy/pricing.py - USD reference prices for assets.

The monitor consumes prices through the PriceOracle protocol. The shipped
implementation derives them from the venues themselves:

- assets with a fixed price in config (stables) are never re-priced
- the reference base asset is priced by quoting 1 unit into the reference
  quote asset, trying the reference venue first, then every other venue,
  then the configured fallback
- every other asset is priced through the base asset (1 unit -> base)

Prices are refreshed periodically, not every cycle.
"""

from decimal import Decimal
from typing import Optional, Protocol

from config import ChainConfig
from core.constants import DEFAULT_V3_FEE
from core.exceptions import QuoteError
from core.logging import get_logger
from core.math import normalize_to_decimals
from core.models import Asset, PairVenue, RouteParams, Venue
from dex.quoter import QuoteProvider

logger = get_logger(__name__)


class PriceOracle(Protocol):
    """Anything that can price an asset in USD."""

    def price_usd(self, asset: Asset) -> Optional[float]:
        ...

    async def refresh(self) -> None:
        ...


class StaticPriceOracle:
    """Fixed prices, keyed by symbol. Used for tests and dry runs."""

    def __init__(self, prices: dict[str, float]):
        self.prices = dict(prices)

    def price_usd(self, asset: Asset) -> Optional[float]:
        return self.prices.get(asset.symbol, asset.price_usd)

    async def refresh(self) -> None:
        return None


class QuotePriceOracle:
    """Prices assets by quoting them against the chain's reference pair."""

    def __init__(self, quoter: QuoteProvider, chain: ChainConfig):
        self.quoter = quoter
        self.chain = chain
        self.fixed: set[str] = {
            symbol for symbol, asset in chain.assets.items() if asset.is_priced
        }

    def price_usd(self, asset: Asset) -> Optional[float]:
        return asset.price_usd if asset.is_priced else None

    def _route_candidates(self, token: Asset, other: Asset, preferred: Optional[Venue] = None,
                          preferred_fee: Optional[int] = None) -> list[PairVenue]:
        """Venues to try for token->other, configured pair routes first."""
        candidates: list[PairVenue] = []
        if preferred is not None:
            candidates.append(PairVenue(venue=preferred, route=RouteParams(fee=preferred_fee)))

        for pair in self.chain.pairs:
            if {pair.asset0, pair.asset1} == {token, other}:
                candidates.extend(pair.venues)

        seen = {(c.venue.venue_id, c.route) for c in candidates}
        for venue in self.chain.venues.values():
            fallback = PairVenue(venue=venue, route=RouteParams(fee=DEFAULT_V3_FEE))
            if (venue.venue_id, fallback.route) not in seen:
                candidates.append(fallback)
        return candidates

    async def _quote_one_unit(self, token: Asset, other: Asset, candidates: list[PairVenue]) -> Optional[Decimal]:
        """Units of `other` received for 1 unit of `token`, first venue that answers."""
        one_unit = 10 ** token.decimals
        for pair_venue in candidates:
            try:
                out = await self.quoter.quote(pair_venue, token, other, one_unit)
            except QuoteError as e:
                logger.debug(
                    f"Price quote {token.symbol}->{other.symbol} failed on {pair_venue.name}: {e}",
                )
                continue
            if out > 0:
                return normalize_to_decimals(out, other.decimals)
        return None

    async def refresh(self) -> None:
        """Re-price every non-fixed asset in place."""
        ref = self.chain.price_reference
        base = self.chain.assets.get(ref.base)
        quote_asset = self.chain.assets.get(ref.quote)
        if base is None:
            logger.warning("No price reference base asset configured")
            return

        if ref.base not in self.fixed:
            price: Optional[Decimal] = None
            if quote_asset is not None and quote_asset.is_priced:
                preferred = self.chain.venues.get(ref.venue) if ref.venue else None
                units = await self._quote_one_unit(
                    base, quote_asset,
                    self._route_candidates(base, quote_asset, preferred, ref.fee),
                )
                if units is not None:
                    price = units * Decimal(str(quote_asset.price_usd))

            if price is not None:
                base.price_usd = float(price)
                logger.info(
                    f"{base.symbol} price: ${price:.4f}",
                    extra={"context": {"asset": base.symbol, "price_usd": str(price)}},
                )
            elif ref.fallback_usd is not None and not base.is_priced:
                base.price_usd = float(ref.fallback_usd)
                logger.warning(
                    f"{base.symbol} price: ${ref.fallback_usd} (fallback)",
                    extra={"context": {"asset": base.symbol, "fallback": True}},
                )
            elif base.is_priced:
                logger.warning(f"{base.symbol} price refresh failed, keeping ${base.price_usd}")

        if not base.is_priced:
            return

        base_price = Decimal(str(base.price_usd))
        for symbol, asset in self.chain.assets.items():
            if symbol in self.fixed or asset is base:
                continue
            units = await self._quote_one_unit(
                asset, base, self._route_candidates(asset, base),
            )
            if units is None:
                logger.warning(
                    f"{symbol}: no price",
                    extra={"context": {"asset": symbol}},
                )
                continue
            asset.price_usd = float(units * base_price)
            logger.info(
                f"{symbol} price: ${asset.price_usd:.4f}",
                extra={"context": {"asset": symbol, "price_usd": asset.price_usd}},
            )
