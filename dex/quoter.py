"""
dex/quoter.py - Uniform quoting over heterogeneous venues.

QuoteProvider is the single "sell X of A, receive how much B" entry point.
It owns one adapter per venue (so schema detection state is per venue),
clamps over-wide inputs to the family maximum, and returns amount_out only.

Usage:
    quoter = QuoteProvider(provider)
    amount_out = await quoter.quote(pair_venue, weth, usdc, amount_in)
    quote = await quoter.fetch_quote(pair_venue, weth, usdc, amount_in)  # never raises QuoteError
"""

import time
from typing import Optional

from chains.providers import RPCProvider
from core.exceptions import QuoteError
from core.logging import get_logger
from core.models import Asset, PairVenue, Quote, Venue
from dex.adapters import ADAPTERS, VenueAdapter

logger = get_logger(__name__)


class QuoteProvider:
    """Dispatches quotes to the adapter matching each venue's family."""

    def __init__(
        self,
        provider: RPCProvider,
        adapters: Optional[dict[str, VenueAdapter]] = None,
    ):
        self.provider = provider
        self._adapters: dict[str, VenueAdapter] = dict(adapters or {})

    def adapter_for(self, venue: Venue) -> VenueAdapter:
        """Get (or lazily build) the adapter for a venue."""
        adapter = self._adapters.get(venue.venue_id)
        if adapter is None:
            adapter_cls = ADAPTERS.get(venue.family)
            if adapter_cls is None:
                raise ValueError(f"No adapter for venue family {venue.family!r}")
            adapter = adapter_cls(self.provider, venue)
            self._adapters[venue.venue_id] = adapter
        return adapter

    def clamp_amount(self, venue: Venue, amount_in: int) -> int:
        """Clamp amount_in to the widest value the venue's schema accepts."""
        limit = self.adapter_for(venue).max_amount_in
        if amount_in > limit:
            logger.warning(
                f"amount_in clamped for {venue.name}: {amount_in} -> {limit}",
                extra={"context": {
                    "venue": venue.venue_id,
                    "family": venue.family.value,
                    "requested": str(amount_in),
                    "clamped": str(limit),
                }},
            )
            return limit
        return amount_in

    async def quote(
        self,
        pair_venue: PairVenue,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        block_number: int | None = None,
    ) -> int:
        """
        Quote amount_out for selling amount_in of asset_in at a venue.

        Raises:
            ValueError: amount_in is negative
            QuoteError: NoRoute / SchemaMismatch / RevertedCall / Unreachable
        """
        if amount_in < 0:
            raise ValueError(f"amount_in cannot be negative: {amount_in}")

        adapter = self.adapter_for(pair_venue.venue)
        return await adapter.quote_exact_input(
            route=pair_venue.route,
            token_in=asset_in,
            token_out=asset_out,
            amount_in=self.clamp_amount(pair_venue.venue, amount_in),
            block_number=block_number,
        )

    async def fetch_quote(
        self,
        pair_venue: PairVenue,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        block_number: int | None = None,
    ) -> Quote:
        """
        Like quote(), but returns a Quote record instead of raising.

        A failed venue yields a Quote with amount_out=None and its error code.
        Quote.amount_in is the amount actually quoted (after clamping).
        """
        quoted_in = self.clamp_amount(pair_venue.venue, amount_in)
        result = Quote(
            venue=pair_venue,
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=quoted_in,
        )

        start = time.monotonic()
        try:
            result.amount_out = await self.quote(
                pair_venue, asset_in, asset_out, quoted_in, block_number
            )
        except QuoteError as e:
            result.error_code = e.code
            result.error_message = e.message
            logger.debug(
                f"Quote failed at {pair_venue.name}: {e}",
                extra={"context": {
                    "venue": pair_venue.venue.venue_id,
                    "asset_in": asset_in.symbol,
                    "asset_out": asset_out.symbol,
                    "error_code": e.code.value,
                }},
            )
        finally:
            result.latency_ms = int((time.monotonic() - start) * 1000)

        return result

    def detected_schemas(self) -> dict[str, str]:
        """venue_id -> detected schema name, for venues with schema detection."""
        schemas = {}
        for venue_id, adapter in self._adapters.items():
            name = getattr(adapter, "detected_schema", None)
            if name:
                schemas[venue_id] = name
        return schemas
