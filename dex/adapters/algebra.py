"""
dex/adapters/algebra.py - Dynamic-fee (Algebra) quoting adapter.

Algebra is a fork of Uniswap V3 with dynamic fees, used by Camelot and
others. Two quoter schemas are deployed in the wild:

- V1 flat args:  quoteExactInputSingle(address,address,uint256,uint160)
                 returns (uint256 amountOut, uint16 fee)
- V2 struct:     quoteExactInputSingle((address,address,uint256,uint160))
                 returns (amountOut, fee, sqrtPriceX96After, ticksCrossed, gasEstimate)

The schema a venue speaks is detected on first use (V1, then V2) and
pinned for the process lifetime. After that, failures are reported as
ordinary quote errors; detection is never re-run.
"""

from dataclasses import dataclass
from typing import Optional

from chains.providers import RPCProvider
from core.constants import VenueFamily
from core.exceptions import NoRouteError, QuoteError, SchemaMismatchError
from core.logging import get_logger
from core.models import Asset, RouteParams, Venue
from dex.adapters.base import (
    SchemaProbe,
    SchemaVariant,
    VenueAdapter,
    is_schema_shaped,
    pad_address,
    pad_uint,
    selector,
    split_words,
)

logger = get_logger(__name__)


# =============================================================================
# ABI ENCODING
# =============================================================================

V1_SIG = "quoteExactInputSingle(address,address,uint256,uint160)"
V2_SIG = "quoteExactInputSingle((address,address,uint256,uint160))"

SELECTOR_V1 = selector(V1_SIG)
SELECTOR_V2 = selector(V2_SIG)


@dataclass
class AlgebraQuoteResult:
    """Result from an Algebra quote."""
    amount_out: int
    fee: int  # Dynamic fee in hundredths of bip
    sqrt_price_x96_after: Optional[int] = None
    ticks_crossed: Optional[int] = None
    gas_estimate: Optional[int] = None


def _encode_args(sel: str, token_in: str, token_out: str, amount_in: int, limit_sqrt_price: int = 0) -> str:
    # A static struct encodes to the same words as flat args; only the selector differs
    return (
        f"{sel}"
        f"{pad_address(token_in)}"
        f"{pad_address(token_out)}"
        f"{pad_uint(amount_in)}"
        f"{pad_uint(limit_sqrt_price)}"
    )


def encode_quote_v1(token_in: str, token_out: str, amount_in: int) -> str:
    """Encode quoteExactInputSingle for the flat-args quoter."""
    return _encode_args(SELECTOR_V1, token_in, token_out, amount_in)


def encode_quote_v2(token_in: str, token_out: str, amount_in: int) -> str:
    """Encode quoteExactInputSingle for the struct quoter."""
    return _encode_args(SELECTOR_V2, token_in, token_out, amount_in)


def decode_quote_v1(hex_result: str) -> AlgebraQuoteResult:
    """Decode (uint256 amountOut, uint16 fee)."""
    words = split_words(hex_result, 2, "Algebra V1 quote")
    return AlgebraQuoteResult(amount_out=words[0], fee=words[1])


def decode_quote_v2(hex_result: str) -> AlgebraQuoteResult:
    """Decode (amountOut, fee, sqrtPriceX96After, initializedTicksCrossed, gasEstimate)."""
    words = split_words(hex_result, 5, "Algebra V2 quote")
    return AlgebraQuoteResult(
        amount_out=words[0],
        fee=words[1],
        sqrt_price_x96_after=words[2],
        ticks_crossed=words[3],
        gas_estimate=words[4],
    )


ALGEBRA_V1 = SchemaVariant(
    name="v1_flat",
    signature=V1_SIG,
    encode=encode_quote_v1,
    decode=decode_quote_v1,
)

ALGEBRA_V2 = SchemaVariant(
    name="v2_struct",
    signature=V2_SIG,
    encode=encode_quote_v2,
    decode=decode_quote_v2,
)

# Probe order
ALGEBRA_SCHEMAS: tuple[SchemaVariant[AlgebraQuoteResult], ...] = (ALGEBRA_V1, ALGEBRA_V2)


# =============================================================================
# ADAPTER
# =============================================================================

class AlgebraAdapter(VenueAdapter):
    """
    Adapter for dynamic-fee venues.

    One adapter per venue: the detected schema belongs to the venue,
    not to the family.

    Usage:
        adapter = AlgebraAdapter(provider, venue)
        amount_out = await adapter.quote_exact_input(route, weth, usdc, amount_in)
        adapter.detected_schema  # "v1_flat" / "v2_struct" / None
    """

    family = VenueFamily.DYNAMIC_FEE

    def __init__(
        self,
        provider: RPCProvider,
        venue: Venue,
        schemas: tuple[SchemaVariant[AlgebraQuoteResult], ...] = ALGEBRA_SCHEMAS,
    ):
        super().__init__(provider, venue)
        self.probe: SchemaProbe[AlgebraQuoteResult] = SchemaProbe(schemas)

    @property
    def detected_schema(self) -> Optional[str]:
        return self.probe.detected_name

    async def _call_variant(
        self,
        variant: SchemaVariant[AlgebraQuoteResult],
        token_in: str,
        token_out: str,
        amount_in: int,
        block_number: int | None,
    ) -> AlgebraQuoteResult:
        self.probe.record_attempt(variant)
        raw = await self.call_quoter(variant.encode(token_in, token_out, amount_in), block_number)
        return variant.decode(raw)

    async def get_quote_raw(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        block_number: int | None = None,
    ) -> AlgebraQuoteResult:
        """
        Get raw quote, detecting the venue schema on first use.

        Raises:
            SchemaMismatchError: A variant answered with an undecodable payload
                and none was accepted during detection
            NoRouteError: Every variant reverted without data (no pool)
            QuoteError: Any other failure, surfaced as-is
        """
        if self.probe.detected is not None:
            return await self._call_variant(
                self.probe.detected, token_in, token_out, amount_in, block_number
            )

        rejections: dict[str, str] = {}
        last_error: QuoteError | None = None
        for variant in self.probe.candidates():
            try:
                result = await self._call_variant(
                    variant, token_in, token_out, amount_in, block_number
                )
            except QuoteError as e:
                if not is_schema_shaped(e):
                    # Genuine revert or unreachable venue: nothing learned
                    raise
                rejections[variant.name] = e.message
                if last_error is None or isinstance(last_error, NoRouteError):
                    last_error = e
                logger.debug(
                    f"Schema {variant.name} rejected by {self.venue.name}: {e.message}",
                    extra={"context": {"venue": self.venue.venue_id, "schema": variant.name}},
                )
                continue

            if self.probe.pin(variant):
                logger.info(
                    f"{self.venue.name} schema detected: {variant.name}",
                    extra={"context": {
                        "venue": self.venue.venue_id,
                        "schema": variant.name,
                        "selector": variant.selector,
                    }},
                )
            return result

        if isinstance(last_error, NoRouteError):
            # every variant reverted empty: no pool, schema still unknown
            last_error.details["rejections"] = rejections
            raise last_error

        raise SchemaMismatchError(
            message=f"{self.venue.name}: no known quoter schema accepted",
            details={
                "venue": self.venue.venue_id,
                "quoter": self.address,
                "rejections": rejections,
            },
        )

    async def quote_exact_input(
        self,
        route: RouteParams,
        token_in: Asset,
        token_out: Asset,
        amount_in: int,
        block_number: int | None = None,
    ) -> int:
        result = await self.get_quote_raw(
            token_in=token_in.address,
            token_out=token_out.address,
            amount_in=amount_in,
            block_number=block_number,
        )

        logger.debug(
            f"Algebra quote: {token_in.symbol}->{token_out.symbol} "
            f"{amount_in} -> {result.amount_out} "
            f"(venue={self.venue.venue_id}, fee={result.fee}, schema={self.detected_schema})"
        )

        return result.amount_out
