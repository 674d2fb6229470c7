"""
dex/adapters/uniswap_v3.py - Concentrated-liquidity quoting adapter.

Implements quoting via a QuoterV2-style contract.
Supports:
- Single-hop quotes (quoteExactInputSingle)
- Fee tier selection per pair venue
"""

from dataclasses import dataclass

from core.constants import DEFAULT_V3_FEE, VenueFamily
from core.logging import get_logger
from core.models import Asset, RouteParams
from dex.adapters.base import (
    VenueAdapter,
    pad_address,
    pad_uint,
    selector,
    split_words,
)

logger = get_logger(__name__)


# =============================================================================
# ABI ENCODING
# =============================================================================

QUOTE_EXACT_INPUT_SINGLE_SIG = "quoteExactInputSingle((address,address,uint256,uint24,uint160))"
SELECTOR_QUOTE_EXACT_INPUT_SINGLE = selector(QUOTE_EXACT_INPUT_SINGLE_SIG)


def encode_quote_exact_input_single(
    token_in: str,
    token_out: str,
    amount_in: int,
    fee: int,
    sqrt_price_limit_x96: int = 0,
) -> str:
    """
    Encode quoteExactInputSingle call data for QuoterV2.

    QuoterV2 takes a struct parameter:
    struct QuoteExactInputSingleParams {
        address tokenIn;
        address tokenOut;
        uint256 amountIn;
        uint24 fee;
        uint160 sqrtPriceLimitX96;
    }

    A tuple of static types encodes as selector + fields (no offset).
    """
    return (
        f"{SELECTOR_QUOTE_EXACT_INPUT_SINGLE}"
        f"{pad_address(token_in)}"
        f"{pad_address(token_out)}"
        f"{pad_uint(amount_in)}"
        f"{pad_uint(fee)}"
        f"{pad_uint(sqrt_price_limit_x96)}"
    )


def decode_quote_response(hex_result: str) -> tuple[int, int, int, int]:
    """
    Decode quoteExactInputSingle response.

    Returns:
        (amountOut, sqrtPriceX96After, initializedTicksCrossed, gasEstimate)
    """
    words = split_words(hex_result, 4, "V3 quote")
    return words[0], words[1], words[2], words[3]


# =============================================================================
# ADAPTER
# =============================================================================

@dataclass
class UniswapV3QuoteResult:
    """Result from a concentrated-liquidity quote."""
    amount_out: int
    sqrt_price_x96_after: int
    ticks_crossed: int
    gas_estimate: int


class UniswapV3Adapter(VenueAdapter):
    """
    Adapter for concentrated-liquidity venues (Uniswap V3 and forks).

    Usage:
        adapter = UniswapV3Adapter(provider, venue)
        amount_out = await adapter.quote_exact_input(route, weth, usdc, amount_in)
    """

    family = VenueFamily.CONCENTRATED_LIQUIDITY

    async def get_quote_raw(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        fee: int,
        block_number: int | None = None,
    ) -> UniswapV3QuoteResult:
        """
        Get raw quote from the quoter.

        Args:
            token_in: Input token address
            token_out: Output token address
            amount_in: Input amount in native units
            fee: Fee tier (100, 500, 3000, 10000)
            block_number: Block number to query at (None = latest)
        """
        call_data = encode_quote_exact_input_single(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            fee=fee,
        )

        raw = await self.call_quoter(call_data, block_number)
        amount_out, sqrt_price, ticks, gas = decode_quote_response(raw)

        return UniswapV3QuoteResult(
            amount_out=amount_out,
            sqrt_price_x96_after=sqrt_price,
            ticks_crossed=ticks,
            gas_estimate=gas,
        )

    async def quote_exact_input(
        self,
        route: RouteParams,
        token_in: Asset,
        token_out: Asset,
        amount_in: int,
        block_number: int | None = None,
    ) -> int:
        fee = route.fee if route.fee is not None else DEFAULT_V3_FEE

        result = await self.get_quote_raw(
            token_in=token_in.address,
            token_out=token_out.address,
            amount_in=amount_in,
            fee=fee,
            block_number=block_number,
        )

        logger.debug(
            f"V3 quote: {token_in.symbol}->{token_out.symbol} "
            f"{amount_in} -> {result.amount_out} "
            f"(venue={self.venue.venue_id}, fee={fee}, ticks={result.ticks_crossed})"
        )

        return result.amount_out
