"""
dex/adapters/liquidity_book.py - Discretized-bin (Liquidity Book) quoting adapter.

Quotes through LBQuoter.findBestPathFromAmountIn(address[],uint128).
amountIn is uint128 in the 2.x quoter; callers clamp to MAX_UINT128
before reaching this adapter.

Returns a Quote struct:
    (address[] route, address[] pairs, uint256[] binSteps, uint8[] versions,
     uint128[] amounts, uint128[] virtualAmountsWithoutSlippage, uint128[] fees)
amounts[-1] is the output.
"""

from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from core.constants import MAX_UINT128, VenueFamily
from core.exceptions import NoRouteError, SchemaMismatchError
from core.logging import get_logger
from core.models import Asset, RouteParams
from dex.adapters.base import VenueAdapter, selector, strip_0x

logger = get_logger(__name__)


FIND_BEST_PATH_SIG = "findBestPathFromAmountIn(address[],uint128)"
SELECTOR_FIND_BEST_PATH = selector(FIND_BEST_PATH_SIG)

LB_QUOTE_STRUCT = "(address[],address[],uint256[],uint8[],uint128[],uint128[],uint128[])"

ZERO_ADDRESS = "0x" + "0" * 40


def encode_find_best_path(route: list[str], amount_in: int) -> str:
    if amount_in > MAX_UINT128:
        raise ValueError(f"amount_in exceeds uint128: {amount_in}")
    args = encode(["address[]", "uint128"], [[a.lower() for a in route], amount_in])
    return SELECTOR_FIND_BEST_PATH + args.hex()


@dataclass
class LiquidityBookQuoteResult:
    """Result from a Liquidity Book quote."""
    route: list[str]
    pairs: list[str]
    bin_steps: list[int]
    versions: list[int]
    amounts: list[int]
    virtual_amounts_without_slippage: list[int]
    fees: list[int]

    @property
    def amount_out(self) -> int:
        return self.amounts[-1] if self.amounts else 0

    @property
    def has_route(self) -> bool:
        return bool(self.pairs) and all(int(p, 16) != 0 for p in self.pairs)


def decode_find_best_path(hex_result: str) -> LiquidityBookQuoteResult:
    """
    Decode the LBQuoter Quote struct.

    Raises:
        SchemaMismatchError: payload does not match the struct layout
    """
    if not hex_result or hex_result == "0x":
        raise SchemaMismatchError(message="Empty findBestPathFromAmountIn response")

    try:
        (quote,) = decode([LB_QUOTE_STRUCT], bytes.fromhex(strip_0x(hex_result)))
    except (DecodingError, ValueError) as e:
        raise SchemaMismatchError(
            message=f"Undecodable findBestPathFromAmountIn response: {e}",
            details={"raw": hex_result[:100]},
        )

    route, pairs, bin_steps, versions, amounts, virtual_amounts, fees = quote
    return LiquidityBookQuoteResult(
        route=list(route),
        pairs=list(pairs),
        bin_steps=list(bin_steps),
        versions=list(versions),
        amounts=list(amounts),
        virtual_amounts_without_slippage=list(virtual_amounts),
        fees=list(fees),
    )


class LiquidityBookAdapter(VenueAdapter):
    """
    Adapter for discretized-bin venues.

    The quoter picks the best bin step itself; RouteParams.bin_step is
    informational only.
    """

    family = VenueFamily.DISCRETIZED_BINS
    max_amount_in = MAX_UINT128

    async def get_quote_raw(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        block_number: int | None = None,
    ) -> LiquidityBookQuoteResult:
        call_data = encode_find_best_path([token_in, token_out], amount_in)
        raw = await self.call_quoter(call_data, block_number)
        return decode_find_best_path(raw)

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

        if not result.has_route or result.amount_out == 0:
            raise NoRouteError(
                message=f"{self.venue.name}: no bin route for {token_in.symbol}->{token_out.symbol}",
                details={"venue": self.venue.venue_id, "pairs": result.pairs},
            )

        logger.debug(
            f"LB quote: {token_in.symbol}->{token_out.symbol} "
            f"{amount_in} -> {result.amount_out} "
            f"(venue={self.venue.venue_id}, bin_steps={result.bin_steps})"
        )

        return result.amount_out
