"""
dex/adapters/uniswap_v2.py - Constant-product quoting adapter.

Quotes through a V2-style router's getAmountsOut(uint256,address[]).
The router returns one amount per hop; the output is the last element.
"""

from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from core.constants import VenueFamily
from core.exceptions import NoRouteError, SchemaMismatchError
from core.logging import get_logger
from core.models import Asset, RouteParams
from dex.adapters.base import VenueAdapter, selector, strip_0x

logger = get_logger(__name__)


GET_AMOUNTS_OUT_SIG = "getAmountsOut(uint256,address[])"
SELECTOR_GET_AMOUNTS_OUT = selector(GET_AMOUNTS_OUT_SIG)


def encode_get_amounts_out(amount_in: int, path: list[str]) -> str:
    """Encode getAmountsOut call data (dynamic address[] needs real ABI encoding)."""
    args = encode(["uint256", "address[]"], [amount_in, [a.lower() for a in path]])
    return SELECTOR_GET_AMOUNTS_OUT + args.hex()


def decode_amounts(hex_result: str) -> list[int]:
    """
    Decode the uint256[] returned by getAmountsOut.

    Raises:
        SchemaMismatchError: payload is not a uint256[]
    """
    if not hex_result or hex_result == "0x":
        raise SchemaMismatchError(message="Empty getAmountsOut response")

    try:
        (amounts,) = decode(["uint256[]"], bytes.fromhex(strip_0x(hex_result)))
    except (DecodingError, ValueError) as e:
        raise SchemaMismatchError(
            message=f"Undecodable getAmountsOut response: {e}",
            details={"raw": hex_result[:100]},
        )

    return list(amounts)


@dataclass
class UniswapV2QuoteResult:
    """Result from a constant-product quote."""
    amounts: list[int]

    @property
    def amount_out(self) -> int:
        return self.amounts[-1]


class UniswapV2Adapter(VenueAdapter):
    """
    Adapter for constant-product venues via their router.

    Usage:
        adapter = UniswapV2Adapter(provider, venue)
        amount_out = await adapter.quote_exact_input(RouteParams(), weth, usdc, amount_in)
    """

    family = VenueFamily.CONSTANT_PRODUCT

    async def get_quote_raw(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        block_number: int | None = None,
    ) -> UniswapV2QuoteResult:
        call_data = encode_get_amounts_out(amount_in, [token_in, token_out])
        raw = await self.call_quoter(call_data, block_number)
        amounts = decode_amounts(raw)

        if len(amounts) < 2:
            raise SchemaMismatchError(
                message=f"{self.venue.name}: getAmountsOut returned {len(amounts)} amounts",
                details={"venue": self.venue.venue_id},
            )

        return UniswapV2QuoteResult(amounts=amounts)

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

        if result.amount_out == 0:
            raise NoRouteError(
                message=f"{self.venue.name}: zero output for {token_in.symbol}->{token_out.symbol}",
                details={"venue": self.venue.venue_id},
            )

        logger.debug(
            f"V2 quote: {token_in.symbol}->{token_out.symbol} "
            f"{amount_in} -> {result.amount_out} (venue={self.venue.venue_id})"
        )

        return result.amount_out
