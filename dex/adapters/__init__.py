"""
dex/adapters/ - Venue-family quoting adapters.

Adapters:
- uniswap_v2: constant-product router (getAmountsOut)
- uniswap_v3: concentrated-liquidity QuoterV2
- algebra: dynamic-fee quoter with schema detection
- liquidity_book: discretized-bin LBQuoter
"""

from core.constants import VenueFamily
from dex.adapters.algebra import AlgebraAdapter, AlgebraQuoteResult
from dex.adapters.base import SchemaProbe, SchemaVariant, VenueAdapter
from dex.adapters.liquidity_book import LiquidityBookAdapter, LiquidityBookQuoteResult
from dex.adapters.uniswap_v2 import UniswapV2Adapter, UniswapV2QuoteResult
from dex.adapters.uniswap_v3 import UniswapV3Adapter, UniswapV3QuoteResult

ADAPTERS: dict[VenueFamily, type[VenueAdapter]] = {
    VenueFamily.CONSTANT_PRODUCT: UniswapV2Adapter,
    VenueFamily.CONCENTRATED_LIQUIDITY: UniswapV3Adapter,
    VenueFamily.DYNAMIC_FEE: AlgebraAdapter,
    VenueFamily.DISCRETIZED_BINS: LiquidityBookAdapter,
}

__all__ = [
    "ADAPTERS",
    "AlgebraAdapter",
    "AlgebraQuoteResult",
    "LiquidityBookAdapter",
    "LiquidityBookQuoteResult",
    "SchemaProbe",
    "SchemaVariant",
    "UniswapV2Adapter",
    "UniswapV2QuoteResult",
    "UniswapV3Adapter",
    "UniswapV3QuoteResult",
    "VenueAdapter",
]
