"""
Unit tests for the constant-product, concentrated-liquidity and
discretized-bin adapters, and the shared failure classification.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from eth_abi import encode

from core.constants import MAX_UINT128, MAX_UINT256, VenueFamily
from core.exceptions import (
    CallRevertedError,
    InfraError,
    NoRouteError,
    RevertedCallError,
    SchemaMismatchError,
    UnreachableError,
)
from core.models import RouteParams
from dex.adapters import ADAPTERS, AlgebraAdapter, LiquidityBookAdapter, UniswapV2Adapter, UniswapV3Adapter
from dex.adapters.base import classify_call_failure, is_schema_shaped, pad_uint, split_words
from dex.adapters.liquidity_book import (
    LB_QUOTE_STRUCT,
    SELECTOR_FIND_BEST_PATH,
    decode_find_best_path,
    encode_find_best_path,
)
from dex.adapters.uniswap_v2 import SELECTOR_GET_AMOUNTS_OUT, decode_amounts, encode_get_amounts_out
from dex.adapters.uniswap_v3 import (
    SELECTOR_QUOTE_EXACT_INPUT_SINGLE,
    decode_quote_response,
    encode_quote_exact_input_single,
)
from tests.stubs import USDC_ADDRESS, WETH_ADDRESS, make_assets, make_venue

LB_PAIR = "0x" + "ab" * 20
ZERO = "0x" + "00" * 20


def words(*values: int) -> str:
    return "0x" + "".join(hex(v)[2:].zfill(64) for v in values)


def lb_response(amount_in: int, amount_out: int, pair: str = LB_PAIR) -> str:
    route = [WETH_ADDRESS.lower(), USDC_ADDRESS.lower()]
    payload = encode(
        [LB_QUOTE_STRUCT],
        [(route, [pair], [15], [2], [amount_in, amount_out], [amount_in, amount_out], [0])],
    )
    return "0x" + payload.hex()


@pytest.fixture
def mock_provider():
    """Create mock RPC provider."""
    provider = MagicMock()
    provider.eth_call = AsyncMock()
    return provider


class TestSharedHelpers:
    """ABI helpers and failure taxonomy."""

    def test_pad_uint_rejects_negative(self):
        with pytest.raises(ValueError):
            pad_uint(-1)

    def test_split_words(self):
        assert split_words(words(1, 2, 3), 2, "test") == [1, 2, 3]

    def test_split_words_short(self):
        with pytest.raises(SchemaMismatchError):
            split_words(words(1), 2, "test")

    def test_classify_empty_revert_is_no_route(self):
        err = classify_call_failure(CallRevertedError("reverted", revert_data="0x"), make_venue("A"))
        assert isinstance(err, NoRouteError)
        assert is_schema_shaped(err)

    def test_classify_revert_with_data_is_reverted_call(self):
        err = classify_call_failure(CallRevertedError("reverted", revert_data="0xdeadbeef"), make_venue("A"))
        assert isinstance(err, RevertedCallError)
        assert not is_schema_shaped(err)

    def test_classify_transport_is_unreachable(self):
        err = classify_call_failure(InfraError(message="timeout"), make_venue("A"))
        assert isinstance(err, UnreachableError)
        assert not is_schema_shaped(err)

    def test_every_family_has_an_adapter(self):
        assert set(ADAPTERS) == set(VenueFamily)
        assert ADAPTERS[VenueFamily.DYNAMIC_FEE] is AlgebraAdapter


class TestUniswapV3:
    """Concentrated-liquidity quoter."""

    def test_selector(self):
        assert SELECTOR_QUOTE_EXACT_INPUT_SINGLE == "0xc6a5026a"

    def test_encode_layout(self):
        data = encode_quote_exact_input_single(WETH_ADDRESS, USDC_ADDRESS, 10**18, 500)

        assert data.startswith("0xc6a5026a")
        assert len(data) == 10 + 5 * 64
        assert data[10 + 3 * 64:10 + 4 * 64] == pad_uint(500)

    def test_decode_short_response(self):
        with pytest.raises(SchemaMismatchError):
            decode_quote_response(words(1, 2))

    @pytest.mark.asyncio
    async def test_quote_uses_route_fee(self, mock_provider):
        weth, usdc = make_assets()
        adapter = UniswapV3Adapter(mock_provider, make_venue("uni"))
        mock_provider.eth_call.return_value = MagicMock(result=words(2500 * 10**6, 2**96, 1, 70000))

        out = await adapter.quote_exact_input(RouteParams(fee=500), weth, usdc, 10**18)

        assert out == 2500 * 10**6
        data = mock_provider.eth_call.call_args.kwargs["data"]
        assert data[10 + 3 * 64:10 + 4 * 64] == pad_uint(500)

    @pytest.mark.asyncio
    async def test_quote_default_fee(self, mock_provider):
        weth, usdc = make_assets()
        adapter = UniswapV3Adapter(mock_provider, make_venue("uni"))
        mock_provider.eth_call.return_value = MagicMock(result=words(1, 0, 0, 0))

        await adapter.quote_exact_input(RouteParams(), weth, usdc, 10**18)

        data = mock_provider.eth_call.call_args.kwargs["data"]
        assert data[10 + 3 * 64:10 + 4 * 64] == pad_uint(3000)

    @pytest.mark.asyncio
    async def test_null_result_is_schema_mismatch(self, mock_provider):
        weth, usdc = make_assets()
        adapter = UniswapV3Adapter(mock_provider, make_venue("uni"))
        mock_provider.eth_call.return_value = MagicMock(result=None)

        with pytest.raises(SchemaMismatchError):
            await adapter.quote_exact_input(RouteParams(fee=500), weth, usdc, 10**18)


class TestUniswapV2:
    """Constant-product router."""

    def test_selector(self):
        assert SELECTOR_GET_AMOUNTS_OUT == "0xd06ca61f"

    def test_encode_dynamic_path(self):
        data = encode_get_amounts_out(10**18, [WETH_ADDRESS, USDC_ADDRESS])

        assert data.startswith("0xd06ca61f")
        # amountIn, offset, length, 2 addresses
        assert len(data) == 10 + 5 * 64
        assert data[10 + 2 * 64:10 + 3 * 64] == pad_uint(2)

    def test_decode_amounts(self):
        raw = "0x" + encode(["uint256[]"], [[10**18, 2500 * 10**6]]).hex()
        assert decode_amounts(raw) == [10**18, 2500 * 10**6]

    def test_decode_garbage(self):
        with pytest.raises(SchemaMismatchError):
            decode_amounts("0x1234")

    @pytest.mark.asyncio
    async def test_quote_last_amount(self, mock_provider):
        weth, usdc = make_assets()
        adapter = UniswapV2Adapter(mock_provider, make_venue("sushi", VenueFamily.CONSTANT_PRODUCT))
        raw = "0x" + encode(["uint256[]"], [[10**18, 2490 * 10**6]]).hex()
        mock_provider.eth_call.return_value = MagicMock(result=raw)

        assert await adapter.quote_exact_input(RouteParams(), weth, usdc, 10**18) == 2490 * 10**6

    @pytest.mark.asyncio
    async def test_zero_output_is_no_route(self, mock_provider):
        weth, usdc = make_assets()
        adapter = UniswapV2Adapter(mock_provider, make_venue("sushi", VenueFamily.CONSTANT_PRODUCT))
        raw = "0x" + encode(["uint256[]"], [[10**18, 0]]).hex()
        mock_provider.eth_call.return_value = MagicMock(result=raw)

        with pytest.raises(NoRouteError):
            await adapter.quote_exact_input(RouteParams(), weth, usdc, 10**18)


class TestLiquidityBook:
    """Discretized-bin quoter."""

    def test_max_amount_in(self):
        assert LiquidityBookAdapter.max_amount_in == MAX_UINT128
        assert UniswapV3Adapter.max_amount_in == MAX_UINT256

    def test_encode(self):
        data = encode_find_best_path([WETH_ADDRESS, USDC_ADDRESS], 10**18)
        assert data.startswith(SELECTOR_FIND_BEST_PATH)

    def test_encode_rejects_over_uint128(self):
        with pytest.raises(ValueError):
            encode_find_best_path([WETH_ADDRESS, USDC_ADDRESS], MAX_UINT128 + 1)

    def test_decode(self):
        result = decode_find_best_path(lb_response(10**18, 2500 * 10**6))

        assert result.amount_out == 2500 * 10**6
        assert result.bin_steps == [15]
        assert result.has_route

    def test_decode_empty(self):
        with pytest.raises(SchemaMismatchError):
            decode_find_best_path("0x")

    @pytest.mark.asyncio
    async def test_quote(self, mock_provider):
        weth, usdc = make_assets()
        adapter = LiquidityBookAdapter(mock_provider, make_venue("trader_joe", VenueFamily.DISCRETIZED_BINS))
        mock_provider.eth_call.return_value = MagicMock(result=lb_response(10**18, 2501 * 10**6))

        out = await adapter.quote_exact_input(RouteParams(bin_step=15), weth, usdc, 10**18)

        assert out == 2501 * 10**6

    @pytest.mark.asyncio
    async def test_zero_pair_is_no_route(self, mock_provider):
        weth, usdc = make_assets()
        adapter = LiquidityBookAdapter(mock_provider, make_venue("trader_joe", VenueFamily.DISCRETIZED_BINS))
        mock_provider.eth_call.return_value = MagicMock(result=lb_response(10**18, 0, pair=ZERO))

        with pytest.raises(NoRouteError):
            await adapter.quote_exact_input(RouteParams(), weth, usdc, 10**18)
