"""
dex/adapters/base.py - Shared plumbing for venue quoting adapters.

Every AMM family adapter:
- encodes its own call data and decodes its own return shape
- reports only amount_out upward (auxiliary fields stay in its raw result)
- declares the widest amount_in its schema accepts
- turns eth_call failures into the quote failure taxonomy

Failure classification for eth_call:
- transport failure / all endpoints down  -> UnreachableError
- revert without data                     -> NoRouteError
- revert with data (reason, custom error) -> RevertedCallError
- empty / short / undecodable return      -> SchemaMismatchError
"""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Callable, ClassVar, Generic, Optional, TypeVar

from eth_utils import function_signature_to_4byte_selector

from chains.providers import RPCProvider
from core.constants import MAX_UINT256, VenueFamily
from core.exceptions import (
    CallRevertedError,
    InfraError,
    NoRouteError,
    QuoteError,
    RevertedCallError,
    SchemaMismatchError,
    UnreachableError,
)
from core.models import Asset, RouteParams, Venue

WORD_HEX = 64


# =============================================================================
# ABI HELPERS
# =============================================================================

def selector(signature: str) -> str:
    """4-byte function selector as 0x-prefixed hex."""
    return "0x" + function_signature_to_4byte_selector(signature).hex()


def pad_address(address: str) -> str:
    """Left-pad an address to one 32-byte word (no 0x)."""
    return address.lower().replace("0x", "").zfill(WORD_HEX)


def pad_uint(value: int) -> str:
    """Encode an unsigned int as one 32-byte word (no 0x)."""
    if value < 0:
        raise ValueError(f"uint cannot be negative: {value}")
    return hex(value)[2:].zfill(WORD_HEX)


def strip_0x(hex_str: str) -> str:
    return hex_str[2:] if hex_str.startswith("0x") else hex_str


def split_words(hex_result: Optional[str], min_words: int, label: str) -> list[int]:
    """
    Split a static ABI return payload into uint words.

    Raises:
        SchemaMismatchError: payload is empty or shorter than min_words
    """
    if not hex_result or hex_result == "0x":
        raise SchemaMismatchError(
            message=f"Empty {label} response",
        )

    data = strip_0x(hex_result)
    if len(data) < min_words * WORD_HEX:
        raise SchemaMismatchError(
            message=f"{label} response too short: {len(data)} chars",
            details={"data_length": len(data), "expected_words": min_words, "raw": hex_result[:100]},
        )

    return [int(data[i * WORD_HEX:(i + 1) * WORD_HEX], 16) for i in range(len(data) // WORD_HEX)]


def classify_call_failure(exc: Exception, venue: Venue) -> QuoteError:
    """Map an eth_call failure onto the quote failure taxonomy."""
    details = {"venue": venue.venue_id, "address": venue.address}

    if isinstance(exc, CallRevertedError):
        details["revert_data"] = exc.revert_data[:74]
        if exc.has_data:
            return RevertedCallError(message=f"{venue.name}: {exc.message}", details=details)
        return NoRouteError(message=f"{venue.name}: reverted without reason", details=details)

    if isinstance(exc, InfraError):
        details.update(exc.details)
        return UnreachableError(message=f"{venue.name}: {exc.message}", details=details)

    return UnreachableError(
        message=f"{venue.name}: {type(exc).__name__}: {exc}",
        details=details,
    )


def is_schema_shaped(error: QuoteError) -> bool:
    """
    Failure consistent with "wrong call schema".

    A quoter answering an unknown selector reverts without data or returns
    a payload we cannot decode. Reverts with a reason and transport errors
    are never schema-shaped. An empty revert is ambiguous (it is also what a
    missing pool looks like), so detection that sees only empty reverts
    reports NoRoute rather than SchemaMismatch.
    """
    return isinstance(error, (NoRouteError, SchemaMismatchError))


# =============================================================================
# SCHEMA PROBE
# =============================================================================

ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class SchemaVariant(Generic[ResultT]):
    """One historically deployed call schema of a venue family."""
    name: str
    signature: str
    encode: Callable[[str, str, int], str]
    decode: Callable[[str], ResultT]

    @property
    def selector(self) -> str:
        return selector(self.signature)


class SchemaProbe(Generic[ResultT]):
    """
    Probe-and-cache state for a venue with several possible schemas.

    Variants are tried in order until one is accepted; the accepted one is
    pinned for the process lifetime. `attempts` counts calls per variant so
    the detection history is inspectable.
    """

    def __init__(self, variants: tuple[SchemaVariant[ResultT], ...]):
        if not variants:
            raise ValueError("SchemaProbe needs at least one variant")
        self.variants = variants
        self.detected: Optional[SchemaVariant[ResultT]] = None
        self.attempts: Counter = Counter()

    @property
    def detected_name(self) -> Optional[str]:
        return self.detected.name if self.detected else None

    def candidates(self) -> tuple[SchemaVariant[ResultT], ...]:
        """Variants to try for the next call."""
        if self.detected is not None:
            return (self.detected,)
        return self.variants

    def record_attempt(self, variant: SchemaVariant[ResultT]) -> None:
        self.attempts[variant.name] += 1

    def pin(self, variant: SchemaVariant[ResultT]) -> bool:
        """Cache the accepted variant. Returns True on first detection."""
        if self.detected is None:
            self.detected = variant
            return True
        return False


# =============================================================================
# ADAPTER BASE
# =============================================================================

class VenueAdapter(ABC):
    """Base class for one venue's quoting adapter."""

    family: ClassVar[VenueFamily]
    max_amount_in: ClassVar[int] = MAX_UINT256

    def __init__(self, provider: RPCProvider, venue: Venue):
        self.provider = provider
        self.venue = venue

    @property
    def address(self) -> str:
        return self.venue.address

    async def call_quoter(self, call_data: str, block_number: int | None = None) -> str:
        """
        eth_call the venue entry point and return the raw hex result.

        Raises:
            QuoteError subclass per classify_call_failure
        """
        block_tag = hex(block_number) if block_number else "latest"

        try:
            response = await self.provider.eth_call(
                to=self.address,
                data=call_data,
                block=block_tag,
            )
        except (InfraError, OSError) as e:
            raise classify_call_failure(e, self.venue) from e

        if response.result is None:
            raise SchemaMismatchError(
                message=f"{self.venue.name}: null result",
                details={"venue": self.venue.venue_id, "call_data_prefix": call_data[:10]},
            )

        return response.result

    @abstractmethod
    async def quote_exact_input(
        self,
        route: RouteParams,
        token_in: Asset,
        token_out: Asset,
        amount_in: int,
        block_number: int | None = None,
    ) -> int:
        """Return amount_out for amount_in of token_in, in native units."""
