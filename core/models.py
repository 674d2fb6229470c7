# PATH: core/models.py
"""
Core data models for ARBWATCH.

Amounts are always native integer units (wei-style). USD values and
percentages are Decimal. NO FLOATS in amount arithmetic.

Immutable after config load: Venue, RouteParams, PairVenue, TradingPair.
Mutable: Asset.price_usd (owned by the price oracle).
Ephemeral per cycle: Quote, RoundTrip.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from core.constants import ErrorCode, VenueFamily


@dataclass
class Asset:
    """Fungible token on one chain."""
    symbol: str
    address: str
    decimals: int
    price_usd: Optional[float] = None

    def __hash__(self) -> int:
        return hash(self.address.lower())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Asset):
            return False
        return self.address.lower() == other.address.lower()

    @property
    def is_priced(self) -> bool:
        return self.price_usd is not None and self.price_usd > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "address": self.address,
            "decimals": self.decimals,
            "price_usd": self.price_usd,
        }


@dataclass(frozen=True)
class Venue:
    """A quoting deployment of one AMM family."""
    venue_id: str
    name: str
    family: VenueFamily
    address: str  # quoter or router entry point

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venue_id": self.venue_id,
            "name": self.name,
            "family": self.family.value,
            "address": self.address,
        }


@dataclass(frozen=True)
class RouteParams:
    """Venue-specific pool selector: fee tier, bin step, or nothing."""
    fee: Optional[int] = None
    bin_step: Optional[int] = None

    def describe(self) -> str:
        if self.fee is not None:
            return f"fee={self.fee}"
        if self.bin_step is not None:
            return f"bin_step={self.bin_step}"
        return "default"


@dataclass(frozen=True)
class PairVenue:
    """A venue as configured for one trading pair."""
    venue: Venue
    route: RouteParams = field(default_factory=RouteParams)

    @property
    def name(self) -> str:
        return self.venue.name


@dataclass(frozen=True)
class TradingPair:
    """Ordered asset pair plus every venue where both sides are quotable."""
    name: str
    asset0: Asset
    asset1: Asset
    venues: tuple[PairVenue, ...]

    def __hash__(self) -> int:
        return hash(self.name)


@dataclass
class Quote:
    """
    Point-in-time answer to "sell amount_in of asset_in, receive how much".

    amount_in is the amount actually quoted (after family clamping).
    amount_out is None when the venue failed; error_code says why.
    """
    venue: PairVenue
    asset_in: Asset
    asset_out: Asset
    amount_in: int
    amount_out: Optional[int] = None
    error_code: Optional[ErrorCode] = None
    error_message: str = ""
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.amount_out is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venue": self.venue.name,
            "route": self.venue.route.describe(),
            "asset_in": self.asset_in.symbol,
            "asset_out": self.asset_out.symbol,
            "amount_in": str(self.amount_in),
            "amount_out": str(self.amount_out) if self.amount_out is not None else None,
            "error_code": self.error_code.value if self.error_code else None,
            "latency_ms": self.latency_ms,
        }


@dataclass
class RoundTrip:
    """Buy asset1 at buy_venue, sell it all back to asset0 at sell_venue."""
    pair: str
    notional_usd: Decimal
    buy_venue: str
    sell_venue: str
    amount_in: int
    amount_back: int
    in_usd: Decimal
    out_usd: Decimal
    net_usd: Decimal
    spread_pct: Decimal
    net_pct: Decimal

    @property
    def direction(self) -> str:
        return f"{self.buy_venue}→{self.sell_venue}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "direction": self.direction,
            "notional_usd": str(self.notional_usd),
            "amount_in": str(self.amount_in),
            "amount_back": str(self.amount_back),
            "in_usd": str(self.in_usd),
            "out_usd": str(self.out_usd),
            "net_usd": str(self.net_usd),
            "spread_pct": str(self.spread_pct),
            "net_pct": str(self.net_pct),
        }


@dataclass
class SpikeState:
    """One active above-threshold excursion for a (pair, direction, notional) key."""
    start_index: int
    start_time: float
    count: int
    max_spread: Decimal


@dataclass
class PersistenceEvent:
    """Emitted when a spike that lasted at least two observations closes."""
    pair: str
    direction: str
    notional_usd: Decimal
    duration: int
    max_spread: Decimal
    wall_duration_s: float
    start_index: int
    end_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair,
            "direction": self.direction,
            "notional_usd": str(self.notional_usd),
            "duration": self.duration,
            "max_spread": str(self.max_spread),
            "wall_duration_s": round(self.wall_duration_s, 1),
            "start_index": self.start_index,
            "end_index": self.end_index,
        }
