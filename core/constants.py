# PATH: core/constants.py
"""
Constants for ARBWATCH.

Contains enums, defaults, and configuration constants.
Config values that vary per network live in config/chains/*.yaml.
"""

from decimal import Decimal
from enum import Enum
from typing import Final


# =============================================================================
# VENUES
# =============================================================================

class VenueFamily(str, Enum):
    """AMM families supported by the quote layer."""
    CONSTANT_PRODUCT = "constant_product"
    CONCENTRATED_LIQUIDITY = "concentrated_liquidity"
    DYNAMIC_FEE = "dynamic_fee"
    DISCRETIZED_BINS = "discretized_bins"


# Short aliases accepted in chain YAML files ("type: v3" etc.)
VENUE_FAMILY_ALIASES: Final[dict[str, VenueFamily]] = {
    "v2": VenueFamily.CONSTANT_PRODUCT,
    "v3": VenueFamily.CONCENTRATED_LIQUIDITY,
    "algebra": VenueFamily.DYNAMIC_FEE,
    "lb": VenueFamily.DISCRETIZED_BINS,
}

# V3 fee tiers (in hundredths of a bip)
V3_FEE_TIERS: Final[list[int]] = [100, 500, 3000, 10000]
DEFAULT_V3_FEE: Final[int] = 3000

MAX_UINT128: Final[int] = (1 << 128) - 1
MAX_UINT256: Final[int] = (1 << 256) - 1


# =============================================================================
# ERROR CODES
# =============================================================================

class ErrorCode(str, Enum):
    """Error codes carried by every typed exception."""
    # Quoting
    NO_ROUTE = "NO_ROUTE"
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"
    REVERTED_CALL = "REVERTED_CALL"
    UNREACHABLE = "UNREACHABLE"

    # Evaluation
    INVALID_NOTIONAL = "INVALID_NOTIONAL"

    # Durable log
    LOG_WRITE_FAILURE = "LOG_WRITE_FAILURE"

    # Infrastructure
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    CALL_REVERTED = "CALL_REVERTED"

    # Config
    CONFIG_INVALID = "CONFIG_INVALID"

    UNKNOWN = "UNKNOWN"


# Failures that point at a configuration defect rather than market state
CONFIG_DEFECT_CODES: Final[frozenset[ErrorCode]] = frozenset([
    ErrorCode.SCHEMA_MISMATCH,
    ErrorCode.UNREACHABLE,
])

# Failures that are a legitimate "no liquidity" signal
LIQUIDITY_SIGNAL_CODES: Final[frozenset[ErrorCode]] = frozenset([
    ErrorCode.NO_ROUTE,
    ErrorCode.REVERTED_CALL,
])


# =============================================================================
# MONITORING DEFAULTS
# =============================================================================

DEFAULT_NOTIONALS_USD: Final[tuple[int, ...]] = (100, 300, 1000)
DEFAULT_POLL_INTERVAL_S: Final[int] = 60
DEFAULT_PACING_MS: Final[int] = 80
DEFAULT_GAS_COST_USD: Final[Decimal] = Decimal("0.10")

# Spread thresholds in percent
DEFAULT_LOG_THRESHOLD_PCT: Final[Decimal] = Decimal("0.3")
SPIKE_THRESHOLDS_PCT: Final[tuple[Decimal, ...]] = (
    Decimal("0.3"),
    Decimal("0.5"),
    Decimal("1.0"),
)
DEFAULT_NOISE_FLOOR_PCT: Final[Decimal] = Decimal("-2.0")
MIN_PERSISTENCE_COUNT: Final[int] = 2

# Alert dedup
DEFAULT_DEDUP_COOLDOWN_S: Final[float] = 10.0
DEFAULT_DEDUP_MIN_DELTA_PCT: Final[Decimal] = Decimal("0.03")

# Durable log retention
DEFAULT_MAX_LOG_FILES: Final[int] = 48
DEFAULT_MAX_LOG_FILE_BYTES: Final[int] = 10 * 1024 * 1024

# Cadence (in cycles)
SUMMARY_LOG_EVERY_CYCLES: Final[int] = 10
SUMMARY_FILE_EVERY_CYCLES: Final[int] = 60
DEFAULT_PRICE_REFRESH_CYCLES: Final[int] = 10
DEFAULT_MAX_RUNTIME_HOURS: Final[float] = 24.0


class SpreadSign(str, Enum):
    """How the persistence tracker reads a spread against its threshold."""
    SIGNED = "signed"
    ABSOLUTE = "absolute"


class Verdict(str, Enum):
    """Overall run verdict derived from aggregates."""
    PROMOTE = "PROMOTE"
    EXTEND = "EXTEND"
    BORDERLINE = "BORDERLINE"
    KILL = "KILL"
