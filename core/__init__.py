"""
core - Core utilities and models for ARBWATCH.

This package contains:
- models.py: Data models (Asset, Venue, TradingPair, Quote, RoundTrip)
- constants.py: Enums and constants
- exceptions.py: Typed exceptions with error codes
- math.py: Safe mathematical utilities (no float)
- format_money.py: Decimal formatting for logs and records
- time.py: Timestamps and date partitions
- logging.py: Structured JSON logging
"""

from core.constants import (
    ErrorCode,
    SpreadSign,
    Verdict,
    VenueFamily,
    V3_FEE_TIERS,
)
from core.exceptions import (
    ArbwatchError,
    ConfigError,
    InfraError,
    InvalidNotionalError,
    LogWriteFailure,
    NoRouteError,
    QuoteError,
    RevertedCallError,
    SchemaMismatchError,
    UnreachableError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    Asset,
    PairVenue,
    PersistenceEvent,
    Quote,
    RoundTrip,
    RouteParams,
    TradingPair,
    Venue,
)

__all__ = [
    # Constants
    "ErrorCode",
    "SpreadSign",
    "Verdict",
    "VenueFamily",
    "V3_FEE_TIERS",
    # Exceptions
    "ArbwatchError",
    "ConfigError",
    "InfraError",
    "InvalidNotionalError",
    "LogWriteFailure",
    "NoRouteError",
    "QuoteError",
    "RevertedCallError",
    "SchemaMismatchError",
    "UnreachableError",
    # Models
    "Asset",
    "PairVenue",
    "PersistenceEvent",
    "Quote",
    "RoundTrip",
    "RouteParams",
    "TradingPair",
    "Venue",
    # Logging
    "get_logger",
    "setup_logging",
]
