# PATH: core/exceptions.py
"""
Typed exceptions for ARBWATCH.

Every exception carries an ErrorCode so callers can tell a configuration
defect (schema mismatch, unreachable venue) from a market signal (no route,
reverted call).
"""

from typing import Optional

from core.constants import ErrorCode


class ArbwatchError(Exception):
    """Base exception for ARBWATCH."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str = "",
        code: Optional[ErrorCode] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class InfraError(ArbwatchError):
    """Infrastructure-related errors (RPC, timeouts, rate limits)."""
    code = ErrorCode.INFRA_RPC_ERROR


class CallRevertedError(InfraError):
    """
    eth_call reverted on-chain.

    Not retried on other endpoints: a revert is a property of the chain
    state, not of the endpoint. `revert_data` is the raw hex payload
    ("0x" when the revert carried no data).
    """
    code = ErrorCode.CALL_REVERTED

    def __init__(
        self,
        message: str,
        revert_data: str = "0x",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.revert_data = revert_data or "0x"

    @property
    def has_data(self) -> bool:
        return len(self.revert_data) > 2


class ConfigError(ArbwatchError):
    """Invalid or inconsistent configuration."""
    code = ErrorCode.CONFIG_INVALID


# =============================================================================
# QUOTING
# =============================================================================

class QuoteError(ArbwatchError):
    """Quote-related errors raised by venue adapters."""
    code = ErrorCode.UNKNOWN


class NoRouteError(QuoteError):
    """Venue has no pool for this asset pair."""
    code = ErrorCode.NO_ROUTE


class SchemaMismatchError(QuoteError):
    """No known call schema is accepted by the venue."""
    code = ErrorCode.SCHEMA_MISMATCH


class RevertedCallError(QuoteError):
    """Venue-side rejection (liquidity exhausted, price limit, ...)."""
    code = ErrorCode.REVERTED_CALL


class UnreachableError(QuoteError):
    """Venue endpoint did not respond."""
    code = ErrorCode.UNREACHABLE


# =============================================================================
# EVALUATION / LOGGING
# =============================================================================

class InvalidNotionalError(ArbwatchError):
    """Notional is non-positive or the base asset cannot be priced."""
    code = ErrorCode.INVALID_NOTIONAL


class LogWriteFailure(ArbwatchError):
    """Durable spread log could not be written."""
    code = ErrorCode.LOG_WRITE_FAILURE
