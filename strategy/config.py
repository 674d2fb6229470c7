"""
strategy/config.py - Monitor configuration.

Thresholds, cadence, and retention knobs for the spread monitor, loaded
from config/strategy.yaml with dataclass defaults. Per-chain overrides
live under `chains:` keyed by chain name.
"""

from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from core.constants import (
    DEFAULT_DEDUP_COOLDOWN_S,
    DEFAULT_DEDUP_MIN_DELTA_PCT,
    DEFAULT_LOG_THRESHOLD_PCT,
    DEFAULT_MAX_LOG_FILE_BYTES,
    DEFAULT_MAX_LOG_FILES,
    DEFAULT_MAX_RUNTIME_HOURS,
    DEFAULT_NOISE_FLOOR_PCT,
    DEFAULT_NOTIONALS_USD,
    DEFAULT_PACING_MS,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_PRICE_REFRESH_CYCLES,
    SPIKE_THRESHOLDS_PCT,
    SpreadSign,
)
from core.exceptions import ConfigError

DEFAULT_STRATEGY_PATH = Path(__file__).resolve().parent.parent / "config" / "strategy.yaml"

_DECIMAL_FIELDS = {
    "log_threshold_pct",
    "alert_threshold_pct",
    "noise_floor_pct",
    "dedup_min_delta_pct",
}


@dataclass
class MonitorSettings:
    """Spread monitor configuration."""

    # Sizes evaluated every cycle
    notionals_usd: tuple[Decimal, ...] = tuple(Decimal(n) for n in DEFAULT_NOTIONALS_USD)

    # Cadence
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    pacing_ms: int = DEFAULT_PACING_MS
    price_refresh_cycles: int = DEFAULT_PRICE_REFRESH_CYCLES
    max_runtime_hours: float = DEFAULT_MAX_RUNTIME_HOURS

    # Thresholds (percent)
    log_threshold_pct: Decimal = DEFAULT_LOG_THRESHOLD_PCT
    alert_threshold_pct: Decimal = DEFAULT_LOG_THRESHOLD_PCT
    crossing_thresholds_pct: tuple[Decimal, ...] = SPIKE_THRESHOLDS_PCT
    noise_floor_pct: Decimal = DEFAULT_NOISE_FLOOR_PCT
    spread_sign: SpreadSign = SpreadSign.SIGNED

    # Alert dedup
    dedup_cooldown_s: float = DEFAULT_DEDUP_COOLDOWN_S
    dedup_min_delta_pct: Decimal = DEFAULT_DEDUP_MIN_DELTA_PCT

    # Durable log retention
    max_log_files: int = DEFAULT_MAX_LOG_FILES
    max_log_file_bytes: int = DEFAULT_MAX_LOG_FILE_BYTES

    # Startup
    self_test: bool = True
    self_test_notional_usd: Decimal = Decimal("10")

    output_dir: Path = field(default_factory=lambda: Path("spread_logs"))

    def __post_init__(self):
        if not self.notionals_usd:
            raise ConfigError(message="notionals_usd cannot be empty")
        if any(not n.is_finite() or n <= 0 for n in self.notionals_usd):
            raise ConfigError(
                message="notionals_usd must be positive and finite",
                details={"notionals_usd": [str(n) for n in self.notionals_usd]},
            )
        if self.poll_interval_s <= 0:
            raise ConfigError(message=f"poll_interval_s must be positive: {self.poll_interval_s}")
        if self.pacing_ms < 0:
            raise ConfigError(message=f"pacing_ms cannot be negative: {self.pacing_ms}")
        if self.max_log_files < 1:
            raise ConfigError(message=f"max_log_files must be >= 1: {self.max_log_files}")

    def with_overrides(self, **overrides: Any) -> "MonitorSettings":
        """Copy with CLI-style overrides applied (None values ignored)."""
        clean = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **_coerce(clean)) if clean else self


def _coerce(data: dict[str, Any]) -> dict[str, Any]:
    """Convert YAML scalars into the field types MonitorSettings expects."""
    known = {f.name for f in fields(MonitorSettings)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(
            message=f"Unknown monitor settings: {', '.join(sorted(unknown))}",
            details={"unknown": sorted(unknown)},
        )

    out: dict[str, Any] = {}
    try:
        for key, value in data.items():
            if key in _DECIMAL_FIELDS or key == "self_test_notional_usd":
                out[key] = Decimal(str(value))
            elif key in ("notionals_usd", "crossing_thresholds_pct"):
                out[key] = tuple(Decimal(str(v)) for v in value)
            elif key == "spread_sign":
                out[key] = SpreadSign(value)
            elif key == "output_dir":
                out[key] = Path(value)
            else:
                out[key] = value
    except (ArithmeticError, ValueError, TypeError) as e:
        raise ConfigError(message=f"Invalid monitor setting: {e}")

    return out


def load_monitor_settings(
    config_path: Path | None = None,
    chain: str | None = None,
) -> MonitorSettings:
    """
    Load monitor configuration from YAML file.

    Args:
        config_path: Path to strategy.yaml (default: config/strategy.yaml)
        chain: Apply `chains.<chain>` overrides on top of defaults

    Returns:
        MonitorSettings with defaults and overrides
    """
    if config_path is None:
        config_path = DEFAULT_STRATEGY_PATH

    if not config_path.exists():
        return MonitorSettings()

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    merged = dict(data.get("defaults", {}) or {})
    if chain:
        merged.update(data.get("chains", {}).get(chain, {}) or {})

    return MonitorSettings(**_coerce(merged))
