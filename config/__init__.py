# PATH: config/__init__.py
"""
Configuration loading utilities for ARBWATCH.

Per-network files live in config/chains/<name>.yaml and are turned into
the immutable model objects (Asset, Venue, TradingPair) here.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from core.constants import DEFAULT_GAS_COST_USD, VENUE_FAMILY_ALIASES, VenueFamily
from core.exceptions import ConfigError
from core.models import Asset, PairVenue, RouteParams, TradingPair, Venue


CONFIG_DIR = Path(__file__).parent
CHAINS_DIR = CONFIG_DIR / "chains"


def load_yaml(filename: str | Path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory, or an absolute path

    Returns:
        Parsed YAML as dict
    """
    filepath = Path(filename)
    if not filepath.is_absolute():
        filepath = CONFIG_DIR / filepath
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def available_chains() -> list[str]:
    """Chain names with a config file."""
    return sorted(p.stem for p in CHAINS_DIR.glob("*.yaml"))


@dataclass(frozen=True)
class PriceReference:
    """Which pair and venue price the native/base token in USD."""
    base: str
    quote: str
    venue: Optional[str] = None
    fee: Optional[int] = None
    fallback_usd: Optional[float] = None


@dataclass
class ChainConfig:
    """Everything the monitor needs to know about one network."""
    key: str
    name: str
    chain_id: int
    rpc_urls: list[str]
    gas_cost_usd: Decimal
    price_reference: PriceReference
    assets: dict[str, Asset] = field(default_factory=dict)
    venues: dict[str, Venue] = field(default_factory=dict)
    pairs: list[TradingPair] = field(default_factory=list)

    def select_pairs(self, pair_filter: str | None = None) -> list[TradingPair]:
        """All pairs, or only the one named by pair_filter ("all" means no filter)."""
        if not pair_filter or pair_filter == "all":
            return list(self.pairs)
        selected = [p for p in self.pairs if p.name == pair_filter]
        if not selected:
            raise ConfigError(
                message=f"No pairs match: {pair_filter}",
                details={"available": [p.name for p in self.pairs]},
            )
        return selected


def _require(data: dict, key: str, where: str) -> Any:
    if key not in data or data[key] in (None, ""):
        raise ConfigError(message=f"Missing '{key}' in {where}")
    return data[key]


def _parse_family(raw: str, where: str) -> VenueFamily:
    value = str(raw).lower()
    if value in VENUE_FAMILY_ALIASES:
        return VENUE_FAMILY_ALIASES[value]
    try:
        return VenueFamily(value)
    except ValueError:
        raise ConfigError(
            message=f"Unknown venue type '{raw}' in {where}",
            details={"known": sorted(VENUE_FAMILY_ALIASES) + [f.value for f in VenueFamily]},
        )


def parse_chain_config(key: str, data: Dict[str, Any]) -> ChainConfig:
    """
    Build a ChainConfig from parsed YAML.

    Raises:
        ConfigError: missing fields or references to unknown tokens/dexes
    """
    where = f"chains/{key}.yaml"

    assets: dict[str, Asset] = {}
    for symbol, info in (data.get("tokens") or {}).items():
        price = info.get("price_usd")
        assets[symbol] = Asset(
            symbol=symbol,
            address=_require(info, "address", f"{where} tokens.{symbol}"),
            decimals=int(_require(info, "decimals", f"{where} tokens.{symbol}")),
            price_usd=float(price) if price is not None else None,
        )

    venues: dict[str, Venue] = {}
    for dex_key, info in (data.get("dexes") or {}).items():
        if not info.get("enabled", True):
            continue
        venues[dex_key] = Venue(
            venue_id=dex_key,
            name=info.get("name", dex_key),
            family=_parse_family(_require(info, "type", f"{where} dexes.{dex_key}"), where),
            address=_require(info, "address", f"{where} dexes.{dex_key}"),
        )

    pairs: list[TradingPair] = []
    for i, pair_data in enumerate(data.get("pairs") or []):
        pair_where = f"{where} pairs[{i}]"
        token0 = _require(pair_data, "token0", pair_where)
        token1 = _require(pair_data, "token1", pair_where)
        for symbol in (token0, token1):
            if symbol not in assets:
                raise ConfigError(message=f"Unknown token '{symbol}' in {pair_where}")

        pair_venues = []
        for v in pair_data.get("venues") or []:
            dex_key = _require(v, "dex", pair_where)
            if dex_key not in venues:
                if dex_key in (data.get("dexes") or {}):
                    continue  # disabled
                raise ConfigError(message=f"Unknown dex '{dex_key}' in {pair_where}")
            pair_venues.append(PairVenue(
                venue=venues[dex_key],
                route=RouteParams(fee=v.get("fee"), bin_step=v.get("bin_step")),
            ))

        if len(pair_venues) < 2:
            raise ConfigError(
                message=f"Pair needs at least two venues in {pair_where}",
                details={"venues": [pv.venue.venue_id for pv in pair_venues]},
            )

        pairs.append(TradingPair(
            name=pair_data.get("name", f"{token0}/{token1}"),
            asset0=assets[token0],
            asset1=assets[token1],
            venues=tuple(pair_venues),
        ))

    ref = data.get("price_reference") or {}
    price_reference = PriceReference(
        base=ref.get("base", pairs[0].asset0.symbol if pairs else ""),
        quote=ref.get("quote", ""),
        venue=ref.get("venue"),
        fee=ref.get("fee"),
        fallback_usd=ref.get("fallback_usd"),
    )
    for symbol in (price_reference.base, price_reference.quote):
        if symbol and symbol not in assets:
            raise ConfigError(message=f"Unknown token '{symbol}' in {where} price_reference")

    try:
        gas_cost_usd = Decimal(str(data.get("gas_cost_usd", DEFAULT_GAS_COST_USD)))
    except InvalidOperation:
        raise ConfigError(message=f"Invalid gas_cost_usd in {where}")

    return ChainConfig(
        key=key,
        name=data.get("name", key),
        chain_id=int(_require(data, "chain_id", where)),
        rpc_urls=list(_require(data, "rpc_urls", where)),
        gas_cost_usd=gas_cost_usd,
        price_reference=price_reference,
        assets=assets,
        venues=venues,
        pairs=pairs,
    )


def load_chain_config(chain_key: str, chains_dir: Path | None = None) -> ChainConfig:
    """
    Load configuration for a specific chain.

    Args:
        chain_key: Chain identifier (e.g., 'arbitrum')
        chains_dir: Directory holding <chain>.yaml files (default: config/chains)

    Raises:
        ConfigError: unknown chain or invalid file
    """
    path = (chains_dir or CHAINS_DIR) / f"{chain_key}.yaml"
    if not path.exists():
        raise ConfigError(
            message=f"Unknown chain: {chain_key}",
            details={"path": str(path), "available": available_chains()},
        )

    try:
        data = load_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigError(message=f"Invalid YAML in {path}: {e}")

    return parse_chain_config(chain_key, data)
