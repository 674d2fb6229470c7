# PATH: core/math.py
"""
Math utilities for ARBWATCH.

Amount <-> USD conversions. Amounts are native integer units and are never
routed through float; prices enter through Decimal(str(price)).
"""

from decimal import Decimal, InvalidOperation, ROUND_FLOOR, localcontext
from typing import Union, Optional

HUNDRED = Decimal("100")


def safe_decimal(value: Union[str, int, float, Decimal, None], default: Decimal = Decimal("0")) -> Decimal:
    """
    Safely convert value to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion.
    """
    if value is None:
        return default

    try:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def usd_to_native(
    notional_usd: Union[str, int, Decimal],
    price_usd: Union[float, Decimal],
    decimals: int,
) -> int:
    """
    Convert a USD notional into native units of an asset, rounding down.

    Rounding is always toward zero: overstating tradable input is unsafe.

    Example:
        >>> usd_to_native(1000, 2500.0, 18)
        400000000000000000
    """
    price = safe_decimal(price_usd)
    if price <= 0:
        raise ValueError(f"price must be positive, got {price_usd}")

    with localcontext() as ctx:
        ctx.prec = 80
        units = safe_decimal(notional_usd) / price * (Decimal(10) ** decimals)
        return int(units.to_integral_value(rounding=ROUND_FLOOR))


def native_to_usd(
    amount: int,
    price_usd: Union[float, Decimal],
    decimals: int,
) -> Decimal:
    """Convert native units to a USD value at the given reference price."""
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(amount) / (Decimal(10) ** decimals) * safe_decimal(price_usd)


def pct_change(new: Decimal, base: Decimal) -> Optional[Decimal]:
    """(new - base) / base * 100, or None when base is zero."""
    if base == 0:
        return None
    return (new - base) / base * HUNDRED


def normalize_to_decimals(amount: Union[str, int, Decimal], decimals: int) -> Decimal:
    """Native units to human token units (e.g. wei -> ETH)."""
    return safe_decimal(amount) / (Decimal(10) ** decimals)
