# PATH: core/format_money.py
"""
Safe money formatting utilities for ARBWATCH.

Durable records store numbers as fixed-precision strings so the log stays
diffable and parses back without float ambiguity.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Union


def format_money(value: Union[str, Decimal, int, float, None], decimals: int = 6) -> str:
    """
    Safely format a money value to string with specified decimal places.

    Uses ROUND_HALF_UP (0.005 -> 0.01 with 2 decimals).
    Never raises on valid numeric input.

    Example:
        >>> format_money("123.45")
        '123.450000'
        >>> format_money(Decimal("-0.00004"), 4)
        '0.0000'
        >>> format_money(None)
        '0.000000'
    """
    zero = f"0.{'0' * decimals}" if decimals > 0 else "0"
    if value is None:
        return zero

    try:
        if isinstance(value, str):
            if not value.strip():
                return zero
            dec_value = Decimal(value)
        elif isinstance(value, Decimal):
            dec_value = value
        elif isinstance(value, bool):
            # bool before int (bool is subclass of int)
            dec_value = Decimal(1 if value else 0)
        else:
            dec_value = Decimal(str(value))

        with localcontext() as ctx:
            ctx.prec = 50
            quantize_str = "0." + "0" * decimals if decimals > 0 else "0"
            rounded = dec_value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)

        # Avoid "-0.0000"
        if rounded == 0:
            return zero
        return f"{rounded:.{decimals}f}"

    except (InvalidOperation, ValueError, TypeError):
        return zero


def format_usd(value: Union[str, Decimal, int, float, None], decimals: int = 2) -> str:
    """Format a USD amount (default 2 decimals)."""
    return format_money(value, decimals)


def format_pct(value: Union[str, Decimal, int, float, None]) -> str:
    """
    Format percentage value with 4 decimals.

    Example:
        >>> format_pct(Decimal("0.4"))
        '0.4000'
    """
    return format_money(value, decimals=4)
