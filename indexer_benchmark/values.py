"""
Canonical forms of hash, number, timestamp and path values, used wherever
two platforms' values are checked for equality.
"""

import logging
from decimal import Context, Decimal, InvalidOperation
from typing import Any, Tuple, Union

logger = logging.getLogger(__name__)

# Block timestamps above this are taken to be milliseconds
MILLISECOND_THRESHOLD = 10 ** 10


def normalize_hex(value: Any) -> str:
    """Lowercase a hash or address and strip an optional 0x prefix."""
    if value is None:
        return ""
    text = str(value).strip().lower()
    return text[2:] if text.startswith('0x') else text


def strip_trailing_zeros(number: Decimal) -> Decimal:
    """Drop trailing fractional zeros without rounding any significant digit."""
    return number.normalize(Context(prec=max(len(number.as_tuple().digits), 1)))


def canonical_number(value: Any) -> Union[int, Decimal]:
    """
    Canonical exact form of a numeric value.

    Decimal strings, scientific notation and hex all map to the same int when
    they denote the same integer. Values that cannot be parsed count as 0.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if value is None:
        return 0

    text = str(value).strip()
    if text == "":
        return 0
    try:
        if text.lower().startswith('0x'):
            return int(text, 16)
        number = Decimal(text)
        if not number.is_finite():
            raise InvalidOperation(text)
    except (InvalidOperation, ValueError):
        logger.warning(f"Cannot convert {text!r} to a number, using 0")
        return 0

    if number == number.to_integral_value():
        return int(number)
    return strip_trailing_zeros(number)


def normalize_timestamp(value: Any) -> int:
    """Block timestamp in seconds; values above 10^10 are read as milliseconds."""
    seconds = int(canonical_number(value))
    if seconds > MILLISECOND_THRESHOLD:
        seconds //= 1000
    return seconds


def canonical_path(value: Any) -> Tuple[str, ...]:
    """Swap path as a tuple of normalized token addresses."""
    if value is None:
        return ()
    hops = value if isinstance(value, (list, tuple)) else str(value).split(',')
    return tuple(normalize_hex(hop) for hop in hops if str(hop).strip())
