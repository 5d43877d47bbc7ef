"""
Memory units and byte conversion.
"""

from enum import Enum

from mem_agent.errors import InvalidUnitError

KILO = 1024
MEGA = KILO * 1024
GIGA = MEGA * 1024


class Unit(Enum):
    """Metric units understood by the sinks"""
    PERCENT = 'Percent'
    BYTES = 'Bytes'
    KILOBYTES = 'Kilobytes'
    MEGABYTES = 'Megabytes'
    GIGABYTES = 'Gigabytes'


# Accepted tokens for byte-valued metrics; Percent is never selectable
UNIT_TOKENS = {
    'bytes': Unit.BYTES,
    'kilobytes': Unit.KILOBYTES,
    'megabytes': Unit.MEGABYTES,
    'gigabytes': Unit.GIGABYTES,
}

_DIVISORS = {
    Unit.PERCENT: 1,
    Unit.BYTES: 1,
    Unit.KILOBYTES: KILO,
    Unit.MEGABYTES: MEGA,
    Unit.GIGABYTES: GIGA,
}


def parse_unit(token: str) -> Unit:
    """
    Map a configuration token to a Unit.

    Matching is exact and case-sensitive.

    Raises:
        InvalidUnitError: If the token is not one of UNIT_TOKENS
    """
    try:
        return UNIT_TOKENS[token]
    except (KeyError, TypeError):
        raise InvalidUnitError(token)


def convert(unit: Unit, raw_bytes: int) -> float:
    """
    Convert a raw byte count into the given unit.

    Uses true division, so 250 bytes is 250/1024 kilobytes rather than 0.
    Percent and Bytes are returned unconverted.
    """
    divisor = _DIVISORS[unit]
    if divisor == 1:
        return float(raw_bytes)
    return raw_bytes / divisor
