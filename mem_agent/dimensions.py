"""
Dimension set construction.

Dimensions are the name/value tags attached to every published metric. They
are built once at startup from optional host attributes; any attribute with a
blank name or value is simply left out.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Dimension:
    """Named tag attached to a metric"""
    name: str
    value: str


def build_dimensions(pairs: Iterable[Tuple[str, str]]) -> Tuple[Dimension, ...]:
    """
    Build a dimension set from (name, value) candidates.

    Pairs whose name or value is empty (or not a string) are dropped. Names
    are unique: the first occurrence wins. Input order is kept.
    """
    dims = []
    seen = set()

    for name, value in pairs:
        if not isinstance(name, str) or not isinstance(value, str):
            continue
        if not name or not value:
            continue
        if name in seen:
            continue
        seen.add(name)
        dims.append(Dimension(name=name, value=value))

    return tuple(dims)


def dimensions_as_dict(dims: Iterable[Dimension]) -> dict:
    """Flatten a dimension set into {name: value}"""
    return {d.name: d.value for d in dims}
