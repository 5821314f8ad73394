"""
Physical length parsing.

Board records carry lengths either as plain numbers (millimetres) or as
strings with a unit suffix ("1.6mm", "0.062in", "62mil").  Everything is
converted to a float in millimetres so downstream code never has to think
about units again.
"""

from __future__ import annotations

import math
import re
from typing import Annotated, Any, Dict

from pydantic import BeforeValidator

# Millimetres per unit.
LENGTH_UNITS_MM: Dict[str, float] = {
    "nm":  1e-6,
    "um":  1e-3,
    "µm":  1e-3,
    "μm":  1e-3,
    "mm":  1.0,
    "cm":  10.0,
    "dm":  100.0,
    "m":   1000.0,
    "km":  1e6,
    "in":  25.4,
    "ft":  304.8,
    "mil": 0.0254,
}

_LENGTH_RE = re.compile(
    r'^\s*(?P<value>[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)\s*(?P<unit>[A-Za-zµμ]*)\s*$'
)


def parse_length(value: Any) -> float:
    """Convert a raw length (number or "<number><unit>" string) to millimetres.

    Unitless strings are read as millimetres, same as bare numbers.
    Raises ValueError for anything that is not a finite length.
    """
    # bool is an int subclass; True is never a length
    if isinstance(value, bool):
        raise ValueError(f"Invalid length {value!r}: expected a number or a string like '1.6mm'")

    if isinstance(value, (int, float)):
        try:
            mm = float(value)
        except OverflowError:
            raise ValueError(f"Invalid length {value!r}: must be finite") from None
    elif isinstance(value, str):
        match = _LENGTH_RE.match(value)
        if not match:
            raise ValueError(f"Invalid length {value!r}: expected a number or a string like '1.6mm'")
        unit = match.group("unit").lower() or "mm"
        if unit not in LENGTH_UNITS_MM:
            raise ValueError(
                f"Unknown length unit '{unit}' in {value!r}. Valid: {sorted(LENGTH_UNITS_MM)}"
            )
        mm = float(match.group("value")) * LENGTH_UNITS_MM[unit]
    else:
        raise ValueError(f"Invalid length {value!r}: expected a number or a string like '1.6mm'")

    if not math.isfinite(mm):
        raise ValueError(f"Invalid length {value!r}: must be finite")
    return mm


# Field type for pydantic models: accepts any raw length, stores millimetres.
Length = Annotated[float, BeforeValidator(parse_length)]
