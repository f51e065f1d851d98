"""RGB helpers shared by the theme and recolor modules."""

import math
import re
from typing import Optional

RGB = tuple[int, int, int]

_HEX_RE = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


def parse_hex_color(value: str, default: Optional[RGB] = None) -> RGB:
    """Parse ``#rrggbb`` (the leading ``#`` is optional) into an RGB triple.

    Raises ``ValueError`` for anything else unless *default* is given, in
    which case *default* is returned instead.
    """
    match = _HEX_RE.match(value.strip())
    if not match:
        if default is not None:
            return default
        raise ValueError(f"Not a #rrggbb colour: {value!r}")
    return (int(match[1], 16), int(match[2], 16), int(match[3], 16))


def to_hex(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def round_half_up(x: float) -> int:
    # Python's round() is banker's rounding; pixel maths wants 0.5 -> 1.
    return int(math.floor(x + 0.5))


def saturation(rgb: RGB) -> float:
    """HSV-style saturation: (max - min) / max, or 0 for black."""
    hi, lo = max(rgb), min(rgb)
    return 0.0 if hi == 0 else (hi - lo) / hi


def lightness(rgb: RGB, divisor: float = 510.0) -> float:
    """(max + min) normalised by *divisor*; 0 is black, 1 is white."""
    return (max(rgb) + min(rgb)) / divisor


def blend(foreground: RGB, background: RGB, t: float) -> RGB:
    """Interpolate from *foreground* (t=0) to *background* (t=1)."""
    return tuple(
        round_half_up(f + (b - f) * t) for f, b in zip(foreground, background)
    )  # type: ignore[return-value]
