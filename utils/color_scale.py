# utils/color_scale.py
"""
Three-stop color scale for match scores
"""
import math
from typing import Any, Optional, Tuple

from mapper.schemas import coerce_score

LOW_COLOR = '#F8696B'
MID_COLOR = '#FFEB84'
HIGH_COLOR = '#63BE7B'
MIDPOINT = 0.5

LOW_CONFIDENCE_THRESHOLD = 0.60
LOW_CONFIDENCE_COLOR = '#FCE4E4'


def _hex_to_rgb(value: str) -> Tuple[int, int, int]:
    s = value.lstrip('#')
    return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)


def _rgb_to_hex(rgb) -> str:
    return '#' + ''.join(f"{channel:02X}" for channel in rgb)


def _blend(a, b, t: float):
    # Round half up so 0.5 steps land the same way on every platform
    return tuple(int(math.floor(x + (y - x) * t + 0.5)) for x, y in zip(a, b))


def color_for(score: Any) -> str:
    """Gradient color for a score: low -> mid below the midpoint, mid -> high at or above it"""
    v = coerce_score(score)
    if v < MIDPOINT:
        rgb = _blend(_hex_to_rgb(LOW_COLOR), _hex_to_rgb(MID_COLOR), v / MIDPOINT)
    else:
        rgb = _blend(_hex_to_rgb(MID_COLOR), _hex_to_rgb(HIGH_COLOR), (v - MIDPOINT) / (1 - MIDPOINT))
    return _rgb_to_hex(rgb)


def is_low_confidence(score: Any) -> bool:
    return coerce_score(score) < LOW_CONFIDENCE_THRESHOLD


def fill_for_score(score: Any) -> str:
    """Cell background used by every renderer, with the low-confidence override"""
    if is_low_confidence(score):
        return LOW_CONFIDENCE_COLOR
    return color_for(score)


def score_value(raw: Any) -> Optional[float]:
    """Read a score that may already be formatted as '85.0%'; None when unreadable"""
    if isinstance(raw, str):
        text = raw.strip()
        try:
            value = float(text[:-1]) / 100 if text.endswith('%') else float(text)
        except ValueError:
            return None
    else:
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
    return value if math.isfinite(value) else None


def format_score(score: Any) -> str:
    value = score_value(score)
    if value is None:
        return ''
    return f"{value * 100:.1f}%"
