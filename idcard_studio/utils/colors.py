"""Colour and CSS gradient parsing shared by every renderer."""

import math
import re
from dataclasses import dataclass
from typing import List, Tuple

from PIL import ImageColor

from idcard_studio.errors import ConfigurationError

RGB = Tuple[int, int, int]

_GRADIENT_RE = re.compile(r"^\s*linear-gradient\s*\((.*)\)\s*$", re.IGNORECASE | re.DOTALL)
_ANGLE_RE = re.compile(r"^\s*(-?[0-9.]+)\s*(deg|turn|rad)\s*$", re.IGNORECASE)
_STOP_RE = re.compile(r"^\s*(.+?)(?:\s+(-?[0-9.]+)%)?\s*$")

# CSS "to <side>" keywords expressed as angles
_DIRECTION_ANGLES = {
    "to top": 0.0,
    "to top right": 45.0,
    "to right top": 45.0,
    "to right": 90.0,
    "to bottom right": 135.0,
    "to right bottom": 135.0,
    "to bottom": 180.0,
    "to bottom left": 225.0,
    "to left bottom": 225.0,
    "to left": 270.0,
    "to top left": 315.0,
    "to left top": 315.0,
}


@dataclass(frozen=True)
class GradientStop:
    color: RGB
    offset: float  # 0.0 - 1.0


@dataclass(frozen=True)
class LinearGradient:
    angle: float  # CSS degrees, 0 = towards the top, clockwise
    stops: Tuple[GradientStop, ...]

    @property
    def first_color(self) -> RGB:
        return self.stops[0].color

    def color_at(self, t: float) -> RGB:
        """Interpolated colour at position ``t`` (0-1) along the gradient line."""
        stops = self.stops
        if t <= stops[0].offset:
            return stops[0].color
        for left, right in zip(stops, stops[1:]):
            if t <= right.offset:
                span = right.offset - left.offset
                f = 0.0 if span <= 0 else (t - left.offset) / span
                return tuple(
                    int(round(a + (b - a) * f)) for a, b in zip(left.color, right.color)
                )
        return stops[-1].color


def parse_color(value: str) -> RGB:
    """Parse a hex/rgb()/named colour, raising ConfigurationError if invalid."""
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Invalid colour: {value!r}")
    try:
        rgb = ImageColor.getrgb(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid colour: {value!r}") from e
    return rgb[:3]


def to_hex(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def _split_args(body: str) -> List[str]:
    # Commas inside rgb()/rgba() must not split a stop
    parts, depth, current = [], 0, []
    for ch in body:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _parse_angle(token: str):
    token_l = token.strip().lower()
    if token_l in _DIRECTION_ANGLES:
        return _DIRECTION_ANGLES[token_l]
    m = _ANGLE_RE.match(token_l)
    if not m:
        return None
    number, unit = float(m.group(1)), m.group(2)
    if unit == "turn":
        return number * 360.0
    if unit == "rad":
        return math.degrees(number)
    return number


def parse_gradient(value: str) -> LinearGradient:
    """Parse a CSS ``linear-gradient(...)`` string.

    Stops without an explicit percentage are spread evenly, as browsers do.
    """
    m = _GRADIENT_RE.match(value or "")
    if not m:
        raise ConfigurationError(f"Unsupported gradient: {value!r}")
    args = _split_args(m.group(1))

    angle = 180.0
    if args:
        parsed = _parse_angle(args[0])
        if parsed is not None:
            angle = parsed
            args = args[1:]

    raw_stops = []
    for arg in args:
        sm = _STOP_RE.match(arg)
        color = parse_color(sm.group(1))
        offset = float(sm.group(2)) / 100.0 if sm.group(2) is not None else None
        raw_stops.append((color, offset))

    if not raw_stops:
        raise ConfigurationError(f"Gradient has no colour stops: {value!r}")

    count = len(raw_stops)
    stops = []
    for i, (color, offset) in enumerate(raw_stops):
        if offset is None:
            offset = 0.0 if count == 1 else i / (count - 1)
        stops.append(GradientStop(color, min(max(offset, 0.0), 1.0)))
    return LinearGradient(angle % 360.0, tuple(stops))
