"""Color parsing, formatting and blending.

Every supported textual form is normalized into an immutable 8-bit RGBA
``Color``; output formats cover what target config files expect (CSS
functions, bare hex for Hyprland's ``rgb()``, ``0x`` prefixed hex, ...).
"""

from __future__ import annotations

import colorsys
import math
import re
from dataclasses import dataclass
from typing import Callable

from palettesmith.errors import ColorParseError, ErrorCode

_HEX_DIGITS_RE = re.compile(r"^[0-9a-f]+$")
_FUNCTION_RE = re.compile(r"^(rgba?|hsla?)\s*\((.*)\)$")
_PACKED_HEX_RE = re.compile(r"^(?:0x)?([0-9a-f]{6}|[0-9a-f]{8})$")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

DEFAULT_FORMAT = "hex6"


@dataclass(frozen=True, slots=True)
class Color:
    """An sRGB color with 8-bit channels. Alpha 255 is fully opaque."""

    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 255:
                raise ValueError(f"Color channel {name} out of range: {value!r}")

    @property
    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    @property
    def hex8(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}{self.a:02x}"

    @property
    def alpha_fraction(self) -> float:
        return self.a / 255.0


def normalize(text: str) -> Color:
    """Parse any supported color notation.

    Accepted forms (case-insensitive, surrounding whitespace ignored):

    * ``#abc``, ``#aabbcc``, ``#aabbccdd`` and the same digits with a ``0x``
      prefix or no prefix at all; 8 digits carry alpha last.
    * ``rgb(aabbcc)`` / ``rgba(aabbccdd)``, the hex-packed function form.
    * ``rgb(r, g, b)`` / ``rgba(r, g, b, a)`` with channels clamped to 0-255
      and alpha clamped to 0..1.
    * ``hsl(h, s%, l%)`` / ``hsla(h, s%, l%, a)`` with the hue wrapped into
      [0, 360) and saturation/lightness clamped to [0, 100].

    Raises ``ColorParseError`` for anything else.
    """
    original = "" if text is None else str(text)
    cleaned = original.strip().lower()
    if not cleaned:
        raise ColorParseError(ErrorCode.COLOR_EMPTY, details={"input": original})

    match = _FUNCTION_RE.match(cleaned)
    if match:
        return _parse_function(match.group(1), match.group(2).strip(), original)

    if cleaned.startswith("#"):
        digits = cleaned[1:]
    elif cleaned.startswith("0x"):
        digits = cleaned[2:]
    else:
        digits = cleaned
    return _parse_hex_digits(digits, original)


def is_valid_color(text: str) -> bool:
    try:
        normalize(text)
    except ColorParseError:
        return False
    return True


def format_color(color: Color, format_id: str) -> str:
    """Render ``color`` in the named format; unknown IDs fall back to hex6."""
    key = (format_id or "").strip().lower()
    formatter = _FORMATTERS.get(key, _FORMATTERS[DEFAULT_FORMAT])
    return formatter(color)


def to_rgba_string(color: Color, alpha: float) -> str:
    """Compact ``rgba(r,g,b,a)`` with an explicit alpha, as used by templates."""
    return f"rgba({color.r},{color.g},{color.b},{_alpha_text(_clamp_unit(alpha))})"


def brighten(color: Color, amount: float) -> Color:
    """Move every RGB channel toward white by ``amount`` (0..1)."""
    amount = _clamp_unit(amount)
    return Color(
        _lerp_channel(color.r, 255, amount),
        _lerp_channel(color.g, 255, amount),
        _lerp_channel(color.b, 255, amount),
        color.a,
    )


def mix(first: Color, second: Color, ratio: float) -> Color:
    """Blend two colors; ratio 0 yields ``first`` and 1 yields ``second``."""
    ratio = _clamp_unit(ratio)
    return Color(
        _lerp_channel(first.r, second.r, ratio),
        _lerp_channel(first.g, second.g, ratio),
        _lerp_channel(first.b, second.b, ratio),
        _lerp_channel(first.a, second.a, ratio),
    )


def from_hsl(hue: float, saturation: float, lightness: float, alpha: float = 1.0) -> Color:
    """Build a color from degrees and percentages."""
    hue = hue % 360.0
    saturation = min(100.0, max(0.0, saturation))
    lightness = min(100.0, max(0.0, lightness))
    red, green, blue = colorsys.hls_to_rgb(hue / 360.0, lightness / 100.0, saturation / 100.0)
    return Color(
        _round_half_up(red * 255),
        _round_half_up(green * 255),
        _round_half_up(blue * 255),
        _alpha_byte(alpha),
    )


def to_hsl(color: Color) -> tuple[int, int, int]:
    """Return (hue degrees, saturation %, lightness %) rounded to integers."""
    hue, lightness, saturation = colorsys.rgb_to_hls(color.r / 255.0, color.g / 255.0, color.b / 255.0)
    degrees = _round_half_up(hue * 360) % 360
    return degrees, _round_half_up(saturation * 100), _round_half_up(lightness * 100)


def _parse_hex_digits(digits: str, original: str) -> Color:
    if not digits:
        raise ColorParseError(
            ErrorCode.COLOR_INVALID_LENGTH,
            "Invalid hex color: no hex digits provided",
            details={"input": original},
        )
    if not _HEX_DIGITS_RE.match(digits):
        raise ColorParseError(
            ErrorCode.COLOR_INVALID_CHARACTERS,
            "Invalid hex color: contains invalid hex characters",
            details={"input": original},
        )
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    if len(digits) == 6:
        digits += "ff"
    if len(digits) != 8:
        raise ColorParseError(
            ErrorCode.COLOR_INVALID_LENGTH,
            f"Invalid hex color: invalid length {len(digits)} (expected 3, 6 or 8)",
            details={"input": original},
        )
    r, g, b, a = (int(digits[i : i + 2], 16) for i in (0, 2, 4, 6))
    return Color(r, g, b, a)


def _parse_function(name: str, body: str, original: str) -> Color:
    if name in ("rgb", "rgba"):
        packed = _PACKED_HEX_RE.match(body)
        if packed:
            return _parse_hex_digits(packed.group(1), original)

    parts = [part.strip() for part in body.split(",")]
    expected = 4 if name.endswith("a") else 3
    if len(parts) != expected:
        raise ColorParseError(
            ErrorCode.COLOR_UNSUPPORTED_FORMAT,
            f"{name}() expects {expected} arguments, got {len(parts)}",
            details={"input": original},
        )

    alpha = _parse_number(parts[3], original) if expected == 4 else 1.0
    if name.startswith("rgb"):
        red, green, blue = (_parse_number(part, original) for part in parts[:3])
        return Color(
            _clamp_byte(red),
            _clamp_byte(green),
            _clamp_byte(blue),
            _alpha_byte(alpha),
        )

    hue = _parse_number(parts[0].removesuffix("deg"), original)
    saturation = _parse_number(parts[1].removesuffix("%"), original)
    lightness = _parse_number(parts[2].removesuffix("%"), original)
    return from_hsl(hue, saturation, lightness, alpha)


def _parse_number(text: str, original: str) -> float:
    cleaned = text.strip()
    if not _NUMBER_RE.match(cleaned):
        raise ColorParseError(
            ErrorCode.COLOR_UNSUPPORTED_FORMAT,
            f"Invalid number {cleaned!r} in color function",
            details={"input": original},
        )
    return float(cleaned)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _lerp_channel(start: int, end: int, t: float) -> int:
    # nearest integer, exact halves toward zero: mix(#000, #fff, .5) == #7f7f7f
    value = start + (end - start) * t
    return min(255, max(0, int(math.ceil(value - 0.5))))


def _clamp_byte(value: float) -> int:
    return min(255, max(0, _round_half_up(value)))


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def _alpha_byte(alpha: float) -> int:
    return _round_half_up(_clamp_unit(alpha) * 255)


def _alpha_text(alpha: float) -> str:
    text = f"{alpha:.3f}".rstrip("0")
    if text.endswith("."):
        text += "0"
    return text


def _format_rgba(color: Color) -> str:
    return f"rgba({color.r}, {color.g}, {color.b}, {_alpha_text(color.alpha_fraction)})"


def _format_hsl(color: Color) -> str:
    hue, saturation, lightness = to_hsl(color)
    return f"hsl({hue}, {saturation}%, {lightness}%)"


def _format_hsla(color: Color) -> str:
    hue, saturation, lightness = to_hsl(color)
    return f"hsla({hue}, {saturation}%, {lightness}%, {_alpha_text(color.alpha_fraction)})"


_FORMATTERS: dict[str, Callable[[Color], str]] = {
    "hex6": lambda color: color.hex,
    "hex": lambda color: color.hex,
    "hex6_no_prefix": lambda color: color.hex[1:],
    "rgb_no_prefix": lambda color: color.hex[1:],
    "hex_0x": lambda color: "0x" + color.hex[1:],
    "hex8": lambda color: color.hex8,
    "rgb": lambda color: f"rgb({color.r}, {color.g}, {color.b})",
    "rgba": _format_rgba,
    "hsl": _format_hsl,
    "hsla": _format_hsla,
    "hypr_rgb": lambda color: f"rgb({color.hex[1:]})",
    "hypr_rgba": lambda color: f"rgba({color.hex8[1:]})",
}

FORMAT_IDS: tuple[str, ...] = tuple(_FORMATTERS)
