"""Light state data model and range helpers."""

import math
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

HUE_RANGE = (0.0, 360.0)
UNIT_RANGE = (0.0, 1.0)
BRIGHTNESS_RANGE = (1, 100)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, towards +inf for negatives."""
    return math.floor(value + 0.5)


def is_number(value: Any) -> bool:
    """True for finite int/float values. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # Python ints are exact at any size
    return isinstance(value, int) or math.isfinite(value)


def as_float(value: Any) -> float:
    """float(value), saturating integers too large for a float to +/-inf.

    Raises:
        TypeError, ValueError: If value is not numeric
    """
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def parse_brightness(value: Any) -> Optional[int]:
    """Round a numeric brightness half-up. Infinite values saturate to the range ends."""
    if not is_number(value):
        return None
    number = as_float(value)
    if math.isinf(number):
        number = clamp(number, *BRIGHTNESS_RANGE)
    return round_half_up(number)


@dataclass(frozen=True)
class LightCapabilities:
    """Static capability flags fixed for the lifetime of a light node."""

    brightness_control: bool = False
    color_control: bool = False


@dataclass(frozen=True)
class HSVColor:
    """Color in the spectrumHSV form: hue 0-360, saturation and value 0-1."""

    hue: float = 0.0
    saturation: float = 0.0
    value: float = 1.0

    def clamped(self) -> "HSVColor":
        return HSVColor(
            hue=clamp(self.hue, *HUE_RANGE),
            saturation=clamp(self.saturation, *UNIT_RANGE),
            value=clamp(self.value, *UNIT_RANGE),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "spectrumHSV": {
                "hue": self.hue,
                "saturation": self.saturation,
                "value": self.value,
            }
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HSVColor"]:
        """Parse {"spectrumHSV": {...}}. Returns None unless all three parts are numeric."""
        if not isinstance(data, Mapping):
            return None
        hsv = data.get("spectrumHSV")
        if not isinstance(hsv, Mapping):
            return None
        parts = [hsv.get(key) for key in ("hue", "saturation", "value")]
        if not all(is_number(part) for part in parts):
            return None
        return cls(*(as_float(part) for part in parts))


@dataclass(frozen=True)
class DeviceState:
    """Canonical snapshot of a light.

    brightness and color are None when the matching capability is disabled.
    """

    on: bool = False
    brightness: Optional[int] = None
    color: Optional[HSVColor] = None

    @classmethod
    def initial(cls, capabilities: LightCapabilities) -> "DeviceState":
        return cls(
            on=False,
            brightness=100 if capabilities.brightness_control else None,
            color=HSVColor() if capabilities.color_control else None,
        )

    def with_changes(self, **changes: Any) -> "DeviceState":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Wire form with absent fields omitted. Always a fresh dict."""
        data: dict[str, Any] = {"on": self.on}
        if self.brightness is not None:
            data["brightness"] = self.brightness
        if self.color is not None:
            data["color"] = self.color.to_dict()
        return data

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], base: Optional["DeviceState"] = None
    ) -> "DeviceState":
        """Build a state from its wire form.

        Fields missing from data (or malformed) are taken from base.
        """
        base = base or cls()
        on = data.get("on")
        brightness = parse_brightness(data.get("brightness"))
        color = HSVColor.from_dict(data.get("color"))
        return cls(
            on=on if isinstance(on, bool) else base.on,
            brightness=brightness if brightness is not None else base.brightness,
            color=color if color is not None else base.color,
        )
