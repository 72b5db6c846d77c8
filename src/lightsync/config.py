"""Static configuration of a light node."""

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from lightsync.state.model import LightCapabilities, as_float, clamp, round_half_up
from lightsync.values import TypedValue, ValueType, convert_value_type


def normalize_brightness_override(value: Any) -> int:
    """Round and clamp to 0-100. Anything unusable means "not configured" (0)."""
    try:
        number = as_float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    return int(round_half_up(clamp(number, 0, 100)))


@dataclass
class LightConfig:
    """Per-device settings, fixed for the lifetime of a node."""

    device_id: str
    name: str
    room_hint: Optional[str] = None
    topic: Optional[str] = None
    capabilities: LightCapabilities = field(default_factory=LightCapabilities)
    state_payload: bool = False
    passthru: bool = False
    on_value: TypedValue = TypedValue(True, ValueType.BOOL)
    off_value: TypedValue = TypedValue(False, ValueType.BOOL)
    brightness_override: int = 0
    log_state_history: bool = False

    @property
    def brightness_control(self) -> bool:
        return self.capabilities.brightness_control

    @property
    def color_control(self) -> bool:
        return self.capabilities.color_control

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], device_id: str) -> "LightConfig":
        """Build a config from the "light" section of the config file.

        Raises:
            ValueError: If an on/off literal does not match its declared type
        """
        return cls(
            device_id=device_id,
            name=data.get("name") or device_id,
            room_hint=data.get("room_hint") or None,
            topic=data.get("topic") or None,
            capabilities=LightCapabilities(
                brightness_control=bool(data.get("brightness_control", False)),
                color_control=bool(data.get("color_control", False)),
            ),
            state_payload=bool(data.get("state_payload", False)),
            passthru=bool(data.get("passthru", False)),
            on_value=convert_value_type(
                data.get("on_value"), data.get("on_value_type"), default=True
            ),
            off_value=convert_value_type(
                data.get("off_value"), data.get("off_value_type"), default=False
            ),
            brightness_override=normalize_brightness_override(
                data.get("brightness_override", 0)
            ),
            log_state_history=bool(data.get("log_state_history", False)),
        )
