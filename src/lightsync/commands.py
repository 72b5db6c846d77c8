"""Inbound command decoding and application.

Each inbound payload is decoded into exactly one command variant according to
the node's static configuration:

- simple on/off (brightness control disabled): payload compared with the
  configured on/off values
- structured payload (brightness control + state payload): an object with any
  of ``on``, ``brightness`` and ``color.spectrumHSV``
- raw brightness (brightness control only): a number 0-100, 0 meaning off

Decoding never touches the store. apply_command() derives the next snapshot
from the current one, or returns None when nothing should change.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from lightsync.config import LightConfig
from lightsync.state.model import (
    BRIGHTNESS_RANGE,
    DeviceState,
    HSVColor,
    as_float,
    clamp,
    parse_brightness,
    round_half_up,
)
from lightsync.values import resolve_value, values_equal

logger = logging.getLogger(__name__)

STRUCTURED_PAYLOAD_ERROR = (
    "Payload must be an object like { [on]: true/false, [brightness]: 0-100, "
    "[color]: { [spectrumHSV] : { [hue]: 0-360, [saturation]:0-1, [value]:0-1 } } }"
)
RAW_BRIGHTNESS_ERROR = "Payload must be a number in range 0-100"


@dataclass(frozen=True)
class SetPower:
    on: bool


@dataclass(frozen=True)
class StructuredUpdate:
    """Fields that passed validation; None means the field was not accepted."""

    on: Optional[bool] = None
    brightness: Optional[int] = None
    color: Optional[HSVColor] = None

    @property
    def accepted(self) -> bool:
        return any(v is not None for v in (self.on, self.brightness, self.color))


@dataclass(frozen=True)
class RawBrightness:
    value: int


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class DecodeFailure:
    message: str


Command = Union[SetPower, StructuredUpdate, RawBrightness, NoMatch, DecodeFailure]


def decode_command(payload: Any, config: LightConfig) -> Command:
    """Decode an inbound payload for the configured mode."""
    if not config.brightness_control:
        return _decode_on_off(payload, config)
    if config.state_payload:
        return _decode_structured(payload)
    return _decode_raw_brightness(payload)


def _decode_on_off(payload: Any, config: LightConfig) -> Command:
    on_value = resolve_value(*config.on_value)
    off_value = resolve_value(*config.off_value)
    if values_equal(on_value, payload):
        return SetPower(True)
    if values_equal(off_value, payload):
        return SetPower(False)
    return NoMatch()


def _decode_structured(payload: Any) -> Command:
    if not isinstance(payload, Mapping):
        return DecodeFailure(STRUCTURED_PAYLOAD_ERROR)

    color = HSVColor.from_dict(payload.get("color"))
    if color is not None:
        color = color.clamped()

    brightness = parse_brightness(payload.get("brightness"))
    if brightness is not None:
        brightness = int(clamp(brightness, *BRIGHTNESS_RANGE))

    on = payload.get("on")
    if not isinstance(on, bool):
        on = None

    update = StructuredUpdate(on=on, brightness=brightness, color=color)
    return update if update.accepted else NoMatch()


def _decode_raw_brightness(payload: Any) -> Command:
    if isinstance(payload, bool):
        return DecodeFailure(RAW_BRIGHTNESS_ERROR)
    try:
        number = as_float(payload)
    except (TypeError, ValueError):
        return DecodeFailure(RAW_BRIGHTNESS_ERROR)

    if math.isnan(number):
        return DecodeFailure(RAW_BRIGHTNESS_ERROR)
    # Infinities clamp to the range ends
    return RawBrightness(int(round_half_up(clamp(number, 0, 100))))


def apply_command(
    state: DeviceState, command: Command, config: LightConfig
) -> Optional[DeviceState]:
    """Return the next snapshot for a decoded command, or None for no change."""
    if isinstance(command, SetPower):
        return state.with_changes(on=command.on)

    if isinstance(command, StructuredUpdate):
        changes: dict[str, Any] = {}
        if command.on is not None:
            changes["on"] = command.on
        if command.brightness is not None:
            changes["brightness"] = command.brightness
        if command.color is not None and config.color_control:
            changes["color"] = command.color
        if not changes:
            return None
        return state.with_changes(**changes)

    if isinstance(command, RawBrightness):
        if command.value == 0:
            if config.brightness_override != 0:
                return state.with_changes(on=False, brightness=config.brightness_override)
            return state.with_changes(on=False)
        return state.with_changes(on=True, brightness=command.value)

    return None
