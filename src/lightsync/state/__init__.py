"""Light state model and store."""

from lightsync.state.model import DeviceState, HSVColor, LightCapabilities
from lightsync.state.store import DeviceStateStore, Origin, StateChange

__all__ = [
    "DeviceState",
    "DeviceStateStore",
    "HSVColor",
    "LightCapabilities",
    "Origin",
    "StateChange",
]
