"""Keeps a local light state and its remote device representation in sync."""

from lightsync.config import LightConfig
from lightsync.node import LightNode, NodeHost
from lightsync.state import DeviceState, HSVColor, LightCapabilities

__all__ = [
    "DeviceState",
    "HSVColor",
    "LightCapabilities",
    "LightConfig",
    "LightNode",
    "NodeHost",
]
