"""IoT Bridge module for AWS IoT Core integration."""

from lightsync.bridge.config import IoTConfig, load_config
from lightsync.bridge.iot_bridge import IoTBridge
from lightsync.bridge.shadow_manager import ShadowConnectionProvider, ShadowDeviceHandle

__all__ = [
    "IoTBridge",
    "IoTConfig",
    "ShadowConnectionProvider",
    "ShadowDeviceHandle",
    "load_config",
]
