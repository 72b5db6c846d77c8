"""Configuration loader for the light bridge."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from lightsync.config import LightConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.smarthome/iot/config.json"
DEFAULT_THING_NAME = "smart-light-default"


@dataclass
class IoTConfig:
    """IoT Core connection configuration plus the light it hosts."""

    endpoint: str
    thing_name: str
    cert_path: Path
    key_path: Path
    root_ca_path: Path
    device_id: str
    light: Optional[LightConfig] = field(default=None)

    def __post_init__(self):
        if self.light is None:
            self.light = LightConfig(device_id=self.device_id, name=self.device_id)

    def validate(self) -> None:
        """Validate that all certificate files exist and the endpoint is set."""
        if not self.endpoint:
            raise ValueError("IoT endpoint is not configured")
        for path, name in [
            (self.cert_path, "certificate"),
            (self.key_path, "private key"),
            (self.root_ca_path, "root CA"),
        ]:
            if not path.exists():
                raise FileNotFoundError(f"{name} not found at {path}")

    @property
    def command_topic(self) -> str:
        return f"smarthome/{self.device_id}/commands"

    @property
    def message_topic(self) -> str:
        return f"smarthome/{self.device_id}/messages"

    @property
    def status_topic(self) -> str:
        return f"smarthome/{self.device_id}/status"

    @property
    def warning_topic(self) -> str:
        return f"smarthome/{self.device_id}/warnings"


def load_config(config_path: Optional[str] = None) -> IoTConfig:
    """Load bridge configuration from file with environment variable overrides.

    Environment variables:
        IOT_ENDPOINT: Override AWS IoT Core endpoint
        IOT_THING_NAME: Override IoT Thing name
        IOT_CONFIG_PATH: Override config file location
        LIGHT_NAME: Override the light's display name
        LIGHT_ROOM_HINT: Override the light's room hint

    Args:
        config_path: Path to config JSON file. Defaults to ~/.smarthome/iot/config.json

    Returns:
        IoTConfig with the light settings from the "light" section

    Raises:
        FileNotFoundError: If the config file does not exist
        ValueError: If the light section holds an invalid on/off value
    """
    path_str = config_path or os.environ.get("IOT_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    config_file = Path(path_str).expanduser()

    if not config_file.exists():
        raise FileNotFoundError(
            f"IoT config not found at {config_file}. "
            f"Create it with endpoint, thing_name and a 'light' section."
        )

    with open(config_file) as f:
        data = json.load(f)

    endpoint = os.environ.get("IOT_ENDPOINT", data.get("endpoint", ""))
    thing_name = os.environ.get("IOT_THING_NAME", data.get("thing_name", DEFAULT_THING_NAME))
    device_id = data.get("device_id", thing_name)

    # Expand paths relative to config file directory
    config_dir = config_file.parent
    cert_dir = config_dir / thing_name

    cert_path = Path(data.get("cert_path", cert_dir / "certificate.pem")).expanduser()
    key_path = Path(data.get("key_path", cert_dir / "private.key")).expanduser()
    root_ca_path = Path(data.get("root_ca_path", cert_dir / "AmazonRootCA1.pem")).expanduser()

    light_data = dict(data.get("light", {}))
    if "LIGHT_NAME" in os.environ:
        light_data["name"] = os.environ["LIGHT_NAME"]
    if "LIGHT_ROOM_HINT" in os.environ:
        light_data["room_hint"] = os.environ["LIGHT_ROOM_HINT"]

    config = IoTConfig(
        endpoint=endpoint,
        thing_name=thing_name,
        cert_path=cert_path,
        key_path=key_path,
        root_ca_path=root_ca_path,
        device_id=device_id,
        light=LightConfig.from_dict(light_data, device_id=device_id),
    )

    logger.info(
        f"Loaded IoT config: endpoint={endpoint}, thing={thing_name}, "
        f"light={config.light.name}"
    )
    return config
