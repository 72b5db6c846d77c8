"""Tests for bridge and light configuration loading."""

import json

import pytest

from lightsync.bridge.config import IoTConfig, load_config
from lightsync.config import LightConfig, normalize_brightness_override
from lightsync.values import TypedValue, ValueType


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Write a config file and clear environment overrides."""
    for name in ("IOT_ENDPOINT", "IOT_THING_NAME", "IOT_CONFIG_PATH", "LIGHT_NAME", "LIGHT_ROOM_HINT"):
        monkeypatch.delenv(name, raising=False)

    def write(data: dict):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data))
        return path

    return write


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.json"))

    def test_defaults(self, config_file):
        path = config_file({"endpoint": "abc.iot.eu-central-1.amazonaws.com"})

        config = load_config(str(path))

        assert config.thing_name == "smart-light-default"
        assert config.device_id == "smart-light-default"
        assert config.cert_path == path.parent / "smart-light-default" / "certificate.pem"
        assert config.light.name == "smart-light-default"
        assert config.light.brightness_control is False
        assert config.light.on_value == TypedValue(True, ValueType.BOOL)
        assert config.command_topic == "smarthome/smart-light-default/commands"

    def test_light_section(self, config_file):
        path = config_file(
            {
                "endpoint": "e",
                "device_id": "desk",
                "light": {
                    "name": "Desk Lamp",
                    "room_hint": "Office",
                    "topic": "lamp",
                    "brightness_control": True,
                    "color_control": True,
                    "state_payload": True,
                    "on_value": "1",
                    "on_value_type": "num",
                    "brightness_override": 33.6,
                },
            }
        )

        light = load_config(str(path)).light

        assert light.device_id == "desk"
        assert light.name == "Desk Lamp"
        assert light.room_hint == "Office"
        assert light.topic == "lamp"
        assert light.capabilities.color_control is True
        assert light.state_payload is True
        assert light.on_value == TypedValue(1, ValueType.NUM)
        assert light.brightness_override == 34

    def test_environment_overrides(self, config_file, monkeypatch):
        path = config_file({"endpoint": "file-endpoint", "light": {"name": "File Name"}})
        monkeypatch.setenv("IOT_ENDPOINT", "env-endpoint")
        monkeypatch.setenv("IOT_THING_NAME", "env-thing")
        monkeypatch.setenv("LIGHT_NAME", "Env Name")

        config = load_config(str(path))

        assert config.endpoint == "env-endpoint"
        assert config.thing_name == "env-thing"
        assert config.light.name == "Env Name"

    def test_invalid_on_value(self, config_file):
        path = config_file({"light": {"on_value": "sure", "on_value_type": "bool"}})

        with pytest.raises(ValueError):
            load_config(str(path))


class TestValidate:
    """Tests for IoTConfig.validate."""

    def test_missing_certificate(self, tmp_path):
        config = IoTConfig(
            endpoint="e",
            thing_name="t",
            cert_path=tmp_path / "missing.pem",
            key_path=tmp_path / "missing.key",
            root_ca_path=tmp_path / "missing-ca.pem",
            device_id="d",
        )

        with pytest.raises(FileNotFoundError):
            config.validate()

    def test_missing_endpoint(self, tmp_path):
        config = IoTConfig(
            endpoint="",
            thing_name="t",
            cert_path=tmp_path,
            key_path=tmp_path,
            root_ca_path=tmp_path,
            device_id="d",
        )

        with pytest.raises(ValueError):
            config.validate()

    def test_default_light(self, tmp_path):
        config = IoTConfig("e", "t", tmp_path, tmp_path, tmp_path, "d")

        assert config.light == LightConfig(device_id="d", name="d")


@pytest.mark.parametrize("value, expected", [(0, 0), (30, 30), (49.5, 50), (150, 100), (-5, 0), ("x", 0), (None, 0), (10**400, 100), (-(10**400), 0)])
def test_normalize_brightness_override(value, expected):
    assert normalize_brightness_override(value) == expected
