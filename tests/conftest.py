"""Shared fixtures for light sync tests."""

import sys
from pathlib import Path

import pytest

# Import mocks directly to avoid module path issues
sys.path.insert(0, str(Path(__file__).parent))
from mocks.fake_remote import FakeProvider, RecordingHost  # noqa: E402

from lightsync.config import LightConfig  # noqa: E402
from lightsync.node import LightNode  # noqa: E402
from lightsync.state.model import LightCapabilities  # noqa: E402


def make_config(**overrides) -> LightConfig:
    """Build a LightConfig; brightness/color flags go into capabilities."""
    capabilities = LightCapabilities(
        brightness_control=overrides.pop("brightness_control", False),
        color_control=overrides.pop("color_control", False),
    )
    values = {"device_id": "light-1", "name": "Desk Lamp", "topic": "desk"}
    values.update(overrides)
    return LightConfig(capabilities=capabilities, **values)


@pytest.fixture
def provider():
    """Provider that hands out a handle as soon as it is observed."""
    return FakeProvider()


@pytest.fixture
def host():
    return RecordingHost()


@pytest.fixture
def make_node(provider, host):
    """Factory for started light nodes sharing the provider and host fixtures."""
    nodes = []

    def factory(**overrides) -> LightNode:
        node = LightNode(make_config(**overrides), provider, host)
        node.start()
        nodes.append(node)
        return node

    yield factory

    for node in nodes:
        node.close()
