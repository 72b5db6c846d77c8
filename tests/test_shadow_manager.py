"""Tests for the Device Shadow handle and connection provider."""

from unittest.mock import patch

import pytest

from mocks.mock_iot_client import MockMqttConnection, MockShadowClient
from lightsync.bridge.shadow_manager import (
    ShadowConnectionProvider,
    ShadowDeviceHandle,
    deep_merge,
)
from lightsync.sync.connection import DeviceDescriptor

COLOR = {"spectrumHSV": {"hue": 10.0, "saturation": 0.5, "value": 1.0}}


@pytest.fixture
def mock_shadow_client():
    """Create a mock shadow client."""
    return MockShadowClient()


@pytest.fixture
def descriptor():
    return DeviceDescriptor(
        name="Desk Lamp",
        brightness_control=True,
        color_control=True,
        room_hint="Office",
        state={"online": True, "on": False, "brightness": 100, "color": COLOR},
    )


@pytest.fixture
def handle(mock_shadow_client, descriptor):
    """Create a started handle that dispatches callbacks inline."""
    handle = ShadowDeviceHandle(
        mock_shadow_client, "test-thing", descriptor, lambda fn, *args: fn(*args)
    )
    handle.start()
    return handle


class TestDeepMerge:
    """Tests for merging nested shadow deltas."""

    def test_nested_partial_delta(self):
        merged = deep_merge({"on": False, "color": COLOR}, {"color": {"spectrumHSV": {"hue": 90}}})

        assert merged == {
            "on": False,
            "color": {"spectrumHSV": {"hue": 90, "saturation": 0.5, "value": 1.0}},
        }

    def test_base_is_not_modified(self):
        base = {"color": COLOR}
        deep_merge(base, {"color": {"spectrumHSV": {"hue": 90}}})

        assert base["color"]["spectrumHSV"]["hue"] == 10.0


class TestShadowDeviceHandle:
    """Tests for the shadow handle."""

    def test_start_reports_initial_state_and_device(self, handle, mock_shadow_client):
        reported = mock_shadow_client.get_last_reported()

        assert reported["online"] is True
        assert reported["on"] is False
        assert reported["device"] == {
            "type": "light",
            "name": "Desk Lamp",
            "brightness_control": True,
            "color_control": True,
            "room_hint": "Office",
        }

    def test_push_update_reports_and_clears_desired(self, handle, mock_shadow_client):
        handle.push_update({"on": True, "brightness": 40})

        update = mock_shadow_client.updates[-1]
        assert dict(update.reported) == {"on": True, "brightness": 40, "online": True}
        assert update.desired is None
        assert update.desired_is_nullable is True

    def test_delta_emits_full_state_and_acknowledges(self, handle, mock_shadow_client):
        received = []
        handle.state().subscribe(received.append)

        mock_shadow_client.simulate_delta({"on": True, "color": {"spectrumHSV": {"hue": 90}}})

        expected = {
            "on": True,
            "brightness": 100,
            "color": {"spectrumHSV": {"hue": 90, "saturation": 0.5, "value": 1.0}},
        }
        assert received == [expected]
        assert mock_shadow_client.get_last_reported() == {**expected, "online": True}

    def test_delta_without_light_fields_is_ignored(self, handle, mock_shadow_client):
        received = []
        handle.state().subscribe(received.append)

        mock_shadow_client.simulate_delta({"firmware": "1.2"})

        assert received == []

    def test_delta_merges_over_pushed_state(self, handle, mock_shadow_client):
        received = []
        handle.state().subscribe(received.append)
        handle.push_update({"on": True, "brightness": 40, "color": COLOR})

        mock_shadow_client.simulate_delta({"on": False})

        assert received[0]["brightness"] == 40

    def test_rejected_update_is_an_error(self, handle, mock_shadow_client):
        errors = []
        handle.errors().subscribe(errors.append)

        mock_shadow_client.simulate_rejected(400, "Missing required node: state")

        assert errors == ["Shadow update rejected (400): Missing required node: state"]

    def test_failed_publish_is_an_error(self, handle, mock_shadow_client):
        errors = []
        handle.errors().subscribe(errors.append)
        mock_shadow_client.fail_updates = True

        handle.push_update({"on": True})

        assert len(errors) == 1
        assert "Simulated update failure" in errors[0]

    def test_closed_handle_is_silent(self, handle, mock_shadow_client):
        received = []
        handle.state().subscribe(received.append)
        count = len(mock_shadow_client.updates)

        handle.close()
        mock_shadow_client.simulate_delta({"on": True})
        handle.push_update({"on": True})

        assert received == []
        assert len(mock_shadow_client.updates) == count


class TestShadowConnectionProvider:
    """Tests for handle creation and reconnects."""

    @pytest.fixture
    def provider(self, mock_shadow_client):
        provider = ShadowConnectionProvider(MockMqttConnection(), "test-thing")
        with patch.object(provider, "_get_client", return_value=mock_shadow_client):
            yield provider

    def test_handle_created_on_first_observer(self, provider, descriptor):
        feed = provider.connect("desk", lambda: descriptor)
        handles = []

        assert handles == []
        feed.subscribe(handles.append)

        assert len(handles) == 1
        assert isinstance(handles[0], ShadowDeviceHandle)

    def test_reconnected_emits_new_handle(self, provider, descriptor):
        feed = provider.connect("desk", lambda: descriptor)
        handles = []
        feed.subscribe(handles.append)

        provider.reconnected()

        assert len(handles) == 2
        assert handles[0] is not handles[1]

    def test_old_handle_is_closed_on_reconnect(self, provider, descriptor, mock_shadow_client):
        feed = provider.connect("desk", lambda: descriptor)
        handles = []
        feed.subscribe(handles.append)
        stale = []
        handles[0].state().subscribe(stale.append)

        provider.reconnected()
        mock_shadow_client.simulate_delta({"on": True})

        assert stale == []

    def test_reconnected_without_observers_does_nothing(self, provider, descriptor):
        provider.connect("desk", lambda: descriptor)

        provider.reconnected()

    def test_descriptor_is_read_per_handle(self, provider, descriptor, mock_shadow_client):
        states = iter([{"online": True, "on": False}, {"online": True, "on": True}])

        def describe():
            return DeviceDescriptor(
                name="Desk Lamp",
                brightness_control=False,
                color_control=False,
                state=next(states),
            )

        feed = provider.connect("desk", describe)
        feed.subscribe(lambda _: None)
        provider.reconnected()

        assert mock_shadow_client.get_last_reported()["on"] is True
