"""Merges remote state events into the local store and emits derived messages."""

import logging
from typing import Any, Callable, Mapping

from lightsync.config import LightConfig
from lightsync.state.model import BRIGHTNESS_RANGE, DeviceState, clamp
from lightsync.state.store import DeviceStateStore, Origin
from lightsync.streams import Unsubscribe
from lightsync.sync.connection import ConnectionMultiplexer
from lightsync.values import resolve_value

logger = logging.getLogger(__name__)


class RemoteToLocalSync:
    """Applies remote-originated state events.

    For every event, even one that changes nothing:
    1. notify with the incoming state as received
    2. merge the fields this light supports into the store
    3. send an outbound message shaped by the node configuration
    """

    def __init__(
        self,
        multiplexer: ConnectionMultiplexer,
        store: DeviceStateStore,
        config: LightConfig,
        notify: Callable[[DeviceState], None],
        send: Callable[[dict[str, Any]], None],
        warn: Callable[[Any], None],
    ):
        self._multiplexer = multiplexer
        self._store = store
        self._config = config
        self._notify = notify
        self._send = send
        self._warn = warn

    def start(self) -> Unsubscribe:
        return self._multiplexer.switch(lambda handle: handle.state(), self._on_remote_state)

    def _on_remote_state(self, event: Any) -> None:
        if not isinstance(event, Mapping):
            self._warn(f"Ignoring malformed remote state: {event!r}")
            return

        current = self._store.current()
        incoming = DeviceState.from_dict(event, base=current)
        logger.info(f"Remote state received: {dict(event)}")

        self._notify(incoming)

        merged = self.merge(current, incoming)
        self._store.set(merged, Origin.REMOTE)

        self._send({"payload": self.payload_for(merged), "topic": self._config.topic})

    def merge(self, current: DeviceState, incoming: DeviceState) -> DeviceState:
        """Take on always, brightness and color only where the light supports them."""
        changes: dict[str, Any] = {"on": incoming.on}
        if self._config.brightness_control and incoming.brightness is not None:
            changes["brightness"] = int(clamp(incoming.brightness, *BRIGHTNESS_RANGE))
        if self._config.color_control and incoming.color is not None:
            changes["color"] = incoming.color.clamped()
        return current.with_changes(**changes)

    def payload_for(self, state: DeviceState) -> Any:
        if not self._config.brightness_control:
            value, value_type = self._config.on_value if state.on else self._config.off_value
            return resolve_value(value, value_type)

        if self._config.state_payload:
            payload: dict[str, Any] = {"on": state.on, "brightness": state.brightness}
            if self._config.color_control and state.color is not None:
                payload["color"] = state.color.to_dict()
            return payload

        return state.brightness if state.on else 0
