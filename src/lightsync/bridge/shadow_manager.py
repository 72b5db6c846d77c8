"""AWS IoT Device Shadow as the remote representation of a light."""

import asyncio
import logging
from concurrent.futures import Future
from typing import Any, Callable, Mapping, Optional

from awscrt.mqtt import Connection, QoS
from awsiot import iotshadow

from lightsync.streams import Feed
from lightsync.sync.connection import ConnectionProvider, DeviceDescriptor, DeviceHandle

logger = logging.getLogger(__name__)

STATE_FIELDS = ("on", "brightness", "color")


def deep_merge(base: Mapping[str, Any], delta: Mapping[str, Any]) -> dict[str, Any]:
    """Merge a (possibly partial, nested) shadow delta over a base document."""
    merged = dict(base)
    for key, value in delta.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ShadowDeviceHandle(DeviceHandle):
    """One live link between a light and its Device Shadow.

    Handles:
    - Reporting the initial descriptor state on start
    - Turning desired-state deltas into full light state events
    - Reporting local state updates without waiting for acknowledgement
    - Surfacing rejected updates and failed subscriptions as errors
    """

    def __init__(
        self,
        client: iotshadow.IotShadowClient,
        thing_name: str,
        descriptor: DeviceDescriptor,
        dispatch: Callable[..., None],
    ):
        """Initialize the handle.

        Args:
            client: Shadow client bound to the MQTT connection
            thing_name: IoT Thing name for shadow operations
            descriptor: Light description and initial state
            dispatch: Runs a callable on the event loop thread
        """
        self._client = client
        self._thing_name = thing_name
        self._descriptor = descriptor
        self._dispatch = dispatch
        self._errors: Feed[Any] = Feed()
        self._state: Feed[dict[str, Any]] = Feed()
        self._last_state = {
            key: value for key, value in descriptor.state.items() if key in STATE_FIELDS
        }
        self._closed = False

    def errors(self) -> Feed[Any]:
        return self._errors

    def state(self) -> Feed[dict[str, Any]]:
        return self._state

    def start(self) -> None:
        """Subscribe to shadow topics and report the initial state."""
        delta_future, _ = self._client.subscribe_to_shadow_delta_updated_events(
            request=iotshadow.ShadowDeltaUpdatedSubscriptionRequest(
                thing_name=self._thing_name
            ),
            qos=QoS.AT_LEAST_ONCE,
            callback=self._on_delta,
        )
        self._watch(delta_future, "Failed to subscribe to shadow delta")

        rejected_future, _ = self._client.subscribe_to_update_shadow_rejected(
            request=iotshadow.UpdateShadowSubscriptionRequest(thing_name=self._thing_name),
            qos=QoS.AT_LEAST_ONCE,
            callback=self._on_update_rejected,
        )
        self._watch(rejected_future, "Failed to subscribe to shadow rejections")

        device = {
            key: value for key, value in self._descriptor.to_dict().items() if key != "state"
        }
        self._publish_update(
            iotshadow.ShadowState(reported={**self._descriptor.state, "device": device})
        )
        logger.info(f"Shadow handle started for {self._thing_name}")

    def push_update(self, state: dict[str, Any]) -> None:
        """Report local state and clear any pending desired state."""
        if self._closed:
            return
        self._last_state = deep_merge(self._last_state, state)
        self._publish_update(
            iotshadow.ShadowState(
                reported={**state, "online": True},
                desired=None,
                desired_is_nullable=True,
            )
        )
        logger.debug(f"Shadow reported state: {state}")

    def close(self) -> None:
        """Stop emitting events. Subscriptions die with the MQTT session."""
        self._closed = True
        self._errors.complete()
        self._state.complete()

    def _publish_update(self, state: iotshadow.ShadowState) -> None:
        try:
            request = iotshadow.UpdateShadowRequest(thing_name=self._thing_name, state=state)
            future = self._client.publish_update_shadow(request, qos=QoS.AT_LEAST_ONCE)
        except Exception as e:
            logger.warning(f"Failed to update shadow: {type(e).__name__}: {e}")
            self._errors.publish(f"Failed to update shadow: {e}")
            return
        self._watch(future, "Failed to update shadow")

    def _watch(self, future: Future, message: str) -> None:
        """Send the failure of an SDK future to errors() once it resolves."""

        def on_done(done: Future) -> None:
            error = done.exception()
            if error is not None:
                logger.warning(f"{message}: {type(error).__name__}: {error}")
                self._dispatch(self._emit_error, f"{message}: {error}")

        future.add_done_callback(on_done)

    def _on_delta(self, response: iotshadow.ShadowDeltaUpdatedEvent) -> None:
        # SDK thread
        if not response.state:
            return
        self._dispatch(self._apply_delta, dict(response.state))

    def _on_update_rejected(self, response: iotshadow.ErrorResponse) -> None:
        # SDK thread
        logger.warning(f"Shadow update rejected: {response.message}")
        self._dispatch(self._emit_error, f"Shadow update rejected ({response.code}): {response.message}")

    def _apply_delta(self, delta: dict[str, Any]) -> None:
        if self._closed:
            return
        logger.info(f"Shadow delta received: {delta}")
        accepted = {key: value for key, value in delta.items() if key in STATE_FIELDS}
        if not accepted:
            return

        self._last_state = deep_merge(self._last_state, accepted)
        event = dict(self._last_state)

        # The device now holds the desired values: acknowledge them as reported
        self._publish_update(iotshadow.ShadowState(reported={**event, "online": True}))
        self._state.publish(event)

    def _emit_error(self, error: Any) -> None:
        if not self._closed:
            self._errors.publish(error)


class ShadowConnectionProvider(ConnectionProvider):
    """Provides shadow handles over one MQTT connection.

    A new handle is emitted each time the MQTT connection resumes, while
    someone is observing. Reconnect policy belongs to the MQTT client.
    """

    def __init__(
        self,
        connection: Connection,
        thing_name: str,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """Initialize the provider.

        Args:
            connection: MQTT connection to AWS IoT Core
            thing_name: IoT Thing name for shadow operations
            loop: Event loop that owns the light node. SDK callbacks are moved
                onto it. Without a loop, callbacks run on the calling thread.
        """
        self._connection = connection
        self._thing_name = thing_name
        self._loop = loop
        self._shadow_client: Optional[iotshadow.IotShadowClient] = None
        self._describe: Optional[Callable[[], DeviceDescriptor]] = None
        self._feed: Optional[Feed[DeviceHandle]] = None
        self._handle: Optional[ShadowDeviceHandle] = None

    def _get_client(self) -> iotshadow.IotShadowClient:
        """Lazily create the shadow client."""
        if self._shadow_client is None:
            self._shadow_client = iotshadow.IotShadowClient(self._connection)
        return self._shadow_client

    def connect(
        self, device_id: str, describe: Callable[[], DeviceDescriptor]
    ) -> Feed[DeviceHandle]:
        logger.info(f"Adding device {device_id} to shadow {self._thing_name}")
        self._describe = describe
        self._feed = Feed(on_start=self._open, on_stop=self._release)
        return self._feed

    def reconnected(self) -> None:
        """Emit a fresh handle after the MQTT connection resumed."""
        if self._feed is None or self._feed.observer_count == 0:
            return
        logger.info("Connection resumed, replacing shadow handle")
        self._open()

    def _open(self) -> None:
        self._release()
        handle = ShadowDeviceHandle(
            self._get_client(), self._thing_name, self._describe(), self._dispatch
        )
        try:
            handle.start()
        except Exception as e:
            logger.warning(f"Failed to start shadow handle: {type(e).__name__}: {e}")
            return
        self._handle = handle
        self._feed.publish(handle)

    def _release(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def _dispatch(self, fn: Callable[..., None], *args: Any) -> None:
        if self._loop is None:
            fn(*args)
            return
        self._loop.call_soon_threadsafe(fn, *args)
