"""AWS IoT Core bridge hosting a light node."""

import asyncio
import json
import logging
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Any, Optional

from awscrt import mqtt
from awsiot import mqtt_connection_builder

from lightsync.bridge.config import IoTConfig
from lightsync.bridge.shadow_manager import ShadowConnectionProvider
from lightsync.logging.dynamo_logger import DynamoStateLogger
from lightsync.node import LightNode, NodeHost
from lightsync.state.store import StateChange

logger = logging.getLogger(__name__)

# Disable bridge after this many consecutive failures
MAX_FAILURES = 3


class IoTBridge(NodeHost):
    """Bridge between AWS IoT Core and a light node.

    Handles:
    - MQTT connection to AWS IoT Core with TLS certificates
    - Feeding inbound command messages to the node
    - Publishing the node's messages, status strings and warnings
    - Providing Device Shadow handles to the node
    - Auto-reconnection (handled by AWS SDK)

    Topic structure:
    - Commands: smarthome/{device_id}/commands
    - Messages: smarthome/{device_id}/messages
    - Status: smarthome/{device_id}/status
    - Warnings: smarthome/{device_id}/warnings
    """

    def __init__(
        self,
        config: IoTConfig,
        state_logger: Optional[DynamoStateLogger] = None,
    ):
        """Initialize the IoT Bridge.

        Args:
            config: IoT Core connection and light configuration
            state_logger: Optional state history sink, used when the light
                config enables log_state_history
        """
        self._config = config
        self._state_logger = state_logger
        self._connection: Optional[mqtt.Connection] = None
        self._provider: Optional[ShadowConnectionProvider] = None
        self._node: Optional[LightNode] = None
        self._running = False
        self._disabled = False
        self._failure_count = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None  # Store event loop for thread-safe callbacks
        self._tasks: set[asyncio.Task] = set()

    async def start(self) -> bool:
        """Start the bridge, connect to AWS IoT Core and start the light node.

        Returns:
            True if connection succeeded, False otherwise
        """
        if self._disabled:
            logger.warning("Bridge is disabled due to previous failures")
            return False

        try:
            # Capture event loop for thread-safe callbacks from AWS SDK
            self._loop = asyncio.get_running_loop()
            self._connection = self._create_connection()

            connect_future = self._connection.connect()
            connect_future.result(timeout=10.0)

            logger.info(f"Connected to AWS IoT Core: {self._config.endpoint}")

            self._provider = ShadowConnectionProvider(
                self._connection, self._config.thing_name, self._loop
            )
            self._node = LightNode(self._config.light, self._provider, self)
            self._node.start()

            if self._state_logger and self._config.light.log_state_history:
                self._node.add_teardown(self._node.store.changes(self._log_state_change))

            await self._subscribe_to_commands()

            self._running = True
            self._failure_count = 0
            return True

        except Exception as e:
            logger.error(f"Failed to start bridge: {e}")
            if self._node is not None:
                self._node.close()
                self._node = None
            self._handle_connection_failure()
            return False

    async def stop(self) -> None:
        """Close the light node and disconnect from AWS IoT Core."""
        self._running = False

        if self._node:
            self._node.close()
            self._node = None

        if self._connection:
            try:
                disconnect_future = self._connection.disconnect()
                disconnect_future.result(timeout=5.0)
                logger.info("Disconnected from AWS IoT Core")
            except Exception as e:
                logger.warning(f"Error during disconnect: {e}")
            finally:
                self._connection = None
                self._provider = None

    def _create_connection(self) -> mqtt.Connection:
        """Create MQTT connection with TLS certificates."""
        return mqtt_connection_builder.mtls_from_path(
            endpoint=self._config.endpoint,
            cert_filepath=str(self._config.cert_path),
            pri_key_filepath=str(self._config.key_path),
            ca_filepath=str(self._config.root_ca_path),
            client_id=self._config.thing_name,
            clean_session=False,
            keep_alive_secs=30,
            on_connection_interrupted=self._on_connection_interrupted,
            on_connection_resumed=self._on_connection_resumed,
        )

    def _on_connection_interrupted(self, connection, error, **kwargs):  # noqa: ARG002
        """Handle connection interruption."""
        logger.warning(f"Connection interrupted: {error}")

    def _on_connection_resumed(self, connection, return_code, session_present, **kwargs):  # noqa: ARG002
        """Handle connection resume after interruption."""
        logger.info(f"Connection resumed (session_present={session_present})")
        self._failure_count = 0

        if self._provider is not None:
            self._call_soon(self._provider.reconnected)

    def _handle_connection_failure(self) -> None:
        """Handle connection failure. Disables bridge after MAX_FAILURES."""
        self._failure_count += 1

        if self._failure_count >= MAX_FAILURES:
            logger.error(f"Max failures ({MAX_FAILURES}) reached, disabling bridge")
            self._disabled = True

    def _call_soon(self, callback, *args) -> None:
        """Run a callback on the event loop from a different thread (e.g., SDK callbacks).

        AWS SDK callbacks run in a separate thread, and the light node must
        only be touched from the event loop thread.
        """
        if self._loop is None:
            logger.warning("Cannot schedule callback: no event loop stored")
            return
        self._loop.call_soon_threadsafe(callback, *args)

    async def _subscribe_to_commands(self) -> None:
        """Subscribe to the light's command topic."""

        def on_message(topic: str, payload: bytes, **kwargs):  # noqa: ARG001
            self._call_soon(self._handle_command, payload)

        topic = self._config.command_topic
        subscribe_future, _ = self._connection.subscribe(
            topic=topic,
            qos=mqtt.QoS.AT_LEAST_ONCE,
            callback=on_message,
        )
        subscribe_future.result(timeout=5.0)
        logger.info(f"Subscribed to command topic: {topic}")

    def _handle_command(self, payload: bytes) -> None:
        """Handle an incoming command message.

        JSON objects with a "payload" key are used as the message; any other
        JSON value, or non-JSON text, becomes the payload itself.
        """
        if self._node is None:
            return

        text = payload.decode("utf-8", errors="replace")
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = text

        if isinstance(data, dict) and "payload" in data:
            message = data
        else:
            message = {"payload": data}

        logger.info(f"Received command: device={self._config.device_id}, payload={message['payload']!r}")
        self._node.receive(message)

    # NodeHost implementation

    def send(self, message: dict[str, Any]) -> None:
        self._publish(self._config.message_topic, message)

    def status(self, text: str) -> None:
        logger.debug(f"Status: {text}")
        self._publish(
            self._config.status_topic,
            {"status": text, "timestamp": datetime.now(timezone.utc).isoformat()},
        )

    def warn(self, message: Any) -> None:
        logger.warning(f"Light {self._config.device_id}: {message}")
        self._publish_warning("warning", message)

    def error(self, message: str) -> None:
        logger.error(f"Light {self._config.device_id}: {message}")
        self._publish_warning("error", message)

    def _publish_warning(self, level: str, message: Any) -> None:
        self._publish(
            self._config.warning_topic,
            {
                "level": level,
                "message": str(message),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    def _publish(self, topic: str, body: dict[str, Any]) -> None:
        """Publish a JSON message without waiting for the broker."""
        if not self._connection:
            return

        try:
            publish_future, _ = self._connection.publish(
                topic=topic,
                payload=json.dumps(body, default=str).encode("utf-8"),
                qos=mqtt.QoS.AT_LEAST_ONCE,
            )
        except Exception as e:
            logger.warning(f"Failed to publish to {topic}: {e}")
            return

        def on_done(done: Future) -> None:
            error = done.exception()
            if error is not None:
                logger.warning(f"Failed to publish to {topic}: {error}")

        publish_future.add_done_callback(on_done)
        logger.debug(f"Published to {topic}")

    def _log_state_change(self, change: StateChange) -> None:
        """Record a canonical snapshot in the state history (fire-and-forget)."""
        task = self._loop.create_task(
            self._state_logger.log_state_change(
                self._config.device_id, change.origin.value, change.state.to_dict()
            )
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def node(self) -> Optional[LightNode]:
        return self._node

    @property
    def is_running(self) -> bool:
        """Check if bridge is currently running."""
        return self._running

    @property
    def is_disabled(self) -> bool:
        """Check if bridge is disabled due to failures."""
        return self._disabled
