"""A light node: one device, its canonical state and its sync pipelines."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional

from lightsync.commands import DecodeFailure, apply_command, decode_command
from lightsync.config import LightConfig
from lightsync.formatting import format_status
from lightsync.state.model import DeviceState
from lightsync.state.store import DeviceStateStore
from lightsync.streams import CloseSignal
from lightsync.sync.connection import (
    ConnectionMultiplexer,
    ConnectionProvider,
    DeviceDescriptor,
)
from lightsync.sync.errors import forward_errors
from lightsync.sync.local_to_remote import LocalToRemoteSync
from lightsync.sync.remote_to_local import RemoteToLocalSync

logger = logging.getLogger(__name__)


class NodeHost(ABC):
    """Channels a node talks to. Implemented by whatever hosts the node."""

    @abstractmethod
    def send(self, message: dict[str, Any]) -> None:
        """Deliver a message ({payload, topic}) on the output channel."""
        pass

    @abstractmethod
    def status(self, text: str) -> None:
        """Show a short status string."""
        pass

    @abstractmethod
    def warn(self, message: Any) -> None:
        """Report a non-fatal problem, e.g. an error from the remote side."""
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        """Report a rejected inbound command."""
        pass


class LightNode:
    """Keeps one light's local state and its remote representation in agreement.

    Handles:
    - Inbound commands that mutate the local state (receive)
    - Pushing local changes to the remote device
    - Merging remote changes back and emitting derived messages
    - Forwarding remote errors
    - Tearing everything down exactly once (close)
    """

    def __init__(
        self,
        config: LightConfig,
        provider: ConnectionProvider,
        host: NodeHost,
    ):
        """Initialize the node.

        Args:
            config: Static per-device configuration
            provider: Source of remote device handles
            host: Output, status and warning channels
        """
        self._config = config
        self._provider = provider
        self._host = host
        self._close_signal = CloseSignal()
        self._multiplexer: Optional[ConnectionMultiplexer] = None
        self._started = False
        self.store = DeviceStateStore(DeviceState.initial(config.capabilities))

    def start(self) -> None:
        """Subscribe all pipelines. The connection itself is created lazily."""
        if self._started or self.closed:
            return
        self._started = True

        self._multiplexer = ConnectionMultiplexer(
            self._provider, self._config.device_id, self.describe
        )

        local_to_remote = LocalToRemoteSync(self._multiplexer, self.store, self._notify)
        remote_to_local = RemoteToLocalSync(
            self._multiplexer,
            self.store,
            self._config,
            notify=self._notify,
            send=self._send,
            warn=self._warn,
        )

        self.add_teardown(local_to_remote.start())
        self.add_teardown(forward_errors(self._multiplexer, self._warn))
        self.add_teardown(remote_to_local.start())
        self.add_teardown(self._multiplexer.close)
        self.add_teardown(self.store.complete)

        logger.info(f"Light node started: {self._config.device_id}")

    def receive(self, message: Mapping[str, Any]) -> None:
        """Handle one inbound message ({payload, topic})."""
        if self.closed:
            logger.debug(f"Ignoring message after close: {message}")
            return

        if self._config.passthru:
            self._send(dict(message))

        command = decode_command(message.get("payload"), self._config)
        if isinstance(command, DecodeFailure):
            self._host.error(command.message)
            return

        next_state = apply_command(self.store.current(), command, self._config)
        if next_state is None:
            logger.debug(f"No state change for command: {command}")
            return
        self.store.set(next_state)

    def describe(self) -> DeviceDescriptor:
        """Descriptor for adding this light remotely, carrying the current state."""
        return DeviceDescriptor(
            name=self._config.name,
            brightness_control=self._config.brightness_control,
            color_control=self._config.color_control,
            room_hint=self._config.room_hint,
            state={"online": True, **self.store.current().to_dict()},
        )

    def add_teardown(self, callback: Callable[[], None]) -> None:
        """Run callback once when the node closes."""
        self._close_signal.add_callback(callback)

    def close(self) -> None:
        """Stop every pipeline and release the connection. Safe to call repeatedly."""
        if self.closed:
            return
        logger.info(f"Closing light node: {self._config.device_id}")
        self._close_signal.fire()

    @property
    def closed(self) -> bool:
        return self._close_signal.fired

    @property
    def config(self) -> LightConfig:
        return self._config

    def _notify(self, state: DeviceState) -> None:
        if self.closed:
            return
        self._host.status(format_status(state, self._config.capabilities))

    def _send(self, message: dict[str, Any]) -> None:
        if self.closed:
            return
        self._host.send(message)

    def _warn(self, message: Any) -> None:
        if self.closed:
            return
        self._host.warn(message)
