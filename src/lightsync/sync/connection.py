"""Remote device handles and the shared, cached connection multiplexer."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from lightsync.streams import Feed, Unsubscribe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceDescriptor:
    """Static description sent to the remote side when a device is added."""

    name: str
    brightness_control: bool
    color_control: bool
    room_hint: Optional[str] = None
    state: dict[str, Any] = field(default_factory=dict)
    type: str = "light"

    def to_dict(self) -> dict[str, Any]:
        data = {
            "type": self.type,
            "name": self.name,
            "brightness_control": self.brightness_control,
            "color_control": self.color_control,
            "state": dict(self.state),
        }
        if self.room_hint:
            data["room_hint"] = self.room_hint
        return data


class DeviceHandle(ABC):
    """An active link to the remote representation of one device."""

    @abstractmethod
    def errors(self) -> Feed[Any]:
        """Feed of errors reported by the remote side."""
        pass

    @abstractmethod
    def state(self) -> Feed[dict[str, Any]]:
        """Feed of remote-originated state events in DeviceState wire form."""
        pass

    @abstractmethod
    def push_update(self, state: dict[str, Any]) -> None:
        """Send a local state to the remote side without waiting for it."""
        pass


class ConnectionProvider(ABC):
    """Creates device handles. Retry and reconnect policy live here."""

    @abstractmethod
    def connect(
        self, device_id: str, describe: Callable[[], DeviceDescriptor]
    ) -> Feed[DeviceHandle]:
        """Return a feed that emits a handle per (re)connection.

        describe() returns the descriptor, with the current state, at the
        moment a handle is created.
        """
        pass


class ConnectionMultiplexer:
    """Shares one lazily created provider connection between observers.

    - The provider is asked for its handle feed once, on first use
    - The latest handle is replayed to every new observer
    - A new handle from the provider replaces the old one for everyone
    - When the last observer leaves, or on close(), the provider feed is released
    """

    def __init__(
        self,
        provider: ConnectionProvider,
        device_id: str,
        describe: Callable[[], DeviceDescriptor],
    ):
        self._provider = provider
        self._device_id = device_id
        self._describe = describe
        self._source: Optional[Feed[DeviceHandle]] = None
        self._upstream: Optional[Unsubscribe] = None
        self._handle: Optional[DeviceHandle] = None
        self._closed = False
        self._feed: Feed[DeviceHandle] = Feed(
            on_start=self._connect, on_stop=self._disconnect
        )

    def _connect(self) -> None:
        if self._closed:
            return
        if self._source is None:
            logger.info(f"Connecting device {self._device_id}")
            self._source = self._provider.connect(self._device_id, self._describe)
        self._upstream = self._source.subscribe(self._on_handle)

    def _disconnect(self) -> None:
        if self._upstream is not None:
            self._upstream()
            self._upstream = None
        self._handle = None

    def _on_handle(self, handle: DeviceHandle) -> None:
        if self._closed:
            return
        logger.debug(f"New handle for device {self._device_id}")
        self._handle = handle
        self._feed.publish(handle)

    def subscribe(self, callback: Callable[[DeviceHandle], None]) -> Unsubscribe:
        """Observe the current handle and every later one."""
        if self._closed:
            return lambda: None
        cached = self._handle
        unsubscribe = self._feed.subscribe(callback)
        if cached is not None:
            callback(cached)
        return unsubscribe

    def switch(
        self,
        select: Callable[[DeviceHandle], Feed[Any]],
        callback: Callable[[Any], None],
    ) -> Unsubscribe:
        """Observe a feed of the current handle, re-selecting on every new handle."""
        inner: Optional[Unsubscribe] = None

        def on_handle(handle: DeviceHandle) -> None:
            nonlocal inner
            if inner is not None:
                inner()
            inner = select(handle).subscribe(callback)

        outer = self.subscribe(on_handle)

        def unsubscribe() -> None:
            nonlocal inner
            outer()
            if inner is not None:
                inner()
                inner = None

        return unsubscribe

    def close(self) -> None:
        """Release the provider feed. No handles are delivered afterwards."""
        if self._closed:
            return
        self._closed = True
        self._feed.complete()
        self._disconnect()

    @property
    def current(self) -> Optional[DeviceHandle]:
        return self._handle
