"""Single-owner store for the canonical light state."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from lightsync.state.model import DeviceState
from lightsync.streams import Feed, Unsubscribe

logger = logging.getLogger(__name__)


class Origin(str, Enum):
    """Where a state change came from."""

    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class StateChange:
    """A snapshot together with the origin of the change that produced it."""

    state: DeviceState
    origin: Origin


class DeviceStateStore:
    """Holds the one authoritative DeviceState.

    No validation happens here: callers pass snapshots that are already
    clamped and shaped for the node's capabilities.
    """

    def __init__(self, initial: DeviceState):
        self._current = StateChange(initial, Origin.LOCAL)
        self._feed: Feed[StateChange] = Feed()

    def current(self) -> DeviceState:
        """Return the latest snapshot."""
        return self._current.state

    def set(self, state: DeviceState, origin: Origin = Origin.LOCAL) -> None:
        """Replace the snapshot and notify subscribers in call order."""
        if self._feed.completed:
            logger.debug(f"Ignoring state update after close: {state}")
            return
        self._current = StateChange(state, origin)
        self._feed.publish(self._current)

    def changes(self, callback: Callable[[StateChange], None]) -> Unsubscribe:
        """Subscribe to the current snapshot followed by every later one."""
        if self._feed.completed:
            return lambda: None
        callback(self._current)
        return self._feed.subscribe(callback)

    def complete(self) -> None:
        self._feed.complete()

    @property
    def completed(self) -> bool:
        return self._feed.completed
