"""Pushes local state changes to the remote device handle."""

import logging
from typing import Callable, Optional

from lightsync.state.model import DeviceState
from lightsync.state.store import DeviceStateStore, Origin, StateChange
from lightsync.streams import Unsubscribe
from lightsync.sync.connection import ConnectionMultiplexer, DeviceHandle

logger = logging.getLogger(__name__)


class LocalToRemoteSync:
    """Combines the latest handle with the latest local state.

    Every combined pair is reported through notify. Every pair except the
    first is pushed to the handle: the first pair carries the state the
    handle was created with, so pushing it would only echo that state back.

    Remote-originated store changes are skipped entirely; the remote side
    already has them.
    """

    def __init__(
        self,
        multiplexer: ConnectionMultiplexer,
        store: DeviceStateStore,
        notify: Callable[[DeviceState], None],
    ):
        self._multiplexer = multiplexer
        self._store = store
        self._notify = notify
        self._handle: Optional[DeviceHandle] = None
        self._state: Optional[DeviceState] = None
        self._pairs = 0

    def start(self) -> Unsubscribe:
        unsubscribe_handle = self._multiplexer.subscribe(self._on_handle)
        unsubscribe_state = self._store.changes(self._on_state_change)

        def unsubscribe() -> None:
            unsubscribe_handle()
            unsubscribe_state()

        return unsubscribe

    def _on_handle(self, handle: DeviceHandle) -> None:
        self._handle = handle
        self._emit()

    def _on_state_change(self, change: StateChange) -> None:
        self._state = change.state
        if change.origin == Origin.REMOTE:
            return
        self._emit()

    def _emit(self) -> None:
        if self._handle is None or self._state is None:
            return

        self._pairs += 1
        self._notify(self._state)
        if self._pairs == 1:
            logger.debug("Skipping initial state push after connect")
            return

        logger.debug(f"Pushing local state: {self._state}")
        self._handle.push_update(self._state.to_dict())
