"""Push-based feeds and the one-shot close signal used to tear them down."""

import logging
from collections import deque
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Feed(Generic[T]):
    """A synchronous observable value feed.

    Observers are plain callables. Values published while another value is
    still being delivered are queued, so every observer sees the same order.
    An observer that raises is logged and skipped; delivery continues.

    Optional hooks let a feed start its upstream lazily:
    - on_start runs when the first observer subscribes
    - on_stop runs when the last observer unsubscribes
    """

    def __init__(
        self,
        on_start: Optional[Callable[[], None]] = None,
        on_stop: Optional[Callable[[], None]] = None,
    ):
        self._observers: list[Callable[[T], None]] = []
        self._pending: deque = deque()
        self._delivering = False
        self._completed = False
        self._on_start = on_start
        self._on_stop = on_stop

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """Register an observer.

        Returns:
            Callable that removes the observer again. Calling it twice is harmless.
        """
        if self._completed:
            return lambda: None

        self._observers.append(callback)
        if len(self._observers) == 1 and self._on_start:
            self._on_start()

        def unsubscribe() -> None:
            if callback not in self._observers:
                return
            self._observers.remove(callback)
            if not self._observers and self._on_stop and not self._completed:
                self._on_stop()

        return unsubscribe

    def publish(self, value: T) -> None:
        """Deliver a value to every current observer."""
        if self._completed:
            return
        self._pending.append(value)
        if self._delivering:
            return

        self._delivering = True
        try:
            while self._pending:
                item = self._pending.popleft()
                for observer in list(self._observers):
                    # Skip observers removed by an earlier observer of this item
                    if observer not in self._observers:
                        continue
                    try:
                        observer(item)
                    except Exception as e:
                        logger.warning(f"Feed observer failed: {type(e).__name__}: {e}")
        finally:
            self._delivering = False

    def complete(self) -> None:
        """End the feed. Observers are dropped and later values ignored."""
        if self._completed:
            return
        self._completed = True
        self._observers.clear()
        self._pending.clear()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def completed(self) -> bool:
        return self._completed


class CloseSignal:
    """One-shot teardown signal shared by every pipeline of a node.

    Callbacks registered before firing run once when fire() is called;
    callbacks registered afterwards run immediately.
    """

    def __init__(self):
        self._callbacks: list[Callable[[], None]] = []
        self._fired = False

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._fired:
            callback()
            return
        self._callbacks.append(callback)

    def fire(self) -> None:
        """Run all teardown callbacks. Later calls do nothing."""
        if self._fired:
            return
        self._fired = True

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Teardown callback failed: {type(e).__name__}: {e}")

    @property
    def fired(self) -> bool:
        return self._fired
