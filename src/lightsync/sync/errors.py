"""Forwards remote handle errors to the host warning sink."""

from typing import Any, Callable

from lightsync.streams import Unsubscribe
from lightsync.sync.connection import ConnectionMultiplexer


def forward_errors(
    multiplexer: ConnectionMultiplexer, warn: Callable[[Any], None]
) -> Unsubscribe:
    """Send every error of the current handle to warn, unchanged."""
    return multiplexer.switch(lambda handle: handle.errors(), warn)
