"""Synchronization pipelines between the local store and the remote device."""

from lightsync.sync.connection import (
    ConnectionMultiplexer,
    ConnectionProvider,
    DeviceDescriptor,
    DeviceHandle,
)
from lightsync.sync.errors import forward_errors
from lightsync.sync.local_to_remote import LocalToRemoteSync
from lightsync.sync.remote_to_local import RemoteToLocalSync

__all__ = [
    "ConnectionMultiplexer",
    "ConnectionProvider",
    "DeviceDescriptor",
    "DeviceHandle",
    "LocalToRemoteSync",
    "RemoteToLocalSync",
    "forward_errors",
]
