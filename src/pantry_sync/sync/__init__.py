"""Push-based synchronization of local records with the remote store."""

from pantry_sync.sync.auth import CachedIdentityProvider, IdentityProvider, StaticIdentityProvider
from pantry_sync.sync.client import HttpRemoteClient
from pantry_sync.sync.connectivity import ConnectivityMonitor, ReachabilitySignal
from pantry_sync.sync.protocol import (
    RecordResult,
    RemoteRecord,
    SyncOutcome,
    SyncReport,
)
from pantry_sync.sync.remote import RemoteClient
from pantry_sync.sync.sync_engine import SyncEngine

__all__ = [
    "CachedIdentityProvider",
    "IdentityProvider",
    "StaticIdentityProvider",
    "HttpRemoteClient",
    "RemoteClient",
    "ConnectivityMonitor",
    "ReachabilitySignal",
    "RecordResult",
    "RemoteRecord",
    "SyncOutcome",
    "SyncReport",
    "SyncEngine",
]
