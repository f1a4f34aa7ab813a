"""pantry-sync - Offline-first record synchronization for pantry inventories."""

from pantry_sync.core.expiry import ExpiryCounts, ExpirySummary, Freshness
from pantry_sync.core.record import Record, RecordState
from pantry_sync.errors import (
    AuthError,
    NetworkError,
    PantrySyncError,
    RemoteError,
    StorageError,
    ValidationError,
)
from pantry_sync.notifications import ExpiryNotifier
from pantry_sync.repository import PantryRepository
from pantry_sync.storage import InMemoryRecordStore, RecordStore, SQLiteRecordStore
from pantry_sync.sync import (
    CachedIdentityProvider,
    ConnectivityMonitor,
    HttpRemoteClient,
    IdentityProvider,
    ReachabilitySignal,
    RemoteClient,
    StaticIdentityProvider,
    SyncEngine,
    SyncOutcome,
    SyncReport,
)
from pantry_sync.unified_config import UnifiedConfig

__version__ = "0.1.0"

__all__ = [
    # Core models
    "Record",
    "RecordState",
    "ExpiryCounts",
    "ExpirySummary",
    "Freshness",
    # Storage
    "RecordStore",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    # Sync
    "SyncEngine",
    "SyncOutcome",
    "SyncReport",
    "RemoteClient",
    "HttpRemoteClient",
    "IdentityProvider",
    "CachedIdentityProvider",
    "StaticIdentityProvider",
    "ConnectivityMonitor",
    "ReachabilitySignal",
    # Facade
    "PantryRepository",
    "ExpiryNotifier",
    "UnifiedConfig",
    # Errors
    "PantrySyncError",
    "ValidationError",
    "StorageError",
    "AuthError",
    "RemoteError",
    "NetworkError",
    # Version
    "__version__",
]
