"""State package initialization."""

from actionflow.state.factory import StoreFactory
from actionflow.state.gateway import HeapSnapshot, Identity, PersistenceGateway
from actionflow.state.store import InMemoryStore, KeyValueStore, SqliteStore, StoredItem

__all__ = [
    "HeapSnapshot",
    "Identity",
    "InMemoryStore",
    "KeyValueStore",
    "PersistenceGateway",
    "SqliteStore",
    "StoreFactory",
    "StoredItem",
]
