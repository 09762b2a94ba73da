"""Daemon registry storage backends.

This package provides the KVStore protocol and its implementations:
- InMemoryKVStore (from storage.kv)
- SQLiteKVStore (from storage.sqlite)

and the EntryStore that merges the seed list with the persisted overlay.

Factory:
- create_kv_store() builds a KVStore from RegistrySettings
  (DAEMON_REGISTRY_STORAGE_BACKEND / DAEMON_REGISTRY_STORAGE_PATH).
"""

from daemon_registry.clock import Clock, utc_now
from daemon_registry.config import RegistrySettings
from daemon_registry.errors import ConfigurationError
from daemon_registry.storage.entries import KV_ANNOUNCED_KEY, EntryStore, load_seed
from daemon_registry.storage.kv import InMemoryKVStore, KVStore
from daemon_registry.storage.sqlite import SQLiteKVStore


def create_kv_store(settings: RegistrySettings, clock: Clock = utc_now) -> KVStore:
    """Create the KVStore selected by *settings*.

    Raises:
        ConfigurationError: If the backend name is unknown.
    """
    if settings.storage_backend == "memory":
        return InMemoryKVStore(clock=clock)
    if settings.storage_backend == "sqlite":
        return SQLiteKVStore(db_path=settings.storage_path, clock=clock)
    raise ConfigurationError(
        "DAEMON_REGISTRY_STORAGE_BACKEND", settings.storage_backend, "use 'memory' or 'sqlite'"
    )


__all__ = [
    "EntryStore",
    "InMemoryKVStore",
    "KVStore",
    "KV_ANNOUNCED_KEY",
    "SQLiteKVStore",
    "create_kv_store",
    "load_seed",
]
