"""Token storage abstractions for the Cognito session layer."""

from .key_value_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    get_key_value_store,
)
from .kv_storage import KVStorage, MemoryStorage, SyncStorage

__all__ = [
    "InMemoryKeyValueStore",
    "KVStorage",
    "KeyValueStore",
    "MemoryStorage",
    "RedisKeyValueStore",
    "SyncStorage",
    "get_key_value_store",
]
