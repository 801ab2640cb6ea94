"""Synchronous token storage backed by an asynchronous key-value store.

The user pool keeps its tokens in a storage object with a strictly
synchronous get/set/remove interface, the way a browser's localStorage
works. ``KVStorage`` provides that interface on top of an in-memory cache
and mirrors every mutation to an external async store.

Because reads are synchronous the cache has to be loaded up front: call
``await storage.sync()`` before trusting ``get_item``. Writes are
fire-and-forget; a write scheduled right before the process exits may be
lost unless ``await storage.flush()`` runs on shutdown.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from src.cognito_session.core.storage.key_value_store import KeyValueStore


@runtime_checkable
class SyncStorage(Protocol):
    """Synchronous key/value storage used by the user pool."""

    def get_item(self, key: str) -> Any | None: ...

    def set_item(self, key: str, value: Any) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStorage:
    """Plain in-process storage, used when no external store is configured."""

    def __init__(self):
        self._data: dict[str, Any] = {}

    def get_item(self, key: str) -> Any | None:
        return self._data.get(key)

    def set_item(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data = {}

    def keys(self) -> list[str]:
        return list(self._data)


class KVStorage:
    """Cache-fronted storage persisting one namespace to a ``KeyValueStore``.

    Args:
        store_key: Namespace under which the whole mapping is persisted
        store: External store; ``store()`` may be a coroutine or a plain function
    """

    def __init__(self, store_key: str, store: KeyValueStore):
        self.store_key = store_key
        self._store = store
        self.cache: dict[str, Any] = {}
        self._synced = False
        self._pending: set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()
        # Mutations made while a sync is fetching, one journal per in-flight sync
        self._journals: list[list[tuple[str, str | None, Any]]] = []

    @property
    def synced(self) -> bool:
        """Whether the cache has been loaded from the store at least once."""
        return self._synced

    def get_item(self, key: str) -> Any | None:
        result = self.cache.get(key)
        logger.debug(f"Accessing id cache key {key} (hit={result is not None})")
        return result

    def set_item(self, key: str, value: Any) -> None:
        self.cache[key] = value
        self._record("set", key, value)
        self._persist()

    def remove_item(self, key: str) -> None:
        self.cache.pop(key, None)
        self._record("remove", key)
        self._persist()

    def clear(self) -> None:
        self.cache = {}
        self._record("clear")
        self._persist()

    def keys(self) -> list[str]:
        return list(self.cache)

    async def sync(self) -> None:
        """Replace the cache with the namespace's value from the store.

        In-flight writes are awaited first so the fetch observes them. Writes
        made while the fetch is outstanding are replayed onto the fetched
        mapping and persisted again, so they are never lost. Fetch failures
        and unusable values fall back to an empty cache.
        """
        await self.flush()

        logger.debug(f"Updating id cache '{self.store_key}'")
        journal: list[tuple[str, str | None, Any]] = []
        self._journals.append(journal)
        try:
            cache = await self._store.fetch(self.store_key)
        except Exception as e:
            logger.error(f"Error updating id cache '{self.store_key}': {e}")
            cache = None
        finally:
            self._journals = [j for j in self._journals if j is not journal]

        # Default if the fetch errors, returns None or returns garbage
        if not isinstance(cache, dict):
            if cache is not None:
                logger.warning(
                    f"Ignoring non-mapping value for id cache '{self.store_key}': "
                    f"{type(cache).__name__}"
                )
            cache = {}

        cache = dict(cache)
        for op, key, value in journal:
            if op == "set":
                cache[key] = value
            elif op == "remove":
                cache.pop(key, None)
            else:
                cache = {}

        self.cache = cache
        self._synced = True
        if journal:
            logger.debug(
                f"Replayed {len(journal)} concurrent writes onto id cache '{self.store_key}'"
            )
            self._persist()
        logger.debug(f"Id cache '{self.store_key}' holds {len(self.cache)} keys")

    async def flush(self) -> None:
        """Wait until every scheduled write has reached the store."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _record(self, op: str, key: str | None = None, value: Any = None) -> None:
        for journal in self._journals:
            journal.append((op, key, value))

    def _persist(self) -> None:
        snapshot = dict(self.cache)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop; write to id cache '{self.store_key}' kept in memory only"
            )
            return

        task = loop.create_task(self._write(snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, snapshot: dict[str, Any]) -> None:
        # The lock is FIFO, so snapshots land in the order they were taken
        async with self._write_lock:
            try:
                result = self._store.store(self.store_key, snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Failed to persist id cache '{self.store_key}': {e}")
