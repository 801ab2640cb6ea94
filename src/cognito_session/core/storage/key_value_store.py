"""Asynchronous stores that persist one JSON mapping per namespace.

``KVStorage`` mirrors its cache into one of these. Redis is used when it is
configured and answers a ping; otherwise sessions live in process memory
and are lost on restart.
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as redis
from loguru import logger

from src.cognito_session.runtime.context import get_config


class KeyValueStore(ABC):
    """Fetch/store contract for namespaced session data."""

    @abstractmethod
    async def fetch(self, key: str) -> dict[str, Any] | None:
        """Return the mapping stored under ``key``, or None if there is none."""

    @abstractmethod
    async def store(self, key: str, value: dict[str, Any]) -> None:
        """Replace the mapping stored under ``key``."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Values are deep-copied in both directions."""

    def __init__(self):
        self._namespaces: dict[str, dict[str, Any]] = {}

    async def fetch(self, key: str) -> dict[str, Any] | None:
        if key not in self._namespaces:
            return None
        return copy.deepcopy(self._namespaces[key])

    async def store(self, key: str, value: dict[str, Any]) -> None:
        self._namespaces[key] = copy.deepcopy(value)


class RedisKeyValueStore(KeyValueStore):
    """Store each namespace as a JSON string under ``<key_prefix><key>``.

    Redis failures are re-raised as ``RuntimeError``.
    """

    def __init__(self, redis_client, key_prefix: str = "kv:"):
        self._redis = redis_client
        self._key_prefix = key_prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def fetch(self, key: str) -> dict[str, Any] | None:
        try:
            raw = await self._redis.get(self._redis_key(key))
        except Exception as e:
            raise RuntimeError(f"Redis get failed: {e}") from e

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    async def store(self, key: str, value: dict[str, Any]) -> None:
        try:
            await self._redis.set(self._redis_key(key), json.dumps(value))
        except Exception as e:
            raise RuntimeError(f"Redis set failed: {e}") from e

    async def ping(self) -> bool:
        try:
            await self._redis.ping()
        except Exception as e:
            logger.debug(f"Redis ping failed: {e}")
            return False
        return True


_store: KeyValueStore | None = None


async def _detect_redis_availability() -> KeyValueStore:
    """Connect to the configured Redis, falling back to process memory."""
    redis_config = get_config().redis
    if not redis_config.enabled or not redis_config.url:
        logger.info("Redis not configured, sessions are kept in process memory")
        return InMemoryKeyValueStore()

    try:
        client = redis.from_url(
            redis_config.connection_string,
            encoding="utf-8",
            decode_responses=redis_config.decode_responses,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
    except Exception as e:
        logger.warning(f"Invalid Redis configuration ({e}), using in-memory key-value store")
        return InMemoryKeyValueStore()

    store = RedisKeyValueStore(client, key_prefix=redis_config.key_prefix)
    if not await store.ping():
        logger.warning("Redis unavailable, using in-memory key-value store")
        return InMemoryKeyValueStore()

    logger.info("Key-value store: Redis connected")
    return store


async def get_key_value_store() -> KeyValueStore:
    """Return the process-wide store, detecting it on first use."""
    global _store
    if _store is None:
        _store = await _detect_redis_availability()
    return _store


def _reset_store() -> None:
    """Forget the detected store (for testing)."""
    global _store
    _store = None
