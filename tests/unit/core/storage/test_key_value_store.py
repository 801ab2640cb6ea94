"""Unit tests for key-value store implementations."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.cognito_session.core.storage import key_value_store
from src.cognito_session.core.storage.key_value_store import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
    get_key_value_store,
)
from src.cognito_session.runtime.config.config_data import ConfigData, RedisConfig
from src.cognito_session.runtime.context import with_context


class TestInMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_fetch_missing_returns_none(self):
        assert await InMemoryKeyValueStore().fetch("nope") is None

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        store = InMemoryKeyValueStore()
        value = {"nested": {"a": "1"}}

        await store.store("ns", value)
        value["nested"]["a"] = "changed"
        fetched = await store.fetch("ns")
        fetched["nested"]["a"] = "also changed"

        assert await store.fetch("ns") == {"nested": {"a": "1"}}


class TestRedisKeyValueStore:
    @pytest.mark.asyncio
    async def test_store_serialises_json_under_prefix(self):
        redis_client = AsyncMock()
        store = RedisKeyValueStore(redis_client, key_prefix="test:")

        await store.store("ns", {"a": "1"})

        redis_client.set.assert_awaited_once_with("test:ns", json.dumps({"a": "1"}))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ['{"a": "1"}', b'{"a": "1"}'])
    async def test_fetch_decodes_json(self, raw):
        redis_client = AsyncMock()
        redis_client.get.return_value = raw
        store = RedisKeyValueStore(redis_client)

        assert await store.fetch("ns") == {"a": "1"}
        redis_client.get.assert_awaited_once_with("kv:ns")

    @pytest.mark.asyncio
    async def test_fetch_missing_returns_none(self):
        redis_client = AsyncMock()
        redis_client.get.return_value = None

        assert await RedisKeyValueStore(redis_client).fetch("ns") is None

    @pytest.mark.asyncio
    async def test_errors_are_wrapped(self):
        redis_client = AsyncMock()
        redis_client.get.side_effect = ConnectionError("down")
        store = RedisKeyValueStore(redis_client)

        with pytest.raises(RuntimeError, match="Redis get failed"):
            await store.fetch("ns")

    @pytest.mark.asyncio
    async def test_ping(self):
        redis_client = AsyncMock()
        store = RedisKeyValueStore(redis_client)
        assert await store.ping()

        redis_client.ping.side_effect = ConnectionError("down")
        assert not await store.ping()


class TestGetKeyValueStore:
    @pytest.mark.asyncio
    async def test_falls_back_to_memory_when_redis_disabled(self):
        with with_context(ConfigData(redis=RedisConfig(enabled=False))):
            store = await get_key_value_store()

        assert isinstance(store, InMemoryKeyValueStore)
        assert await get_key_value_store() is store

    @pytest.mark.asyncio
    async def test_uses_redis_when_ping_succeeds(self):
        redis_client = MagicMock()
        redis_client.ping = AsyncMock(return_value=True)
        config = ConfigData(redis=RedisConfig(enabled=True, url="redis://localhost:6379/0"))

        with with_context(config), patch("redis.asyncio.from_url", return_value=redis_client):
            store = await key_value_store._detect_redis_availability()

        assert isinstance(store, RedisKeyValueStore)

    @pytest.mark.asyncio
    async def test_falls_back_when_ping_fails(self):
        redis_client = MagicMock()
        redis_client.ping = AsyncMock(side_effect=ConnectionError("refused"))
        config = ConfigData(redis=RedisConfig(enabled=True, url="redis://localhost:6379/0"))

        with with_context(config), patch("redis.asyncio.from_url", return_value=redis_client):
            store = await key_value_store._detect_redis_availability()

        assert isinstance(store, InMemoryKeyValueStore)
