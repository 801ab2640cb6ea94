"""Unit tests for the identity registry and host wiring."""

import pytest

from src.cognito_session.configuration import (
    COGNITO_SERVICE,
    configure_cognito,
    get_authenticator,
)
from src.cognito_session.core.constants import LoginCode
from src.cognito_session.core.services.identity import CognitoIdentityProvider, Identity
from src.cognito_session.core.storage.key_value_store import InMemoryKeyValueStore
from src.cognito_session.core.storage.kv_storage import KVStorage
from src.cognito_session.registry import IdentityProviderProtocol, IdentityRegistry
from tests.utils import auth_result


class StaticProvider:
    async def get_identity(self):
        return Identity()

    async def update(self, name, session):
        return Identity(name)

    async def clear(self):
        return None


class TestIdentityRegistry:
    def test_add_provider_is_chainable(self):
        first, second = StaticProvider(), StaticProvider()

        registry = IdentityRegistry().add_provider("a", first).add_provider("b", second)

        assert registry.for_service("a") is first
        assert registry.for_service("b") is second
        assert set(registry.providers) == {"a", "b"}

    def test_static_provider_satisfies_protocol(self):
        assert isinstance(StaticProvider(), IdentityProviderProtocol)

    def test_unknown_service(self):
        with pytest.raises(LookupError, match="missing"):
            IdentityRegistry().for_service("missing")

    def test_rejects_non_provider(self):
        with pytest.raises(TypeError):
            IdentityRegistry().add_provider("a", object())

    def test_replacing_provider(self):
        replacement = StaticProvider()
        registry = IdentityRegistry().add_provider("a", StaticProvider())

        registry.add_provider("a", replacement)

        assert registry.for_service("a") is replacement


class TestConfigureCognito:
    @pytest.mark.asyncio
    async def test_registers_provider(self, cognito_config, kv_store, fake_client):
        registry = IdentityRegistry()

        provider = await configure_cognito(registry, cognito_config, kv_store, client=fake_client)

        assert registry.for_service(COGNITO_SERVICE) is provider
        assert isinstance(provider, CognitoIdentityProvider)
        storage = provider.user_pool.storage
        assert isinstance(storage, KVStorage)
        assert storage.store_key == "cognito-test"
        assert storage.synced

    @pytest.mark.asyncio
    async def test_uses_active_configuration(self, configured, fake_client):
        registry = IdentityRegistry()

        provider = await configure_cognito(registry, client=fake_client)

        assert provider.user_pool.user_pool_id == "us-east-1_TestPool"
        assert provider.user_pool.client_id == "test-client-id"
        # Redis is disabled in the test configuration
        assert isinstance(provider.user_pool.storage._store, InMemoryKeyValueStore)

    @pytest.mark.asyncio
    async def test_login_then_restart(self, cognito_config, kv_store, fake_client):
        registry = IdentityRegistry()
        await configure_cognito(registry, cognito_config, kv_store, client=fake_client)
        authenticator = await get_authenticator(registry)
        assert authenticator.user is None
        fake_client.queue("InitiateAuth", auth_result(username="alice"))

        response = await authenticator.login("alice", "Passw0rd!")
        assert response.code is LoginCode.SUCCESS
        await registry.for_service(COGNITO_SERVICE).user_pool.storage.flush()

        restarted = IdentityRegistry()
        await configure_cognito(restarted, cognito_config, kv_store, client=fake_client)
        identity = await restarted.for_service(COGNITO_SERVICE).get_identity()
        resumed = await get_authenticator(restarted)

        assert identity.name == "alice"
        assert resumed.user.username == "alice"

    @pytest.mark.asyncio
    async def test_get_authenticator_configures_on_demand(self, configured):
        registry = IdentityRegistry()

        authenticator = await get_authenticator(registry)

        assert authenticator.user is None
        assert isinstance(registry.for_service(COGNITO_SERVICE), CognitoIdentityProvider)

    @pytest.mark.asyncio
    async def test_get_authenticator_requires_cognito_provider(self):
        registry = IdentityRegistry().add_provider(COGNITO_SERVICE, StaticProvider())

        with pytest.raises(TypeError):
            await get_authenticator(registry)
