"""Wire the Cognito session layer into a host application."""

from __future__ import annotations

from loguru import logger

from src.cognito_session.core.services.authentication import CognitoAuthenticator
from src.cognito_session.core.services.cognito.client import CognitoServiceClient
from src.cognito_session.core.services.cognito.user_pool import CognitoUserPool
from src.cognito_session.core.services.identity import AWSIdentity, CognitoIdentityProvider
from src.cognito_session.core.storage.key_value_store import KeyValueStore, get_key_value_store
from src.cognito_session.core.storage.kv_storage import KVStorage
from src.cognito_session.registry import IdentityRegistry
from src.cognito_session.runtime.config.config_data import CognitoConfig
from src.cognito_session.runtime.context import get_config

COGNITO_SERVICE = "cognito"


async def configure_cognito(
    registry: IdentityRegistry,
    config: CognitoConfig | None = None,
    store: KeyValueStore | None = None,
    *,
    client: CognitoServiceClient | None = None,
    identity_client: CognitoServiceClient | None = None,
) -> CognitoIdentityProvider:
    """Register a Cognito identity provider backed by the key-value store.

    Args:
        registry: Registry the provider is added to under ``"cognito"``
        config: Cognito settings; the active configuration's by default
        store: Key-value store for session data; the configured store by default
        client: User pool client override, mainly for tests
        identity_client: Identity pool client override, mainly for tests

    Returns:
        The registered provider
    """
    config = config or get_config().cognito
    store = store or await get_key_value_store()

    storage = KVStorage(config.store_key, store)
    await storage.sync()

    user_pool = CognitoUserPool.from_config(config, storage=storage, client=client)
    provider = CognitoIdentityProvider(
        user_pool,
        config.identity_pool_id,
        global_sign_out=config.global_sign_out,
        identity_client=identity_client,
    )
    registry.add_provider(COGNITO_SERVICE, provider)
    logger.info(f"Configured Cognito identity provider for pool {config.user_pool_id}")
    return provider


async def get_authenticator(
    registry: IdentityRegistry, config: CognitoConfig | None = None
) -> CognitoAuthenticator:
    """Return an authenticator for the registered Cognito provider's pool.

    The authenticator starts out bound to the current user when the
    provider reports an authenticated identity.
    """
    try:
        provider = registry.for_service(COGNITO_SERVICE)
    except LookupError:
        provider = await configure_cognito(registry, config)

    if not isinstance(provider, CognitoIdentityProvider):
        raise TypeError(f"Provider for '{COGNITO_SERVICE}' is not a CognitoIdentityProvider")

    identity = await provider.get_identity()
    if isinstance(identity, AWSIdentity):
        return CognitoAuthenticator.from_identity(provider.user_pool, identity)
    return CognitoAuthenticator(provider.user_pool)
