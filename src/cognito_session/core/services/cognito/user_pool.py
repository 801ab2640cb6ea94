"""User pool handle: configuration, storage and sign-up."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.cognito_session.core.constants import USER_POOL_KEY_PREFIX
from src.cognito_session.core.security import compute_secret_hash
from src.cognito_session.core.services.cognito.client import (
    CognitoServiceClient,
    UserPoolClient,
)
from src.cognito_session.core.services.cognito.user import (
    PASSWORD_AUTH_FLOW,
    SRP_AUTH_FLOW,
    CognitoUser,
)
from src.cognito_session.core.storage.kv_storage import MemoryStorage, SyncStorage
from src.cognito_session.runtime.config.config_data import CognitoConfig


@dataclass(frozen=True)
class SignUpResult:
    """Result of a successful ``SignUp`` call."""

    user: CognitoUser
    user_confirmed: bool = False
    user_sub: str | None = None


class CognitoUserPool:
    """A user pool app client plus the storage its sessions are cached in.

    Args:
        user_pool_id: Pool id of the form ``<region>_<id>``
        client_id: App client id
        client_secret: App client secret, if the client has one
        storage: Synchronous token storage (defaults to process memory)
        client: Service client override, mainly for tests
        region: Region override; derived from ``user_pool_id`` by default
        timeout: Transport timeout for the default client
        auth_flow: ``USER_SRP_AUTH`` (default) or ``USER_PASSWORD_AUTH``
    """

    def __init__(
        self,
        user_pool_id: str,
        client_id: str,
        *,
        client_secret: str | None = None,
        storage: SyncStorage | None = None,
        client: CognitoServiceClient | None = None,
        region: str | None = None,
        timeout: float = 10.0,
        auth_flow: str = SRP_AUTH_FLOW,
    ):
        if not user_pool_id or "_" not in user_pool_id:
            raise ValueError(f"Invalid user pool id: {user_pool_id!r}")
        if not client_id:
            raise ValueError("A user pool client id is required")
        if auth_flow not in (SRP_AUTH_FLOW, PASSWORD_AUTH_FLOW):
            raise ValueError(f"Unsupported auth flow: {auth_flow!r}")

        self.user_pool_id = user_pool_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.auth_flow = auth_flow
        self.region = region or user_pool_id.split("_", 1)[0]
        self.storage: SyncStorage = storage if storage is not None else MemoryStorage()
        self.client = client or UserPoolClient(self.region, timeout=timeout)

    @classmethod
    def from_config(
        cls,
        config: CognitoConfig,
        storage: SyncStorage | None = None,
        client: CognitoServiceClient | None = None,
    ) -> CognitoUserPool:
        return cls(
            config.user_pool_id,
            config.client_id,
            client_secret=config.client_secret,
            storage=storage,
            client=client,
            region=config.resolved_region or None,
            timeout=config.http_timeout,
            auth_flow=config.auth_flow,
        )

    @property
    def provider_name(self) -> str:
        """Identity pool login provider name for this user pool."""
        return f"cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def key_prefix(self) -> str:
        return f"{USER_POOL_KEY_PREFIX}.{self.client_id}"

    @property
    def last_user_key(self) -> str:
        return f"{self.key_prefix}.LastAuthUser"

    def secret_hash(self, username: str) -> str | None:
        if not self.client_secret:
            return None
        return compute_secret_hash(username, self.client_id, self.client_secret)

    def get_current_user(self) -> CognitoUser | None:
        """Return a handle for the last authenticated user, if any."""
        username = self.storage.get_item(self.last_user_key)
        if not username:
            return None
        return CognitoUser(username, self)

    async def sign_up(
        self,
        username: str,
        password: str,
        attributes: list[dict[str, str]],
        validation_data: list[dict[str, str]] | None = None,
    ) -> SignUpResult:
        """Register a new user.

        Args:
            username: Requested username
            password: Initial password
            attributes: ``[{"Name": ..., "Value": ...}]`` user attributes
            validation_data: Optional validation data passed to pre sign-up triggers

        Returns:
            The new user's handle and confirmation state

        Raises:
            CognitoError: If the service rejects the registration
        """
        payload: dict[str, Any] = {
            "ClientId": self.client_id,
            "Username": username,
            "Password": password,
            "UserAttributes": attributes,
            "ValidationData": validation_data or [],
        }
        secret_hash = self.secret_hash(username)
        if secret_hash:
            payload["SecretHash"] = secret_hash

        response = await self.client.call("SignUp", payload)
        logger.info(f"Registered user {username} (confirmed={response.get('UserConfirmed', False)})")
        return SignUpResult(
            user=CognitoUser(username, self),
            user_confirmed=bool(response.get("UserConfirmed", False)),
            user_sub=response.get("UserSub"),
        )
