"""AWS service credentials from a Cognito identity pool."""

from __future__ import annotations

from datetime import datetime

from loguru import logger

from src.cognito_session.core.constants import IDENTITY_POOL_KEY_PREFIX
from src.cognito_session.core.exceptions import CognitoError
from src.cognito_session.core.models.session import AWSServiceCredentials
from src.cognito_session.core.services.cognito.client import (
    CognitoServiceClient,
    IdentityPoolClient,
)
from src.cognito_session.core.storage.kv_storage import MemoryStorage, SyncStorage


class CognitoIdentityCredentials:
    """Temporary AWS credentials for an authenticated user pool login.

    The identity id is cached in storage so the same identity is reused
    across restarts. Each instance is owned by exactly one identity
    provider; there is no process-wide credentials slot.

    Args:
        identity_pool_id: Identity pool id
        logins: Login provider name mapped to the user's id token
        region: AWS region of the identity pool
        storage: Storage for the cached identity id
        client: Service client override, mainly for tests
    """

    def __init__(
        self,
        identity_pool_id: str,
        logins: dict[str, str],
        *,
        region: str,
        storage: SyncStorage | None = None,
        client: CognitoServiceClient | None = None,
    ):
        self.identity_pool_id = identity_pool_id
        self.logins = dict(logins)
        self._storage = storage if storage is not None else MemoryStorage()
        self._client = client or IdentityPoolClient(region)
        self.credentials: AWSServiceCredentials | None = None

    @property
    def _identity_id_key(self) -> str:
        return f"{IDENTITY_POOL_KEY_PREFIX}.identity-id.{self.identity_pool_id}"

    @property
    def identity_id(self) -> str | None:
        return self._storage.get_item(self._identity_id_key)

    def needs_refresh(self) -> bool:
        return self.credentials is None or self.credentials.is_expired()

    async def refresh(self) -> AWSServiceCredentials:
        """Fetch fresh credentials, resolving the identity id first if needed.

        A cached identity id the service no longer recognises is dropped and
        resolved again once.

        Raises:
            CognitoError: If the identity pool rejects the login
        """
        try:
            self.credentials = await self._fetch_credentials()
        except CognitoError as e:
            if e.code != "ResourceNotFoundException" or self.identity_id is None:
                raise
            logger.info(f"Cached identity id is no longer valid ({e.code}), resolving again")
            self.clear_cached_id()
            self.credentials = await self._fetch_credentials()
        return self.credentials

    def clear_cached_id(self) -> None:
        """Forget the cached identity id and any credentials derived from it."""
        self._storage.remove_item(self._identity_id_key)
        self.credentials = None

    async def _fetch_credentials(self) -> AWSServiceCredentials:
        identity_id = self.identity_id
        if identity_id is None:
            response = await self._client.call(
                "GetId", {"IdentityPoolId": self.identity_pool_id, "Logins": self.logins}
            )
            identity_id = response["IdentityId"]
            self._storage.set_item(self._identity_id_key, identity_id)

        response = await self._client.call(
            "GetCredentialsForIdentity", {"IdentityId": identity_id, "Logins": self.logins}
        )
        creds = response.get("Credentials") or {}
        expiration = creds.get("Expiration")
        return AWSServiceCredentials(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretKey"],
            session_token=creds["SessionToken"],
            expiration=_epoch_seconds(expiration),
            identity_id=response.get("IdentityId", identity_id),
        )


def _epoch_seconds(expiration: datetime | int | float | None) -> int | None:
    # boto3 parses the expiration into an aware datetime
    if expiration is None:
        return None
    if isinstance(expiration, datetime):
        return int(expiration.timestamp())
    return int(expiration)
