"""Identity derivation for the current Cognito user.

``CognitoIdentityProvider`` answers "who is acting now". It restores the
session persisted in the user pool storage, refreshes expired tokens and
service credentials, and degrades to an anonymous identity on any failure.
It never raises from ``get_identity``: identity is advisory and callers
treat ``is_authenticated is False`` as the safe default.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import cached_property
from types import MappingProxyType

from loguru import logger

from src.cognito_session.core.constants import (
    IDENTITY_POOL_KEY_PREFIX,
    USER_POOL_KEY_PREFIX,
)
from src.cognito_session.core.exceptions import CognitoError, CognitoSessionError
from src.cognito_session.core.models.session import (
    AWSServiceCredentials,
    CognitoUserSession,
)
from src.cognito_session.core.services.cognito.client import CognitoServiceClient
from src.cognito_session.core.services.cognito.identity_credentials import (
    CognitoIdentityCredentials,
)
from src.cognito_session.core.services.cognito.user import CognitoUser
from src.cognito_session.core.services.cognito.user_pool import CognitoUserPool
from src.cognito_session.core.storage.kv_storage import KVStorage


@dataclass(frozen=True)
class IdentityCredentials:
    """Everything needed to act as the identity: user handle, tokens, AWS credentials."""

    user: CognitoUser
    session: CognitoUserSession
    service: AWSServiceCredentials | None = None


class Identity:
    """An identity snapshot. Unauthenticated unless given a name."""

    def __init__(self, name: str | None = None, credentials: IdentityCredentials | None = None):
        self._name = name or None
        self._credentials = credentials

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def is_authenticated(self) -> bool:
        return bool(self._name)

    @property
    def credentials(self) -> IdentityCredentials | None:
        return self._credentials

    @property
    def identifiers(self) -> Mapping[str, str]:
        return MappingProxyType({})


class AWSIdentity(Identity):
    """An authenticated identity backed by a user pool session."""

    def __init__(self, name: str, credentials: IdentityCredentials):
        super().__init__(name, credentials)

    @property
    def credentials(self) -> IdentityCredentials:
        return self._credentials

    @cached_property
    def identifiers(self) -> Mapping[str, str]:
        """Claim name to value, computed once from the credentials."""
        id_token = self._credentials.session.id_token
        identifiers = {
            "username": id_token.username or self._name,
            "jwt": id_token.jwt_token,
        }
        if id_token.subject:
            identifiers["sub"] = id_token.subject
        email = id_token.payload.get("email")
        if email:
            identifiers["email"] = email
        service = self._credentials.service
        if service is not None and service.identity_id:
            identifiers["identity_id"] = service.identity_id
        return MappingProxyType(identifiers)


class CognitoIdentityProvider:
    """Owns the current identity for one user pool.

    Args:
        user_pool: Pool whose storage holds the session
        identity_pool_id: Identity pool for AWS service credentials, optional
        global_sign_out: Invalidate refresh tokens server-side on ``clear()``
        identity_client: Identity pool client override, mainly for tests
    """

    def __init__(
        self,
        user_pool: CognitoUserPool,
        identity_pool_id: str | None = None,
        *,
        global_sign_out: bool = True,
        identity_client: CognitoServiceClient | None = None,
    ):
        self._user_pool = user_pool
        self._identity_pool_id = identity_pool_id
        self._global_sign_out = global_sign_out
        self._identity_client = identity_client
        self._identity: Identity = Identity()
        self._service_credentials: CognitoIdentityCredentials | None = None

    @property
    def user_pool(self) -> CognitoUserPool:
        return self._user_pool

    @property
    def identity(self) -> Identity:
        """The identity returned by the last ``get_identity()`` call."""
        return self._identity

    async def get_identity(self) -> Identity:
        """Derive the current identity, refreshing credentials when required.

        Returns:
            An authenticated ``AWSIdentity``, or an anonymous ``Identity`` when
            there is no user, no usable session, or a refresh fails
        """
        try:
            self._identity = await self._derive_identity()
        except CognitoSessionError as e:
            logger.warning(f"Unable to derive identity, continuing unauthenticated: {e}")
            self._reset()
        except Exception:
            logger.exception("Unexpected error deriving identity, continuing unauthenticated")
            self._reset()
        return self._identity

    async def update(self, name: str, session: CognitoUserSession) -> Identity:
        """Bind a session to ``name`` and re-derive the identity from it.

        Any session already stored for this pool is discarded first.
        """
        storage = self._user_pool.storage
        if isinstance(storage, KVStorage):
            await storage.sync()

        current = self._user_pool.get_current_user()
        if current is not None:
            current.clear_cached_session()

        CognitoUser(name, self._user_pool).cache_session(session)
        self._service_credentials = None
        return await self.get_identity()

    async def clear(self) -> None:
        """Sign out the current user and forget every cached credential.

        Calling this with no current user is a no-op.
        """
        storage = self._user_pool.storage
        if isinstance(storage, KVStorage):
            await storage.sync()

        user = self._user_pool.get_current_user()
        if user is not None:
            if self._global_sign_out:
                try:
                    await user.global_sign_out()
                except CognitoSessionError as e:
                    logger.warning(f"Global sign out failed for {user.username}: {e}")
            user.sign_out()
            logger.info(f"Signed out {user.username}")

        if self._service_credentials is not None:
            self._service_credentials.clear_cached_id()
        self._service_credentials = None

        for key in storage.keys():
            if key.startswith(USER_POOL_KEY_PREFIX) or key.startswith(IDENTITY_POOL_KEY_PREFIX):
                storage.remove_item(key)

        self._identity = Identity()

        if isinstance(storage, KVStorage):
            await storage.flush()

    async def _derive_identity(self) -> Identity:
        storage = self._user_pool.storage
        if isinstance(storage, KVStorage):
            await storage.sync()

        user = self._user_pool.get_current_user()
        if user is None:
            self._service_credentials = None
            return Identity()

        session = user.get_session()
        if not session.is_valid():
            session = await self._refresh_expired_session(user, session)

        service = await self._refresh_service_credentials(session)
        return AWSIdentity(user.username, IdentityCredentials(user, session, service))

    async def _refresh_expired_session(
        self, user: CognitoUser, session: CognitoUserSession
    ) -> CognitoUserSession:
        logger.info(f"Session for {user.username} expired, refreshing")
        try:
            return await user.refresh_session(session.refresh_token)
        except CognitoError as e:
            # A rejected refresh token will never work again; an outage might pass
            if not e.is_network_error:
                logger.info(f"Discarding session for {user.username}: {e.code}")
                user.sign_out()
            raise

    async def _refresh_service_credentials(
        self, session: CognitoUserSession
    ) -> AWSServiceCredentials | None:
        if not self._identity_pool_id:
            return None

        id_jwt = session.id_token.jwt_token
        provider_name = self._user_pool.provider_name
        credentials = self._service_credentials
        if credentials is None or credentials.logins.get(provider_name) != id_jwt:
            credentials = CognitoIdentityCredentials(
                self._identity_pool_id,
                {provider_name: id_jwt},
                region=self._user_pool.region,
                storage=self._user_pool.storage,
                client=self._identity_client,
            )
            self._service_credentials = credentials

        if credentials.needs_refresh():
            await credentials.refresh()
        return credentials.credentials

    def _reset(self) -> None:
        self._identity = Identity()
        self._service_credentials = None
