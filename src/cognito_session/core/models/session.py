"""Session and credential models for the Cognito token set."""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.cognito_session.core.exceptions import SessionNotFoundError
from src.cognito_session.core.jwt_utils import decode_claims


class CognitoJwtToken(BaseModel):
    """A compact JWT issued by the user pool with its decoded payload."""

    model_config = ConfigDict(frozen=True)

    jwt_token: str = Field(description="Raw compact JWT")
    payload: dict[str, Any] = Field(default_factory=dict, description="Decoded claims")

    @classmethod
    def from_jwt(cls, jwt_token: str):
        """Decode a compact JWT into a token model.

        Raises:
            TokenDecodeError: If the token is malformed
        """
        return cls(jwt_token=jwt_token, payload=decode_claims(jwt_token))

    @property
    def expiration(self) -> int:
        return int(self.payload.get("exp", 0))

    @property
    def issued_at(self) -> int | None:
        iat = self.payload.get("iat")
        return int(iat) if iat is not None else None


class CognitoIdToken(CognitoJwtToken):
    """OIDC id token carrying the user's profile claims."""

    @property
    def subject(self) -> str | None:
        return self.payload.get("sub")

    @property
    def username(self) -> str | None:
        return self.payload.get("cognito:username")


class CognitoAccessToken(CognitoJwtToken):
    """Access token used for user-authenticated user pool calls."""

    @property
    def username(self) -> str | None:
        return self.payload.get("username")


class CognitoRefreshToken(BaseModel):
    """Opaque refresh token."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1, description="Opaque refresh token")


class CognitoUserSession(BaseModel):
    """The user pool token triple plus the clock drift observed at issue time.

    A session is always complete. Partial token sets are rejected so callers
    never see a half-populated session.
    """

    model_config = ConfigDict(frozen=True)

    id_token: CognitoIdToken
    access_token: CognitoAccessToken
    refresh_token: CognitoRefreshToken
    clock_drift: int = Field(default=0, description="Local clock minus token issue time")

    @classmethod
    def from_tokens(
        cls,
        id_token: str | None,
        access_token: str | None,
        refresh_token: str | None,
        clock_drift: int | None = None,
    ) -> CognitoUserSession:
        """Build a session from raw token strings.

        Args:
            id_token: Compact id token
            access_token: Compact access token
            refresh_token: Opaque refresh token
            clock_drift: Previously computed drift; derived from the tokens when None,
                or zero if either token has no ``iat`` claim

        Returns:
            A complete session

        Raises:
            SessionNotFoundError: If any of the three tokens is missing
            TokenDecodeError: If a JWT cannot be decoded
        """
        if not (id_token and access_token and refresh_token):
            raise SessionNotFoundError("Incomplete token set")

        id_tok = CognitoIdToken.from_jwt(id_token)
        access_tok = CognitoAccessToken.from_jwt(access_token)
        if clock_drift is None:
            issued = (id_tok.issued_at, access_tok.issued_at)
            clock_drift = 0 if None in issued else int(time.time()) - min(issued)

        return cls(
            id_token=id_tok,
            access_token=access_tok,
            refresh_token=CognitoRefreshToken(token=refresh_token),
            clock_drift=clock_drift,
        )

    def is_valid(self, now: float | None = None) -> bool:
        """Check both JWTs are unexpired, adjusted for clock drift."""
        now = time.time() if now is None else now
        adjusted = now - self.clock_drift
        return (
            adjusted < self.access_token.expiration
            and adjusted < self.id_token.expiration
        )


class AWSServiceCredentials(BaseModel):
    """Temporary AWS credentials issued by the identity pool."""

    model_config = ConfigDict(frozen=True)

    access_key_id: str = Field(description="AWS access key id")
    secret_access_key: str = Field(description="AWS secret access key")
    session_token: str = Field(description="AWS session token")
    expiration: int | None = Field(default=None, description="Expiry timestamp")
    identity_id: str | None = Field(default=None, description="Identity pool identity id")

    def is_expired(self, expiry_window: int = 15) -> bool:
        """Check expiry, treating credentials close to expiry as expired."""
        if self.expiration is None:
            return False
        return time.time() + expiry_window >= self.expiration
