"""Immutable results returned by the authenticator flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.cognito_session.core.constants import LoginCode, RegistrationCode
from src.cognito_session.core.models.session import CognitoUserSession

if TYPE_CHECKING:
    from src.cognito_session.core.services.cognito.user import CognitoUser


@dataclass(frozen=True)
class LoginResponse:
    """Outcome of a login step. Only the fields relevant to ``code`` are set."""

    code: LoginCode
    credentials: CognitoUserSession | None = None
    identity: str | None = None
    error: str | None = None
    challenge_name: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    required_attributes: tuple[str, ...] = ()

    @classmethod
    def success(cls, session: CognitoUserSession, identity: str) -> LoginResponse:
        return cls(code=LoginCode.SUCCESS, credentials=session, identity=identity)

    @classmethod
    def failure(cls, error: str) -> LoginResponse:
        return cls(code=LoginCode.ERROR, error=error)

    @classmethod
    def mfa_required(cls, challenge_name: str | None = None) -> LoginResponse:
        return cls(code=LoginCode.MFA_REQUIRED, challenge_name=challenge_name)

    @classmethod
    def change_password_required(
        cls, attributes: dict[str, str], required_attributes: list[str] | tuple[str, ...]
    ) -> LoginResponse:
        return cls(
            code=LoginCode.CHANGE_PASSWORD_REQUIRED,
            attributes=dict(attributes),
            required_attributes=tuple(required_attributes),
        )

    @property
    def ok(self) -> bool:
        return self.code is LoginCode.SUCCESS


@dataclass(frozen=True)
class RegistrationResponse:
    """Outcome of a registration attempt."""

    code: RegistrationCode
    user: CognitoUser | None = None
    user_confirmed: bool = False
    user_sub: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.code is RegistrationCode.SUCCESS
