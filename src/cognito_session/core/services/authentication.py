"""Login, MFA, password and registration flows against a Cognito user pool."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from loguru import logger

from src.cognito_session.core.constants import RegistrationCode
from src.cognito_session.core.exceptions import CognitoError, NoUserContextError
from src.cognito_session.core.models.results import LoginResponse, RegistrationResponse
from src.cognito_session.core.services.cognito.user import (
    AuthOutcome,
    AuthSuccess,
    CognitoUser,
    MfaRequired,
    NewPasswordRequired,
)
from src.cognito_session.core.services.cognito.user_pool import CognitoUserPool
from src.cognito_session.core.services.identity import AWSIdentity

RegistrationErrorClassifier = Callable[[CognitoError], RegistrationCode]

_REGISTRATION_ERROR_CODES: dict[str, RegistrationCode] = {
    "UsernameExistsException": RegistrationCode.USERNAME_EXISTS,
    "InvalidPasswordException": RegistrationCode.INVALID_PASSWORD,
}

# Checked in order against InvalidParameterException messages
_INVALID_PARAMETER_PATTERNS: tuple[tuple[str, RegistrationCode], ...] = (
    ("email", RegistrationCode.INVALID_USERNAME),
    ("password", RegistrationCode.INVALID_PASSWORD),
    ("phone number", RegistrationCode.INVALID_PHONE_NUMBER),
)


def classify_registration_error(error: CognitoError) -> RegistrationCode:
    """Map a sign-up failure onto a ``RegistrationCode``.

    Structured error codes are used where the service provides one. For
    ``InvalidParameterException`` the service only says which attribute was
    rejected in its human readable message, so that message is matched
    against known substrings. The message is not an API contract; pass a
    different classifier to ``CognitoAuthenticator`` if it changes.

    ``InvalidPasswordException`` is deliberately classified as
    ``INVALID_PASSWORD`` rather than falling through to ``FAILURE_GENERIC``,
    and message substrings are deliberately matched without regard to case.

    Args:
        error: The error raised by ``SignUp``

    Returns:
        The matching code, ``FAILURE_GENERIC`` when nothing matches
    """
    if error.code in _REGISTRATION_ERROR_CODES:
        return _REGISTRATION_ERROR_CODES[error.code]

    if error.code == "InvalidParameterException":
        message = error.message.lower()
        for needle, code in _INVALID_PARAMETER_PATTERNS:
            if needle in message:
                return code

    return RegistrationCode.FAILURE_GENERIC


class CognitoAuthenticator:
    """Drives authentication flows for one user at a time.

    The user handle is resolved lazily and cached, so a flow such as
    ``login`` followed by ``validate_mfa_token`` keeps talking to the same
    user without repeating the username. Supplying a different username to
    any flow replaces the cached handle.

    Provider failures are reported verbatim: login steps return an ``ERROR``
    response carrying the provider's error code, registration returns a
    classified ``RegistrationResponse``, and the single-step flows raise
    ``CognitoError``. None of them retry.
    """

    def __init__(
        self,
        user_pool: CognitoUserPool,
        user: CognitoUser | None = None,
        *,
        classify_registration_error: RegistrationErrorClassifier = classify_registration_error,
    ):
        self._user_pool = user_pool
        self._user = user
        self._classify_registration_error = classify_registration_error

    @classmethod
    def from_identity(cls, user_pool: CognitoUserPool, identity: AWSIdentity) -> CognitoAuthenticator:
        """Create an authenticator bound to an authenticated identity's user."""
        return cls(user_pool, identity.credentials.user)

    @property
    def user(self) -> CognitoUser | None:
        return self._user

    async def login(self, username: str, password: str) -> LoginResponse:
        user = self._get_user(username)
        try:
            outcome = await user.authenticate_user(password)
        except CognitoError as e:
            logger.info(f"Login failed for {username}: {e.code}")
            return LoginResponse.failure(e.code)
        return self._login_response(user, outcome)

    async def complete_change_password(
        self, new_password: str, attributes: dict[str, str] | None = None
    ) -> LoginResponse:
        user = self._get_user()
        try:
            outcome = await user.complete_new_password_challenge(new_password, attributes)
        except CognitoError as e:
            logger.info(f"Password change challenge failed for {user.username}: {e.code}")
            return LoginResponse.failure(e.code)
        return self._login_response(user, outcome)

    async def validate_mfa_token(self, token: str) -> LoginResponse:
        user = self._get_user()
        try:
            session = await user.send_mfa_code(token)
        except CognitoError as e:
            logger.info(f"MFA validation failed for {user.username}: {e.code}")
            return LoginResponse.failure(e.code)
        return LoginResponse.success(session, user.username)

    async def register(self, user_data: Mapping[str, Any]) -> RegistrationResponse:
        """Register a user from ``username``, ``password``, ``email``, ``phone`` and ``locale``.

        Returns:
            ``SUCCESS`` with the new user, or the classified failure code
        """
        username = user_data["username"]
        attributes = [
            {"Name": name, "Value": user_data[key]}
            for key, name in (("email", "email"), ("phone", "phone_number"), ("locale", "locale"))
            if user_data.get(key)
        ]

        try:
            result = await self._user_pool.sign_up(username, user_data["password"], attributes)
        except CognitoError as e:
            code = self._classify_registration_error(e)
            logger.info(f"Registration failed for {username}: {e.code} -> {code.name}")
            return RegistrationResponse(code=code, error=e.code)

        self._user = result.user
        return RegistrationResponse(
            code=RegistrationCode.SUCCESS,
            user=result.user,
            user_confirmed=result.user_confirmed,
            user_sub=result.user_sub,
        )

    async def resend_registration_code(self) -> dict[str, Any]:
        user = self._get_user()
        try:
            return await user.resend_confirmation_code()
        except CognitoError as e:
            logger.error(f"Resending confirmation code for {user.username} failed: {e}")
            raise

    async def confirm_registration(self, code: str, for_username: str | None = None) -> str:
        user = self._get_user(for_username)
        try:
            return await user.confirm_registration(code)
        except CognitoError as e:
            logger.error(f"Confirming registration for {user.username} failed: {e}")
            raise

    async def begin_reset_password(self, username: str) -> dict[str, Any]:
        return await self._get_user(username).forgot_password()

    async def complete_reset_password(self, validation_code: str, new_password: str) -> None:
        await self._get_user().confirm_password(validation_code, new_password)

    async def user_change_password(self, old_password: str, new_password: str) -> None:
        await self._get_user().change_password(old_password, new_password)

    async def enable_mfa(self) -> str:
        return await self._get_user().enable_mfa()

    async def disable_mfa(self) -> str:
        return await self._get_user().disable_mfa()

    def _get_user(self, username: str | None = None) -> CognitoUser:
        """Resolve the user a flow acts on.

        ``None`` means "the cached user". A supplied username, even an empty
        one, is never replaced by the cached user.
        """
        if username is None:
            if self._user is None:
                raise NoUserContextError("No username given and no user cached")
            return self._user

        if not username:
            raise ValueError("A username is required")
        if self._user is None or self._user.username != username:
            self._user = CognitoUser(username, self._user_pool)
        return self._user

    @staticmethod
    def _login_response(user: CognitoUser, outcome: AuthOutcome) -> LoginResponse:
        if isinstance(outcome, AuthSuccess):
            return LoginResponse.success(outcome.session, user.username)
        if isinstance(outcome, MfaRequired):
            return LoginResponse.mfa_required(outcome.challenge_name)
        if isinstance(outcome, NewPasswordRequired):
            return LoginResponse.change_password_required(
                outcome.user_attributes, outcome.required_attributes
            )
        raise TypeError(f"Unknown authentication outcome: {outcome!r}")
