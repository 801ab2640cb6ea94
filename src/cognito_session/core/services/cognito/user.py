"""User handle: a username bound to a user pool.

A ``CognitoUser`` exists independently of any session. It carries the
pending challenge between a login and the call that answers the
challenge, so multi-step flows must keep using the same handle.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger
from pycognito.aws_srp import AWSSRP

from src.cognito_session.core.exceptions import (
    ChallengeNotPendingError,
    CognitoError,
    SessionNotFoundError,
)
from src.cognito_session.core.models.session import (
    CognitoRefreshToken,
    CognitoUserSession,
)

if TYPE_CHECKING:
    from src.cognito_session.core.services.cognito.user_pool import CognitoUserPool

MFA_CHALLENGES = ("SMS_MFA", "SOFTWARE_TOKEN_MFA")
NEW_PASSWORD_CHALLENGE = "NEW_PASSWORD_REQUIRED"
PASSWORD_VERIFIER_CHALLENGE = "PASSWORD_VERIFIER"

SRP_AUTH_FLOW = "USER_SRP_AUTH"
PASSWORD_AUTH_FLOW = "USER_PASSWORD_AUTH"

# Attributes Cognito reports but refuses as challenge responses
_READ_ONLY_ATTRIBUTES = ("email_verified", "phone_number_verified")


@dataclass(frozen=True)
class AuthSuccess:
    session: CognitoUserSession


@dataclass(frozen=True)
class MfaRequired:
    challenge_name: str
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NewPasswordRequired:
    user_attributes: dict[str, str] = field(default_factory=dict)
    required_attributes: tuple[str, ...] = ()


# Exactly one of these is produced per authentication exchange
AuthOutcome = AuthSuccess | MfaRequired | NewPasswordRequired


class CognitoUser:
    """Handle for one username within a user pool."""

    def __init__(self, username: str, pool: CognitoUserPool):
        if not username:
            raise ValueError("A username is required")
        self.username = username
        self.pool = pool
        self._challenge_name: str | None = None
        self._challenge_session: str | None = None
        self._challenge_username: str | None = None

    def __repr__(self) -> str:
        return f"CognitoUser(username={self.username!r}, pool={self.pool.user_pool_id!r})"

    @property
    def challenge_name(self) -> str | None:
        """Name of the challenge awaiting an answer, if any."""
        return self._challenge_name

    # ------------------------------------------------------------------
    # Authentication

    async def authenticate_user(self, password: str) -> AuthOutcome:
        """Start a username/password authentication.

        With the pool's default ``USER_SRP_AUTH`` flow the password never
        leaves the process: the ``PASSWORD_VERIFIER`` challenge is answered
        with an SRP proof before the outcome is returned.

        Raises:
            CognitoError: If the credentials are rejected
        """
        if self.pool.auth_flow == PASSWORD_AUTH_FLOW:
            auth_parameters = {"USERNAME": self.username, "PASSWORD": password}
            self._add_secret_hash(auth_parameters, "SECRET_HASH")
            response = await self._initiate_auth(PASSWORD_AUTH_FLOW, auth_parameters)
            return self._handle_auth_response(response)

        srp = AWSSRP(
            username=self.username,
            password=password,
            pool_id=self.pool.user_pool_id,
            client_id=self.pool.client_id,
            client=self.pool.client.sdk,
            client_secret=self.pool.client_secret,
        )
        auth_parameters = srp.get_auth_params()
        response = await self._initiate_auth(SRP_AUTH_FLOW, auth_parameters)

        if response.get("ChallengeName") == PASSWORD_VERIFIER_CHALLENGE:
            proof = srp.process_challenge(response.get("ChallengeParameters") or {}, auth_parameters)
            payload: dict[str, Any] = {
                "ChallengeName": PASSWORD_VERIFIER_CHALLENGE,
                "ClientId": self.pool.client_id,
                "ChallengeResponses": proof,
            }
            if response.get("Session"):
                payload["Session"] = response["Session"]
            response = await self.pool.client.call("RespondToAuthChallenge", payload)
        return self._handle_auth_response(response)

    async def complete_new_password_challenge(
        self, new_password: str, attributes: dict[str, str] | None = None
    ) -> AuthOutcome:
        """Answer a ``NEW_PASSWORD_REQUIRED`` challenge.

        Args:
            new_password: The replacement password
            attributes: Values for attributes the pool requires

        Raises:
            ChallengeNotPendingError: If no new password challenge is pending
            CognitoError: If the service rejects the new password
        """
        if self._challenge_name != NEW_PASSWORD_CHALLENGE:
            raise ChallengeNotPendingError(
                f"No new password challenge pending for {self.username}"
            )

        responses = {"USERNAME": self._responding_username, "NEW_PASSWORD": new_password}
        for name, value in (attributes or {}).items():
            responses[f"userAttributes.{name}"] = value

        return await self._respond_to_challenge(NEW_PASSWORD_CHALLENGE, responses)

    async def send_mfa_code(self, code: str) -> CognitoUserSession:
        """Answer a pending SMS or software token MFA challenge.

        Raises:
            ChallengeNotPendingError: If no MFA challenge is pending
            CognitoError: If the code is rejected
        """
        challenge_name = self._challenge_name
        if challenge_name not in MFA_CHALLENGES:
            raise ChallengeNotPendingError(f"No MFA challenge pending for {self.username}")

        code_key = "SMS_MFA_CODE" if challenge_name == "SMS_MFA" else "SOFTWARE_TOKEN_MFA_CODE"
        outcome = await self._respond_to_challenge(
            challenge_name, {"USERNAME": self._responding_username, code_key: code}
        )
        if not isinstance(outcome, AuthSuccess):
            raise CognitoError(
                "UnexpectedChallenge", f"Unexpected challenge after MFA: {type(outcome).__name__}"
            )
        return outcome.session

    async def refresh_session(self, refresh_token: CognitoRefreshToken) -> CognitoUserSession:
        """Exchange a refresh token for new id and access tokens.

        The refresh token itself is kept when the service does not rotate it.

        Raises:
            CognitoError: If the refresh token is rejected or the service is unreachable
        """
        auth_parameters = {"REFRESH_TOKEN": refresh_token.token}
        self._add_secret_hash(auth_parameters, "SECRET_HASH")

        response = await self._initiate_auth("REFRESH_TOKEN_AUTH", auth_parameters)
        result = response.get("AuthenticationResult") or {}
        session = CognitoUserSession.from_tokens(
            id_token=result.get("IdToken"),
            access_token=result.get("AccessToken"),
            refresh_token=result.get("RefreshToken") or refresh_token.token,
        )
        self.cache_session(session)
        logger.debug(f"Refreshed session for {self.username}")
        return session

    # ------------------------------------------------------------------
    # Registration and password management

    async def confirm_registration(self, code: str, force_alias_creation: bool = False) -> str:
        payload = {
            "ClientId": self.pool.client_id,
            "Username": self.username,
            "ConfirmationCode": code,
            "ForceAliasCreation": force_alias_creation,
        }
        self._add_secret_hash(payload, "SecretHash")
        await self.pool.client.call("ConfirmSignUp", payload)
        return "SUCCESS"

    async def resend_confirmation_code(self) -> dict[str, Any]:
        payload = {"ClientId": self.pool.client_id, "Username": self.username}
        self._add_secret_hash(payload, "SecretHash")
        response = await self.pool.client.call("ResendConfirmationCode", payload)
        return response.get("CodeDeliveryDetails") or {}

    async def forgot_password(self) -> dict[str, Any]:
        """Start a password reset; returns where the verification code was sent."""
        payload = {"ClientId": self.pool.client_id, "Username": self.username}
        self._add_secret_hash(payload, "SecretHash")
        response = await self.pool.client.call("ForgotPassword", payload)
        return response.get("CodeDeliveryDetails") or {}

    async def confirm_password(self, verification_code: str, new_password: str) -> None:
        payload = {
            "ClientId": self.pool.client_id,
            "Username": self.username,
            "ConfirmationCode": verification_code,
            "Password": new_password,
        }
        self._add_secret_hash(payload, "SecretHash")
        await self.pool.client.call("ConfirmForgotPassword", payload)

    async def change_password(self, old_password: str, new_password: str) -> None:
        session = self._authenticated_session()
        await self.pool.client.call(
            "ChangePassword",
            {
                "AccessToken": session.access_token.jwt_token,
                "PreviousPassword": old_password,
                "ProposedPassword": new_password,
            },
        )

    async def enable_mfa(self) -> str:
        await self._set_sms_mfa(enabled=True)
        return "SUCCESS"

    async def disable_mfa(self) -> str:
        await self._set_sms_mfa(enabled=False)
        return "SUCCESS"

    # ------------------------------------------------------------------
    # Session storage

    def _storage_key(self, name: str) -> str:
        return f"{self.pool.key_prefix}.{self.username}.{name}"

    def get_session(self) -> CognitoUserSession:
        """Restore this user's session from the pool storage.

        The session is returned whether or not it has expired; callers
        decide when to refresh.

        Raises:
            SessionNotFoundError: If no complete token set is stored
            TokenDecodeError: If a stored token is malformed
        """
        storage = self.pool.storage
        id_token = storage.get_item(self._storage_key("idToken"))
        access_token = storage.get_item(self._storage_key("accessToken"))
        refresh_token = storage.get_item(self._storage_key("refreshToken"))
        if not (id_token and access_token and refresh_token):
            raise SessionNotFoundError(f"No stored session for {self.username}")

        clock_drift = storage.get_item(self._storage_key("clockDrift"))
        return CognitoUserSession.from_tokens(
            id_token=id_token,
            access_token=access_token,
            refresh_token=refresh_token,
            clock_drift=int(clock_drift) if clock_drift is not None else None,
        )

    def cache_session(self, session: CognitoUserSession) -> None:
        """Write the session and mark this user as the pool's current user."""
        storage = self.pool.storage
        storage.set_item(self._storage_key("idToken"), session.id_token.jwt_token)
        storage.set_item(self._storage_key("accessToken"), session.access_token.jwt_token)
        storage.set_item(self._storage_key("refreshToken"), session.refresh_token.token)
        storage.set_item(self._storage_key("clockDrift"), str(session.clock_drift))
        storage.set_item(self.pool.last_user_key, self.username)

    def clear_cached_session(self) -> None:
        storage = self.pool.storage
        for name in ("idToken", "accessToken", "refreshToken", "clockDrift"):
            storage.remove_item(self._storage_key(name))
        if storage.get_item(self.pool.last_user_key) == self.username:
            storage.remove_item(self.pool.last_user_key)

    def sign_out(self) -> None:
        """Forget the session locally."""
        self._reset_challenge()
        self.clear_cached_session()

    async def global_sign_out(self) -> None:
        """Invalidate every refresh token issued to this user, then sign out locally.

        Raises:
            CognitoError: If the service rejects the request; local state is kept
        """
        session = self._authenticated_session()
        await self.pool.client.call(
            "GlobalSignOut", {"AccessToken": session.access_token.jwt_token}
        )
        self.sign_out()

    # ------------------------------------------------------------------
    # Internals

    def _add_secret_hash(
        self, params: dict[str, Any], key: str, username: str | None = None
    ) -> None:
        secret_hash = self.pool.secret_hash(username or self.username)
        if secret_hash:
            params[key] = secret_hash

    async def _initiate_auth(
        self, auth_flow: str, auth_parameters: dict[str, str]
    ) -> dict[str, Any]:
        return await self.pool.client.call(
            "InitiateAuth",
            {
                "AuthFlow": auth_flow,
                "ClientId": self.pool.client_id,
                "AuthParameters": auth_parameters,
            },
        )

    @property
    def _responding_username(self) -> str:
        return self._challenge_username or self.username

    def _reset_challenge(self) -> None:
        self._challenge_name = None
        self._challenge_session = None
        self._challenge_username = None

    def _authenticated_session(self) -> CognitoUserSession:
        try:
            session = self.get_session()
        except SessionNotFoundError as e:
            raise CognitoError("NotAuthorizedException", "User is not authenticated") from e
        if not session.is_valid():
            raise CognitoError("NotAuthorizedException", "Session has expired")
        return session

    async def _respond_to_challenge(
        self, challenge_name: str, responses: dict[str, str]
    ) -> AuthOutcome:
        self._add_secret_hash(responses, "SECRET_HASH", responses.get("USERNAME"))
        payload: dict[str, Any] = {
            "ChallengeName": challenge_name,
            "ClientId": self.pool.client_id,
            "ChallengeResponses": responses,
        }
        if self._challenge_session:
            payload["Session"] = self._challenge_session

        response = await self.pool.client.call("RespondToAuthChallenge", payload)
        return self._handle_auth_response(response)

    def _handle_auth_response(self, response: dict[str, Any]) -> AuthOutcome:
        challenge_name = response.get("ChallengeName")
        parameters = response.get("ChallengeParameters") or {}

        if challenge_name in MFA_CHALLENGES or challenge_name == NEW_PASSWORD_CHALLENGE:
            self._challenge_name = challenge_name
            self._challenge_session = response.get("Session")
            # SRP logins report the pool-internal username the challenge is bound to
            self._challenge_username = (
                parameters.get("USERNAME") or parameters.get("USER_ID_FOR_SRP") or self.username
            )

        if challenge_name in MFA_CHALLENGES:
            return MfaRequired(challenge_name=challenge_name, parameters=dict(parameters))

        if challenge_name == NEW_PASSWORD_CHALLENGE:
            user_attributes = json.loads(parameters.get("userAttributes") or "{}")
            for name in _READ_ONLY_ATTRIBUTES:
                user_attributes.pop(name, None)
            required = json.loads(parameters.get("requiredAttributes") or "[]")
            return NewPasswordRequired(
                user_attributes=user_attributes,
                required_attributes=tuple(
                    name.removeprefix("userAttributes.") for name in required
                ),
            )

        if challenge_name:
            raise CognitoError("UnsupportedChallenge", f"Challenge {challenge_name} is not supported")

        result = response.get("AuthenticationResult")
        if not result:
            raise CognitoError("InvalidResponse", "No authentication result in response")

        session = CognitoUserSession.from_tokens(
            id_token=result.get("IdToken"),
            access_token=result.get("AccessToken"),
            refresh_token=result.get("RefreshToken"),
        )
        self._reset_challenge()
        self.cache_session(session)
        logger.info(f"Authenticated {self.username}")
        return AuthSuccess(session=session)

    async def _set_sms_mfa(self, enabled: bool) -> None:
        session = self._authenticated_session()
        await self.pool.client.call(
            "SetUserMFAPreference",
            {
                "AccessToken": session.access_token.jwt_token,
                "SMSMfaSettings": {"Enabled": enabled, "PreferredMfa": enabled},
            },
        )
