"""Unit tests for session, credential and result models."""

import time

import pytest
from pydantic import ValidationError

from src.cognito_session.core.constants import LoginCode, RegistrationCode
from src.cognito_session.core.exceptions import SessionNotFoundError, TokenDecodeError
from src.cognito_session.core.models.results import LoginResponse, RegistrationResponse
from src.cognito_session.core.models.session import (
    AWSServiceCredentials,
    CognitoRefreshToken,
    CognitoUserSession,
)
from src.cognito_session.core.security import compute_secret_hash
from tests.utils import make_jwt, make_session, make_tokens


class TestCognitoUserSession:
    def test_from_tokens_decodes_claims(self):
        tokens = make_tokens("alice", sub="sub-1", email="alice@example.com")

        session = CognitoUserSession.from_tokens(
            tokens["IdToken"], tokens["AccessToken"], tokens["RefreshToken"]
        )

        assert session.id_token.username == "alice"
        assert session.id_token.subject == "sub-1"
        assert session.id_token.payload["email"] == "alice@example.com"
        assert session.access_token.username == "alice"
        assert session.refresh_token.token == "refresh-alice"
        assert session.is_valid()

    @pytest.mark.parametrize("missing", ["IdToken", "AccessToken", "RefreshToken"])
    def test_incomplete_token_set_is_rejected(self, missing):
        tokens = make_tokens()
        tokens[missing] = None

        with pytest.raises(SessionNotFoundError):
            CognitoUserSession.from_tokens(
                tokens["IdToken"], tokens["AccessToken"], tokens["RefreshToken"]
            )

    def test_malformed_jwt_raises_decode_error(self):
        with pytest.raises(TokenDecodeError):
            CognitoUserSession.from_tokens("not-a-jwt", "also.not", "refresh")

    def test_clock_drift_is_derived_from_issue_time(self):
        issued = int(time.time()) - 600
        tokens = make_tokens(issued_at=issued, expires_in=300)

        session = CognitoUserSession.from_tokens(
            tokens["IdToken"], tokens["AccessToken"], tokens["RefreshToken"]
        )

        # The server clock looks ten minutes behind, so the tokens are still fresh
        assert session.clock_drift >= 600
        assert session.is_valid()

    def test_missing_issue_time_means_no_drift(self):
        expired_at = int(time.time()) - 60
        id_token = make_jwt({"sub": "sub-1", "exp": expired_at})
        access_token = make_jwt({"username": "alice", "exp": expired_at})

        session = CognitoUserSession.from_tokens(id_token, access_token, "refresh")

        assert session.clock_drift == 0
        assert not session.is_valid()

    def test_expired_session_is_invalid(self):
        session = make_session(expired=True)

        assert session.clock_drift == 0
        assert not session.is_valid()

    def test_validity_uses_adjusted_time(self):
        session = make_session()
        expiry = session.access_token.expiration

        assert session.is_valid(now=expiry - 1 + session.clock_drift)
        assert not session.is_valid(now=expiry + session.clock_drift)

    def test_sessions_are_immutable(self):
        session = make_session()

        with pytest.raises(ValidationError):
            session.clock_drift = 5

    def test_refresh_token_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            CognitoRefreshToken(token="")


class TestAWSServiceCredentials:
    def _credentials(self, expiration):
        return AWSServiceCredentials(
            access_key_id="AKIA",
            secret_access_key="secret",
            session_token="token",
            expiration=expiration,
        )

    def test_not_expired(self):
        assert not self._credentials(int(time.time()) + 3600).is_expired()

    def test_expiry_window_counts_as_expired(self):
        assert self._credentials(int(time.time()) + 5).is_expired()

    def test_no_expiration_never_expires(self):
        assert not self._credentials(None).is_expired()


class TestResults:
    def test_login_success(self):
        session = make_session()

        response = LoginResponse.success(session, "alice")

        assert response.ok
        assert response.code is LoginCode.SUCCESS
        assert response.credentials is session
        assert response.identity == "alice"

    def test_login_failure_carries_error_code(self):
        response = LoginResponse.failure("NotAuthorizedException")

        assert not response.ok
        assert response.code is LoginCode.ERROR
        assert response.error == "NotAuthorizedException"
        assert response.credentials is None

    def test_change_password_required(self):
        response = LoginResponse.change_password_required({"email": "a@b.c"}, ["name"])

        assert response.code is LoginCode.CHANGE_PASSWORD_REQUIRED
        assert response.attributes == {"email": "a@b.c"}
        assert response.required_attributes == ("name",)

    def test_result_codes_are_stable(self):
        assert [int(c) for c in LoginCode] == [1, 2, 3, 4]
        assert int(RegistrationCode.SUCCESS) == 0
        assert int(RegistrationCode.PHONE_NUMBER_EXISTS) == 5
        assert int(RegistrationCode.FAILURE_GENERIC) == 100

    def test_registration_ok(self):
        assert RegistrationResponse(code=RegistrationCode.SUCCESS).ok
        assert not RegistrationResponse(code=RegistrationCode.USERNAME_EXISTS).ok


def test_secret_hash_matches_known_value():
    # base64(HMAC-SHA256(key="secret", msg="alice" + "client"))
    assert compute_secret_hash("alice", "client", "secret") == (
        "RTsve+FQ659UKyESgvLg9GYmZEL+QjzQsW/OjL77/b0="
    )
