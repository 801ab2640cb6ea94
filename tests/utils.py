import time
from typing import Any

from authlib.jose import jwt

from src.cognito_session.core.models.session import CognitoUserSession

_SIGNING_KEY = b"cognito-test-key"


def make_jwt(claims: dict[str, Any]) -> str:
    return jwt.encode({"alg": "HS256"}, claims, _SIGNING_KEY).decode("utf-8")


def make_tokens(
    username: str = "alice",
    *,
    issued_at: int | None = None,
    expires_in: int = 3600,
    sub: str = "sub-alice",
    email: str | None = None,
) -> dict[str, str]:
    """Build an ``AuthenticationResult`` style token set."""
    iat = int(time.time()) if issued_at is None else issued_at
    id_claims: dict[str, Any] = {
        "sub": sub,
        "cognito:username": username,
        "token_use": "id",
        "iat": iat,
        "exp": iat + expires_in,
    }
    if email:
        id_claims["email"] = email
    access_claims = {
        "sub": sub,
        "username": username,
        "token_use": "access",
        "iat": iat,
        "exp": iat + expires_in,
    }
    return {
        "IdToken": make_jwt(id_claims),
        "AccessToken": make_jwt(access_claims),
        "RefreshToken": f"refresh-{username}",
    }


def auth_result(**kwargs) -> dict[str, Any]:
    return {"AuthenticationResult": make_tokens(**kwargs)}


def make_session(username: str = "alice", *, expired: bool = False, **kwargs) -> CognitoUserSession:
    """Build a session; expired sessions carry zero clock drift so they stay expired."""
    if expired:
        tokens = make_tokens(username, issued_at=int(time.time()) - 7200, expires_in=3600, **kwargs)
        drift = 0
    else:
        tokens = make_tokens(username, **kwargs)
        drift = None
    return CognitoUserSession.from_tokens(
        id_token=tokens["IdToken"],
        access_token=tokens["AccessToken"],
        refresh_token=tokens["RefreshToken"],
        clock_drift=drift,
    )
