"""Session, credential and result models."""

from .results import LoginResponse, RegistrationResponse
from .session import (
    AWSServiceCredentials,
    CognitoAccessToken,
    CognitoIdToken,
    CognitoRefreshToken,
    CognitoUserSession,
)

__all__ = [
    "AWSServiceCredentials",
    "CognitoAccessToken",
    "CognitoIdToken",
    "CognitoRefreshToken",
    "CognitoUserSession",
    "LoginResponse",
    "RegistrationResponse",
]
