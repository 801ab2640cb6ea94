"""Exception hierarchy for the Cognito session manager."""

from __future__ import annotations


class CognitoSessionError(Exception):
    """Base class for every error raised by this package."""


class CognitoError(CognitoSessionError):
    """Error reported by the remote identity service.

    Attributes:
        code: Provider error classification, e.g. ``UsernameExistsException``
        message: Human readable provider message (not an API contract)
        status_code: HTTP status of the failed exchange, if any
    """

    def __init__(self, code: str, message: str = "", status_code: int | None = None):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message
        self.status_code = status_code

    @property
    def is_network_error(self) -> bool:
        return self.code == "NetworkingError"


class TokenDecodeError(CognitoSessionError):
    """A token could not be parsed into claims."""


class SessionNotFoundError(CognitoSessionError):
    """No complete session is stored for the user."""


class UserContextError(CognitoSessionError):
    """A flow was invoked without the user state it depends on."""


class NoUserContextError(UserContextError):
    """No username was supplied and no user handle is cached."""


class ChallengeNotPendingError(UserContextError):
    """A challenge response was sent but no challenge is pending."""
