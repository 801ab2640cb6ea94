"""Result codes returned by the authentication and registration flows.

The numeric values are a stable contract with UI layers. Never reorder or
reuse a value once it has been assigned.
"""

from enum import IntEnum


class LoginCode(IntEnum):
    """Outcome of a login step (login, MFA, forced password change)."""

    SUCCESS = 1
    ERROR = 2
    MFA_REQUIRED = 3
    CHANGE_PASSWORD_REQUIRED = 4


class RegistrationCode(IntEnum):
    """Outcome of a registration attempt."""

    SUCCESS = 0
    INVALID_USERNAME = 1
    USERNAME_EXISTS = 2
    INVALID_PASSWORD = 3
    INVALID_PHONE_NUMBER = 4
    # Reserved; no classification currently produces it.
    PHONE_NUMBER_EXISTS = 5
    # For handling cases where we do not recognise the failure mode.
    FAILURE_GENERIC = 100


# Storage key prefixes owned by the session layer
USER_POOL_KEY_PREFIX = "CognitoIdentityServiceProvider"
IDENTITY_POOL_KEY_PREFIX = "aws.cognito"
