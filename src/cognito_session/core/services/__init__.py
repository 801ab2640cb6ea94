"""Core services exports."""

# Authentication flows
from .authentication import (
    CognitoAuthenticator,
    RegistrationErrorClassifier,
    classify_registration_error,
)

# Provider boundary
from .cognito import CognitoIdentityCredentials, CognitoUser, CognitoUserPool

# Identity
from .identity import AWSIdentity, CognitoIdentityProvider, Identity, IdentityCredentials

__all__ = [
    # Authentication flows
    "CognitoAuthenticator",
    "RegistrationErrorClassifier",
    "classify_registration_error",
    # Provider boundary
    "CognitoIdentityCredentials",
    "CognitoUser",
    "CognitoUserPool",
    # Identity
    "AWSIdentity",
    "CognitoIdentityProvider",
    "Identity",
    "IdentityCredentials",
]
