"""Provider boundary: Cognito user pool, user handle and identity pool clients."""

from .client import CognitoServiceClient, IdentityPoolClient, UserPoolClient
from .identity_credentials import CognitoIdentityCredentials
from .user import AuthOutcome, AuthSuccess, CognitoUser, MfaRequired, NewPasswordRequired
from .user_pool import CognitoUserPool, SignUpResult

__all__ = [
    "AuthOutcome",
    "AuthSuccess",
    "CognitoIdentityCredentials",
    "CognitoServiceClient",
    "CognitoUser",
    "CognitoUserPool",
    "IdentityPoolClient",
    "MfaRequired",
    "NewPasswordRequired",
    "SignUpResult",
    "UserPoolClient",
]
