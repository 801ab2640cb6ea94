"""Async wrappers around the boto3 Cognito user pool and identity pool clients."""

import asyncio
from typing import Any

import boto3
from botocore import UNSIGNED, xform_name
from botocore import exceptions as botocore_exceptions
from botocore.config import Config
from loguru import logger

from src.cognito_session.core.exceptions import CognitoError


def _sdk_config(timeout: float) -> Config:
    # Public and token-authenticated actions only; requests are not SigV4 signed
    return Config(
        signature_version=UNSIGNED,
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"mode": "standard", "total_max_attempts": 1},
    )


class CognitoServiceClient:
    """Runs blocking boto3 operations off the event loop.

    Actions are addressed by their API name (``InitiateAuth``) so callers
    and test doubles share one ``call`` signature. Service errors surface as
    ``CognitoError`` with the service's error code; connection and timeout
    failures surface as ``NetworkingError``.
    """

    def __init__(self, sdk):
        self.sdk = sdk

    async def call(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Invoke one service action.

        Args:
            action: API action name, e.g. ``InitiateAuth``
            payload: Request parameters

        Returns:
            The response without its ``ResponseMetadata``

        Raises:
            CognitoError: With the service's error code, or ``NetworkingError``
        """
        operation = getattr(self.sdk, xform_name(action))
        logger.debug(f"Cognito request {action}")
        try:
            response = await asyncio.to_thread(operation, **payload)
        except botocore_exceptions.ClientError as e:
            error = e.response.get("Error", {})
            raise CognitoError(
                error.get("Code") or "UnknownError",
                error.get("Message", ""),
                status_code=e.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
            ) from e
        except (botocore_exceptions.ConnectionError, botocore_exceptions.HTTPClientError) as e:
            raise CognitoError("NetworkingError", str(e)) from e
        except botocore_exceptions.BotoCoreError as e:
            raise CognitoError(type(e).__name__, str(e)) from e

        response = dict(response)
        response.pop("ResponseMetadata", None)
        return response


class UserPoolClient(CognitoServiceClient):
    """Client for ``cognito-idp`` (user pool) actions."""

    def __init__(self, region: str, timeout: float = 10.0, sdk=None):
        super().__init__(
            sdk or boto3.client("cognito-idp", region_name=region, config=_sdk_config(timeout))
        )


class IdentityPoolClient(CognitoServiceClient):
    """Client for ``cognito-identity`` (identity pool) actions."""

    def __init__(self, region: str, timeout: float = 10.0, sdk=None):
        super().__init__(
            sdk
            or boto3.client("cognito-identity", region_name=region, config=_sdk_config(timeout))
        )
