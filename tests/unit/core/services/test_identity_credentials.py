"""Unit tests for identity pool credentials."""

import time
from datetime import datetime, timezone

import pytest

from src.cognito_session.core.exceptions import CognitoError
from src.cognito_session.core.services.cognito.identity_credentials import (
    CognitoIdentityCredentials,
)
from src.cognito_session.core.storage.kv_storage import MemoryStorage

_POOL = "us-east-1:pool"
_LOGINS = {"cognito-idp.us-east-1.amazonaws.com/us-east-1_TestPool": "id-jwt"}


def _credentials_response(identity_id: str = "us-east-1:identity-1", expires_in: int = 3600):
    return {
        "IdentityId": identity_id,
        "Credentials": {
            "AccessKeyId": "AKIA",
            "SecretKey": "secret",
            "SessionToken": "session",
            "Expiration": datetime.fromtimestamp(int(time.time()) + expires_in, tz=timezone.utc),
        },
    }


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def credentials(identity_client, storage) -> CognitoIdentityCredentials:
    return CognitoIdentityCredentials(
        _POOL, _LOGINS, region="us-east-1", storage=storage, client=identity_client
    )


class TestCognitoIdentityCredentials:
    @pytest.mark.asyncio
    async def test_refresh_resolves_and_caches_identity_id(self, credentials, identity_client, storage):
        identity_client.queue("GetId", {"IdentityId": "us-east-1:identity-1"})
        identity_client.queue("GetCredentialsForIdentity", _credentials_response())

        assert credentials.needs_refresh()
        result = await credentials.refresh()

        assert result.access_key_id == "AKIA"
        assert result.identity_id == "us-east-1:identity-1"
        assert not credentials.needs_refresh()
        assert storage.get_item(f"aws.cognito.identity-id.{_POOL}") == "us-east-1:identity-1"
        assert identity_client.payload("GetId")["Logins"] == _LOGINS

    @pytest.mark.asyncio
    async def test_expiration_datetime_becomes_epoch_seconds(self, credentials, identity_client):
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)
        response = _credentials_response()
        response["Credentials"]["Expiration"] = expires
        identity_client.queue("GetId", {"IdentityId": "us-east-1:identity-1"})
        identity_client.queue("GetCredentialsForIdentity", response)

        result = await credentials.refresh()

        assert result.expiration == int(expires.timestamp())

    @pytest.mark.asyncio
    async def test_cached_identity_id_skips_get_id(self, credentials, identity_client, storage):
        storage.set_item(f"aws.cognito.identity-id.{_POOL}", "us-east-1:cached")
        identity_client.queue(
            "GetCredentialsForIdentity", _credentials_response("us-east-1:cached")
        )

        await credentials.refresh()

        assert identity_client.actions() == ["GetCredentialsForIdentity"]
        assert identity_client.payload("GetCredentialsForIdentity")["IdentityId"] == (
            "us-east-1:cached"
        )

    @pytest.mark.asyncio
    async def test_stale_identity_id_is_resolved_again(self, credentials, identity_client, storage):
        storage.set_item(f"aws.cognito.identity-id.{_POOL}", "us-east-1:stale")
        identity_client.fail("GetCredentialsForIdentity", "ResourceNotFoundException")
        identity_client.queue("GetId", {"IdentityId": "us-east-1:fresh"})
        identity_client.queue("GetCredentialsForIdentity", _credentials_response("us-east-1:fresh"))

        result = await credentials.refresh()

        assert result.identity_id == "us-east-1:fresh"
        assert credentials.identity_id == "us-east-1:fresh"

    @pytest.mark.asyncio
    async def test_rejected_login_propagates(self, credentials, identity_client):
        identity_client.fail("GetId", "NotAuthorizedException", "Invalid login token")

        with pytest.raises(CognitoError):
            await credentials.refresh()

        assert credentials.credentials is None

    @pytest.mark.asyncio
    async def test_expiring_credentials_need_refresh(self, credentials, identity_client):
        identity_client.queue("GetId", {"IdentityId": "us-east-1:identity-1"})
        identity_client.queue("GetCredentialsForIdentity", _credentials_response(expires_in=5))

        await credentials.refresh()

        assert credentials.needs_refresh()

    def test_clear_cached_id(self, credentials, storage):
        storage.set_item(f"aws.cognito.identity-id.{_POOL}", "us-east-1:cached")

        credentials.clear_cached_id()

        assert credentials.identity_id is None
        assert credentials.credentials is None
