"""Security helpers for user pool requests."""

import base64
import hashlib
import hmac


def compute_secret_hash(username: str, client_id: str, client_secret: str) -> str:
    """Compute the ``SECRET_HASH`` required by app clients that have a secret.

    Args:
        username: Username the request is made for
        client_id: User pool app client id
        client_secret: App client secret

    Returns:
        Base64 encoded HMAC-SHA256 of ``username + client_id``
    """
    message = f"{username}{client_id}".encode()
    digest = hmac.new(client_secret.encode(), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")
