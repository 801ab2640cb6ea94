"""Claim extraction for user pool JWTs.

Tokens arrive straight from the user pool over TLS and are only read here,
never trusted for authorization decisions, so signatures are not checked.
The size and alphabet limits keep a corrupted storage entry from turning
into an expensive decode.
"""

import base64
import binascii
import json
from typing import Any, Final

from src.cognito_session.core.exceptions import TokenDecodeError

TOKEN_MAX_LENGTH: Final = 8192
CLAIMS_MAX_BYTES: Final = 64 * 1024

# base64url without padding, plus the segment separator
_TOKEN_ALPHABET: Final = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_."
)


def _split_token(token: str) -> list[str]:
    if not token or len(token) > TOKEN_MAX_LENGTH:
        raise TokenDecodeError("Invalid JWT size")
    if not set(token) <= _TOKEN_ALPHABET:
        raise TokenDecodeError("Invalid JWT characters")

    segments = token.split(".")
    # The signature may be empty for unsigned tokens; header and claims may not
    if len(segments) != 3 or not segments[0] or not segments[1]:
        raise TokenDecodeError("Invalid JWT format")
    return segments


def _decode_segment(segment: str, label: str, limit: int) -> dict[str, Any]:
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise TokenDecodeError(f"Invalid base64url in {label}") from e
    if len(raw) > limit:
        raise TokenDecodeError(f"{label} too large")

    try:
        value = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise TokenDecodeError(f"Non-UTF8 {label}") from e
    except json.JSONDecodeError as e:
        raise TokenDecodeError(f"Invalid JSON in {label}") from e

    if not isinstance(value, dict):
        raise TokenDecodeError(f"{label} must be a JSON object")
    return value


def decode_claims(token: str) -> dict[str, Any]:
    """Return the payload claims of a compact JWT without verifying it.

    Raises:
        TokenDecodeError: If the token is not a well-formed compact JWT
    """
    _, claims_segment, _ = _split_token(token)
    return _decode_segment(claims_segment, "JWT payload", CLAIMS_MAX_BYTES)
