from __future__ import annotations

from collections import defaultdict, deque
from typing import Any
from unittest.mock import MagicMock

from src.cognito_session.core.exceptions import CognitoError
from src.cognito_session.core.services.cognito.client import CognitoServiceClient


class FakeCognitoClient(CognitoServiceClient):
    """Service client that replays scripted responses per action."""

    def __init__(self):
        super().__init__(MagicMock(name="cognito-sdk"))
        self._responses: dict[str, deque[Any]] = defaultdict(deque)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def queue(self, action: str, response: dict[str, Any] | Exception) -> FakeCognitoClient:
        self._responses[action].append(response)
        return self

    def fail(self, action: str, code: str, message: str = "") -> FakeCognitoClient:
        return self.queue(action, CognitoError(code, message, status_code=400))

    def actions(self) -> list[str]:
        return [action for action, _ in self.calls]

    def payload(self, action: str, index: int = -1) -> dict[str, Any]:
        return [payload for name, payload in self.calls if name == action][index]

    async def call(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((action, payload))
        if not self._responses[action]:
            raise AssertionError(f"Unexpected call to {action}")
        response = self._responses[action].popleft()
        if isinstance(response, Exception):
            raise response
        return response


class RecordingKeyValueStore:
    """Key-value store that records every write and can be told to fail."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None):
        self.data: dict[str, dict[str, Any]] = dict(initial or {})
        self.writes: list[dict[str, Any]] = []
        self.fail_fetch = False
        self.fail_store = False

    async def fetch(self, key: str) -> dict[str, Any] | None:
        if self.fail_fetch:
            raise ConnectionError("store offline")
        return self.data.get(key)

    async def store(self, key: str, value: dict[str, Any]) -> None:
        if self.fail_store:
            raise ConnectionError("store offline")
        self.writes.append(dict(value))
        self.data[key] = dict(value)
