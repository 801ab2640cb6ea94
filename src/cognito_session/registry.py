"""Registry mapping service names to identity providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from loguru import logger

from src.cognito_session.core.models.session import CognitoUserSession
from src.cognito_session.core.services.identity import Identity


@runtime_checkable
class IdentityProviderProtocol(Protocol):
    """What the host expects from an identity provider plugin."""

    async def get_identity(self) -> Identity: ...

    async def update(self, name: str, session: CognitoUserSession) -> Identity: ...

    async def clear(self) -> None: ...


class IdentityRegistry:
    """Holds one identity provider per service name."""

    def __init__(self):
        self._providers: dict[str, IdentityProviderProtocol] = {}

    def add_provider(self, service: str, provider: IdentityProviderProtocol) -> IdentityRegistry:
        """Register ``provider`` for ``service``, replacing any existing one.

        Returns:
            The registry, so registrations can be chained
        """
        if not isinstance(provider, IdentityProviderProtocol):
            raise TypeError(f"{type(provider).__name__} is not an identity provider")
        if service in self._providers:
            logger.warning(f"Replacing identity provider for service '{service}'")
        self._providers[service] = provider
        return self

    def for_service(self, service: str) -> IdentityProviderProtocol:
        try:
            return self._providers[service]
        except KeyError:
            raise LookupError(f"No identity provider registered for service '{service}'") from None

    @property
    def providers(self) -> dict[str, IdentityProviderProtocol]:
        return dict(self._providers)
