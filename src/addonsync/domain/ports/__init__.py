"""Domain ports (interfaces) for dependency inversion.

Following Hexagonal Architecture (Ports & Adapters), these are the PORTS the
application services talk to. Adapters live in the infrastructure layer:

- IManifestFetcher  -> infrastructure.integrations.manifest_fetcher.ManifestFetcher
- IHealthProbe      -> infrastructure.observability.health.OriginHealthProbe
- ICollectionStore  -> infrastructure.integrations.stremio_client.StremioClient
- ISessionProvider  -> infrastructure.integrations.stremio_client.StremioClient

Tests mock the ports, never the HTTP layer, when they exercise services.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from addonsync.domain.entities import Addon, HealthResult


@dataclass(frozen=True)
class Session:
    """Authenticated account session."""

    auth_key: str
    user: dict[str, Any] = field(default_factory=dict)


class IManifestFetcher(ABC):
    """Fetches and validates an addon manifest."""

    @abstractmethod
    async def fetch(
        self, transport_url: str, context: str = "Unknown", retries: int | None = None
    ) -> Addon:
        """Fetch the manifest behind a transport URL.

        Args:
            transport_url: The addon's identity URL (echoed back unchanged)
            context: Caller-identifying string for relay logging
            retries: Additional attempts on transient failures (None = configured default)

        Returns:
            Addon with a sanitized manifest

        Raises:
            ManifestNotFoundError: Server said 404 (not retried)
            ManifestInvalidError: Payload lacks id/name/version (not retried)
            ManifestUnreachableError: Transient failure after all retries
        """
        pass


class IHealthProbe(ABC):
    """Answers "is this origin reachable right now"."""

    @abstractmethod
    async def check(self, url: str) -> HealthResult:
        """Probe the URL. MUST NOT raise - failures are is_online=False results."""
        pass


class ICollectionStore(ABC):
    """Remote addon collection of an account."""

    @abstractmethod
    async def get(self, auth_key: str, context: str = "Unknown") -> list[Addon]:
        """Get the account's addon collection (manifests sanitized)."""
        pass

    @abstractmethod
    async def set(self, auth_key: str, addons: list[Addon], context: str = "Unknown") -> None:
        """Replace the account's addon collection."""
        pass


class ISessionProvider(ABC):
    """Account login."""

    @abstractmethod
    async def login(self, email: str, password: str) -> Session:
        """Log in and return a session.

        Raises:
            InvalidCredentialsError: Wrong email or password
            NetworkError: Transport failure
        """
        pass


__all__ = [
    "ICollectionStore",
    "IHealthProbe",
    "IManifestFetcher",
    "ISessionProvider",
    "Session",
]
