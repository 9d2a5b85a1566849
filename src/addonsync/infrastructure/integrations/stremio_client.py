"""Account provider HTTP client (login + addon collection get/set)."""

import logging
from typing import Any

import httpx

from addonsync.config import Settings, get_settings
from addonsync.domain.entities import Addon
from addonsync.domain.exceptions import (
    AuthenticationExpiredError,
    InvalidCredentialsError,
    NetworkError,
    ProviderResponseError,
)
from addonsync.domain.ports import ICollectionStore, ISessionProvider, Session
from addonsync.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)


class StremioClient(ICollectionStore, ISessionProvider):
    """HTTP client for the account provider.

    Hey future me - login goes straight to the provider API, but collection
    get/set go through OUR server-side proxy so the backend can log which account
    context changed what. No retries in here on purpose! A failed collection write
    must surface to the caller (maybe the auth key died and the user needs to log
    in again) instead of being silently replayed.
    """

    def __init__(
        self, settings: Settings | None = None, client: httpx.AsyncClient | None = None
    ) -> None:
        """
        Initialize client.

        Args:
            settings: Application settings (provider URLs, context header name)
            client: HTTP client to use (defaults to the shared pool)
        """
        self.settings = settings or get_settings()
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = await HttpClientPool.get_client()
        return self._client

    async def login(self, email: str, password: str) -> Session:
        """Log in with email and password.

        Raises:
            InvalidCredentialsError: Provider rejected the credentials
            NetworkError: Provider unreachable
            ProviderResponseError: Unexpected response shape
        """
        url = f"{self.settings.stremio.api_base_url}/api/login"
        client = await self._get_client()
        try:
            response = await client.post(
                url,
                json={"type": "Auth", "email": email, "password": password},
                timeout=self.settings.stremio.timeout_seconds,
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Network error - check your internet connection ({e})"
            ) from e

        if response.status_code == 401:
            raise InvalidCredentialsError()

        data = self._decode(response)
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or "Login failed"
                code = error.get("code") or error.get("message")
            else:
                message, code = str(error), None
            raise InvalidCredentialsError(str(message), code=str(code) if code else None)

        if not response.is_success:
            raise ProviderResponseError(f"Login failed with status {response.status_code}")

        result = data.get("result") or {}
        auth_key = result.get("authKey")
        if not auth_key:
            raise ProviderResponseError("Invalid login response - no auth key")

        logger.info("Logged in to account provider")
        return Session(auth_key=auth_key, user=result.get("user") or {})

    async def get(self, auth_key: str, context: str = "Unknown") -> list[Addon]:
        """Get the account's addon collection.

        Every manifest comes back sanitized (types/resources present).
        """
        data = await self._proxy_call(
            {"type": "AddonCollectionGet", "authKey": auth_key, "update": True},
            context,
            "Failed to get addon collection",
        )
        result = data.get("result") or {}
        raw_addons = result.get("addons") or []
        addons = [Addon.from_dict(raw) for raw in raw_addons if isinstance(raw, dict)]
        logger.debug("Fetched %d addons for context %s", len(addons), context)
        return addons

    async def set(self, auth_key: str, addons: list[Addon], context: str = "Unknown") -> None:
        """Replace the account's addon collection."""
        await self._proxy_call(
            {
                "type": "AddonCollectionSet",
                "authKey": auth_key,
                "addons": [addon.to_dict() for addon in addons],
            },
            context,
            "Failed to update addon collection",
        )
        logger.info("Pushed %d addons for context %s", len(addons), context)

    async def _proxy_call(
        self, body: dict[str, Any], context: str, failure_message: str
    ) -> dict[str, Any]:
        url = f"{self.settings.stremio.proxy_base_url}/stremio-proxy"
        client = await self._get_client()
        try:
            response = await client.post(
                url,
                json=body,
                headers={self.settings.manifest.context_header: context},
                timeout=self.settings.stremio.timeout_seconds,
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error - {failure_message.lower()} ({e})") from e

        if response.status_code == 401:
            raise AuthenticationExpiredError()

        data = self._decode(response)
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderResponseError(message or failure_message)

        if not response.is_success:
            raise ProviderResponseError(f"{failure_message} (HTTP {response.status_code})")

        return data

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def __aenter__(self) -> "StremioClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # Only close clients we were handed explicitly; the pool is closed at shutdown.
        if self._client is not None and not HttpClientPool.owns(self._client):
            await self._client.aclose()
