"""Addon manifest fetcher (direct or relayed, cache-busted, retried, validated)."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from addonsync.config import ManifestSettings, get_settings
from addonsync.domain.entities import Addon, AddonManifest
from addonsync.domain.exceptions import (
    ManifestInvalidError,
    ManifestNotFoundError,
    ManifestUnreachableError,
)
from addonsync.domain.ports import IManifestFetcher
from addonsync.domain.value_objects import (
    add_query_param,
    matches_domain,
    resolve_manifest_url,
)
from addonsync.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)

REQUIRED_MANIFEST_FIELDS = ("id", "name", "version")


class ManifestFetcher(IManifestFetcher):
    """Fetches addon manifests, via the relay unless the origin allows direct access."""

    # Hey future me, most addon servers send NO CORS headers, which is why everything
    # goes through our relay by default. Only the allow-listed official domains are
    # hit directly. The relay gets the account context header purely so its logs say
    # WHO triggered a fetch - it is not an auth mechanism, don't treat it like one.
    def __init__(
        self,
        settings: ManifestSettings | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize manifest fetcher.

        Args:
            settings: Manifest fetch policy (defaults to global settings)
            client: HTTP client to use (defaults to the shared pool)
            clock: Wall clock in seconds, used for the cache-buster bucket
        """
        self.settings = settings or get_settings().manifest
        self._client = client
        self._clock = clock

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = await HttpClientPool.get_client()
        return self._client

    def cache_bust_bucket(self) -> int:
        """Current cache-buster window number.

        Intermediate caches (CDN, relay) may serve a stable response inside one
        window, but the URL changes every window so a refresh is guaranteed at
        least that often. Update latency vs. network load - tune via settings.
        """
        return int(self._clock() // self.settings.cache_bust_window_seconds)

    def is_direct(self, url: str) -> bool:
        """Whether the URL's host is allowed to be fetched without the relay."""
        return matches_domain(url, self.settings.direct_fetch_domains)

    def build_request(self, manifest_url: str, context: str) -> tuple[str, dict[str, str], dict[str, str]]:
        """Build (url, params, headers) for one attempt."""
        busted_url = add_query_param(
            manifest_url, self.settings.cache_bust_param, self.cache_bust_bucket()
        )
        if self.is_direct(manifest_url):
            return busted_url, {}, {"Accept": "application/json"}
        return (
            self.settings.relay_url,
            {"url": busted_url},
            {"Accept": "application/json", self.settings.context_header: context},
        )

    async def fetch(
        self, transport_url: str, context: str = "Unknown", retries: int | None = None
    ) -> Addon:
        """Fetch, validate and sanitize the manifest of an addon.

        Args:
            transport_url: Addon identity URL, echoed back unchanged in the result
            context: Caller-identifying string forwarded to the relay
            retries: Extra attempts for transient failures (default from settings)

        Returns:
            Addon with transport_url and a sanitized manifest

        Raises:
            ManifestNotFoundError: 404, never retried
            ManifestInvalidError: Missing id/name/version, never retried
            ManifestUnreachableError: Network/timeout/server/body failure after retries
            ValueError: retries is negative
        """
        max_retries = self.settings.retries if retries is None else retries
        if max_retries < 0:
            raise ValueError(f"retries must be >= 0, got {max_retries}")
        manifest_url = resolve_manifest_url(transport_url, self.settings.manifest_filename)
        direct = self.is_direct(manifest_url)

        logger.info(
            "Fetching manifest %s: %s",
            "directly" if direct else "via relay",
            manifest_url,
        )

        last_error: ManifestUnreachableError | None = None
        for attempt in range(max_retries + 1):
            if attempt > 0:
                await asyncio.sleep(self._retry_delay(attempt, last_error))

            try:
                payload = await self._request_once(manifest_url, context)
            except ManifestNotFoundError:
                logger.warning("Manifest not found at %s", manifest_url)
                raise
            except ManifestUnreachableError as e:
                last_error = e
                logger.warning(
                    "Manifest fetch attempt %d/%d failed for %s: %s",
                    attempt + 1,
                    max_retries + 1,
                    manifest_url,
                    e.message,
                )
                continue

            # The fetch itself worked - bad content is not a transport issue, so
            # validation errors escape the retry loop on purpose.
            return self._build_addon(transport_url, manifest_url, payload)

        raise last_error or ManifestUnreachableError("Manifest fetch failed", manifest_url)

    # Yo, linear backoff: 1s, 2s, 3s... A 429 with Retry-After can only make the wait
    # LONGER, and we cap it so a hostile header can't park a batch for an hour.
    def _retry_delay(self, attempt: int, last_error: ManifestUnreachableError | None) -> float:
        delay = attempt * self.settings.retry_delay_seconds
        if last_error is not None and last_error.retry_after is not None:
            delay = max(delay, min(last_error.retry_after, self.settings.max_retry_after_seconds))
        return delay

    async def _request_once(self, manifest_url: str, context: str) -> Any:
        url, params, headers = self.build_request(manifest_url, context)
        client = await self._get_client()

        try:
            response = await client.get(
                url,
                params=params or None,
                headers=headers,
                timeout=self.settings.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ManifestUnreachableError(
                f"Timed out after {self.settings.timeout_seconds:.0f}s", manifest_url
            ) from e
        except httpx.HTTPError as e:
            raise ManifestUnreachableError(f"Network error: {e}", manifest_url) from e

        if response.status_code == 404:
            raise ManifestNotFoundError(manifest_url)

        if not response.is_success:
            raise ManifestUnreachableError(
                f"Addon server responded with {response.status_code}",
                manifest_url,
                status_code=response.status_code,
                retry_after=_parse_retry_after(response),
            )

        try:
            return response.json()
        except ValueError as e:
            raise ManifestUnreachableError(
                "Malformed manifest body (not JSON)",
                manifest_url,
                status_code=response.status_code,
            ) from e

    def _build_addon(self, transport_url: str, manifest_url: str, payload: Any) -> Addon:
        data: dict[str, Any] = payload if isinstance(payload, dict) else {}
        missing = [name for name in REQUIRED_MANIFEST_FIELDS if not data.get(name)]
        if missing:
            logger.error("Manifest at %s is missing fields: %s", manifest_url, missing)
            raise ManifestInvalidError(manifest_url, missing)

        return Addon(transport_url=transport_url, manifest=AddonManifest.from_dict(data))


def _parse_retry_after(response: httpx.Response) -> float | None:
    if response.status_code != 429:
        return None
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        return None
