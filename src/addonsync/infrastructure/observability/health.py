"""Origin reachability probe for addon servers."""

import logging

import httpx

from addonsync.config import HealthSettings, ManifestSettings, get_settings
from addonsync.domain.entities import HealthResult
from addonsync.domain.ports import IHealthProbe
from addonsync.domain.value_objects import resolve_manifest_url
from addonsync.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)

HEALTH_CHECK_CONTEXT = "Health-Check"


class OriginHealthProbe(IHealthProbe):
    """Answers "is this addon origin reachable right now".

    Hey future me - this probe NEVER raises. Offline is a normal answer, not an
    error: the update checker uses it as a gate to skip the manifest fetch, and a
    raised exception there would kill the whole batch. Every failure path below
    ends in HealthResult(is_online=False, error=...).

    Caching is not done here! Positive results are shared for a few seconds through
    the health RequestCoalescer (keyed by origin), negative results are never kept
    so a flapping server gets re-probed on the next run.
    """

    def __init__(
        self,
        settings: HealthSettings | None = None,
        manifest_settings: ManifestSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize probe.

        Args:
            settings: Probe settings (timeout)
            manifest_settings: Relay URL and manifest filename
            client: HTTP client to use (defaults to the shared pool)
        """
        self.settings = settings or get_settings().health
        self.manifest_settings = manifest_settings or get_settings().manifest
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = await HttpClientPool.get_client()
        return self._client

    async def check(self, url: str) -> HealthResult:
        """Probe an addon URL: direct first, relay as fallback.

        Online means 2xx AND a JSON body - plenty of dead addons sit behind a
        host that answers 200 with an HTML error page.
        """
        manifest_url = resolve_manifest_url(url, self.manifest_settings.manifest_filename)

        try:
            client = await self._get_client()

            direct_error = await self._probe(
                client,
                manifest_url,
                params=None,
                headers={"Accept": "application/json", "Cache-Control": "no-cache"},
            )
            if direct_error is None:
                return HealthResult(is_online=True)

            # Most addon servers block cross-origin requests in the browser, and some
            # block us too - the relay gets a second opinion before we say "offline".
            relay_error = await self._probe(
                client,
                self.manifest_settings.relay_url,
                params={"url": manifest_url},
                headers={
                    "Cache-Control": "no-cache",
                    self.manifest_settings.context_header: HEALTH_CHECK_CONTEXT,
                },
            )
            if relay_error is None:
                return HealthResult(is_online=True)

            logger.info(
                "Addon origin offline: %s (direct: %s, relay: %s)",
                manifest_url,
                direct_error,
                relay_error,
            )
            return HealthResult(is_online=False, error=relay_error)

        except Exception as e:
            logger.exception("Health probe error for %s", manifest_url)
            return HealthResult(is_online=False, error=f"Health probe error: {e}")

    async def _probe(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, str] | None,
        headers: dict[str, str],
    ) -> str | None:
        """Single GET. Returns None when healthy, else a short error description."""
        try:
            response = await client.get(
                url, params=params, headers=headers, timeout=self.settings.timeout_seconds
            )
        except httpx.TimeoutException:
            return f"timed out after {self.settings.timeout_seconds:.0f}s"
        except httpx.HTTPError as e:
            return f"unreachable: {e}"

        if not response.is_success:
            return f"HTTP {response.status_code}"

        try:
            response.json()
        except ValueError:
            return "response is not JSON"
        return None
