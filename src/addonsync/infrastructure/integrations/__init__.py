"""External service integrations."""

from addonsync.infrastructure.integrations.http_pool import HttpClientPool
from addonsync.infrastructure.integrations.manifest_fetcher import ManifestFetcher
from addonsync.infrastructure.integrations.stremio_client import StremioClient

__all__ = ["HttpClientPool", "ManifestFetcher", "StremioClient"]
