"""Domain value objects."""

from addonsync.domain.value_objects.transport_url import (
    DEFAULT_MANIFEST_FILENAME,
    add_query_param,
    are_urls_equivalent,
    get_hostname,
    get_origin,
    matches_domain,
    normalize_transport_url,
    resolve_manifest_url,
)
from addonsync.domain.value_objects.version import Version, has_update, is_newer_version

__all__ = [
    "DEFAULT_MANIFEST_FILENAME",
    "Version",
    "add_query_param",
    "are_urls_equivalent",
    "get_hostname",
    "get_origin",
    "has_update",
    "is_newer_version",
    "matches_domain",
    "normalize_transport_url",
    "resolve_manifest_url",
]
