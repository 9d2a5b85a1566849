"""Transport URL helpers (manifest URL resolution, origins, identity matching)."""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_MANIFEST_FILENAME = "manifest.json"


def resolve_manifest_url(
    transport_url: str, manifest_filename: str = DEFAULT_MANIFEST_FILENAME
) -> str:
    """Turn a transport URL into the URL of its manifest.

    URLs that already point at the manifest (with or without a query string) are
    used as-is; otherwise the filename is appended, respecting a trailing slash.
    """
    suffix = f"/{manifest_filename}"
    if transport_url.endswith(suffix) or f"{suffix}?" in transport_url:
        return transport_url
    if transport_url.endswith("/"):
        return f"{transport_url}{manifest_filename}"
    return f"{transport_url}{suffix}"


def add_query_param(url: str, name: str, value: str | int) -> str:
    """Append one query parameter without touching the existing query string."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{name}={value}"


def get_origin(url: str) -> str:
    """Return scheme://host[:port] of a URL, lower-cased.

    Raises:
        ValueError: If the URL has no scheme or host
    """
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Not an absolute URL: {url!r}")
    return f"{parts.scheme}://{parts.netloc}".lower()


def get_hostname(url: str) -> str:
    return (urlsplit(url.strip()).hostname or "").lower()


def matches_domain(url: str, domains: list[str]) -> bool:
    """True if the URL's host is one of `domains` or a subdomain of one."""
    host = get_hostname(url)
    if not host:
        return False
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


# Hey future me, accounts sometimes store "HTTPS://Addon.example/abc/" while the
# caller now passes "https://addon.example/abc". Same addon! This normalization is
# ONLY for identity matching - never write the normalized string back anywhere,
# the config part of a transport URL can be case-sensitive.
def normalize_transport_url(url: str) -> str:
    """Case- and trailing-slash-insensitive identity key for a transport URL."""
    return url.strip().lower().rstrip("/")


def are_urls_equivalent(url1: str, url2: str) -> bool:
    """Compare two addon URLs ignoring query parameter order, case and trailing slash."""
    return _canonical(url1) == _canonical(url2)


def _canonical(url: str) -> str:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return normalize_transport_url(url)
    if not parts.scheme or not parts.netloc:
        return normalize_transport_url(url)
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    path = parts.path or "/"
    return urlunsplit((parts.scheme, parts.netloc, path, query, parts.fragment)).lower().rstrip("/")
