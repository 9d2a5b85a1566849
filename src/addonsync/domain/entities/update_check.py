"""Update-check result entities."""

from dataclasses import dataclass


@dataclass(frozen=True)
class HealthResult:
    """Outcome of an origin reachability probe. Probes never raise - they return this."""

    is_online: bool
    error: str | None = None


@dataclass(frozen=True)
class UpdateCandidate:
    """Anything that can be update-checked: an installed addon or a library record."""

    addon_id: str
    name: str
    transport_url: str
    installed_version: str


@dataclass(frozen=True)
class UpdateCheckResult:
    """Per-addon update-check outcome."""

    addon_id: str
    name: str
    transport_url: str
    installed_version: str
    latest_version: str
    has_update: bool
    health: HealthResult
