"""Domain entities."""

from addonsync.domain.entities.addon import (
    Addon,
    AddonFlags,
    AddonHealth,
    AddonManifest,
    AddonMetadata,
    SavedAddon,
)
from addonsync.domain.entities.update_check import (
    HealthResult,
    UpdateCandidate,
    UpdateCheckResult,
)

__all__ = [
    "Addon",
    "AddonFlags",
    "AddonHealth",
    "AddonManifest",
    "AddonMetadata",
    "HealthResult",
    "SavedAddon",
    "UpdateCandidate",
    "UpdateCheckResult",
]
