"""Application services - update checks, collection mutations, library merges."""

from addonsync.application.services.addon_health_service import (
    AddonHealthService,
    HealthSummary,
    get_health_summary,
)
from addonsync.application.services.addon_merger import (
    AddonMerger,
    MergedAddon,
    MergeResult,
    RemoveResult,
    SkippedAddon,
    find_equivalent,
    remove_addons_by_id,
)

# Hey future me - CollectionReconciler is the ONLY thing that writes to an
# account's collection. Everything else (merger, update checker) just computes.
from addonsync.application.services.collection_service import (
    CollectionReconciler,
    ReinstallResult,
    apply_overlay,
    prepare_for_push,
)
from addonsync.application.services.update_check_service import (
    UpdateBatchChecker,
    UpdateCheckFailure,
    UpdateCheckReport,
)

__all__ = [
    "AddonHealthService",
    "AddonMerger",
    "CollectionReconciler",
    "HealthSummary",
    "MergeResult",
    "MergedAddon",
    "ReinstallResult",
    "RemoveResult",
    "SkippedAddon",
    "UpdateBatchChecker",
    "UpdateCheckFailure",
    "UpdateCheckReport",
    "apply_overlay",
    "find_equivalent",
    "get_health_summary",
    "prepare_for_push",
    "remove_addons_by_id",
]
