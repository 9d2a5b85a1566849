"""Apply saved (library) addons to an account collection.

Merging only computes the new list - pushing it is the caller's job (usually
CollectionReconciler.update_addons), so a preview costs nothing but fetches.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace

from addonsync.domain.entities import Addon, SavedAddon
from addonsync.domain.exceptions import ManifestError
from addonsync.domain.ports import IManifestFetcher
from addonsync.domain.value_objects import are_urls_equivalent

logger = logging.getLogger(__name__)

MERGE_CONTEXT = "Library-Merge"
SKIP_REASON_FETCH_FAILED = "fetch-failed"


@dataclass(frozen=True)
class MergedAddon:
    addon_id: str
    name: str
    install_url: str


@dataclass(frozen=True)
class SkippedAddon:
    addon_id: str
    reason: str


@dataclass
class MergeResult:
    """What a merge did (or would do) per saved addon."""

    added: list[MergedAddon] = field(default_factory=list)
    updated: list[MergedAddon] = field(default_factory=list)
    skipped: list[SkippedAddon] = field(default_factory=list)
    protected: list[MergedAddon] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated)


@dataclass
class RemoveResult:
    addons: list[Addon]
    removed: list[str]
    protected: list[str]


class AddonMerger:
    """Merges library records into an account's collection.

    Hey future me - the URL is the identity here too, not the manifest id. A saved
    addon whose install_url already sits in the account refreshes that entry; any
    other saved addon is APPENDED, even if an addon with the same manifest id is
    installed with a different configuration. Additive on purpose.
    """

    def __init__(self, manifest_fetcher: IManifestFetcher, context: str = MERGE_CONTEXT) -> None:
        self._fetcher = manifest_fetcher
        self.context = context

    async def merge_addons(
        self, current: list[Addon], saved_addons: list[SavedAddon]
    ) -> tuple[list[Addon], MergeResult]:
        """Merge saved addons into `current`.

        Args:
            current: The account's collection (not modified)
            saved_addons: Library records to apply, in order

        Returns:
            Tuple of (new collection, merge report)
        """
        addons = [addon.clone() for addon in current]
        result = MergeResult()

        for saved in saved_addons:
            addon_id = saved.manifest.id
            index = next(
                (i for i, addon in enumerate(addons) if addon.transport_url == saved.install_url),
                None,
            )

            if index is not None:
                existing = addons[index]
                if existing.is_protected:
                    result.protected.append(
                        MergedAddon(addon_id, existing.manifest.name, existing.transport_url)
                    )
                    continue

                try:
                    fresh = await self._fetcher.fetch(saved.install_url, self.context)
                except ManifestError as e:
                    logger.warning(
                        "Update fetch failed for %s, keeping current entry: %s",
                        saved.name,
                        e.message,
                    )
                    result.skipped.append(SkippedAddon(addon_id, SKIP_REASON_FETCH_FAILED))
                    continue

                addons[index] = replace(
                    fresh,
                    flags=existing.flags.merged_with(fresh.flags),
                    metadata=copy.deepcopy(existing.metadata),
                )
                result.updated.append(
                    MergedAddon(addon_id, fresh.manifest.name, fresh.transport_url)
                )
                continue

            try:
                fresh = await self._fetcher.fetch(saved.install_url, self.context)
            except ManifestError as e:
                # The library keeps a cached manifest - good enough to install from.
                logger.warning(
                    "Fresh fetch failed for %s, using cached manifest: %s", saved.name, e.message
                )
                fresh = Addon(
                    transport_url=saved.install_url,
                    manifest=copy.deepcopy(saved.manifest),
                )

            addons.append(fresh)
            result.added.append(MergedAddon(addon_id, fresh.manifest.name, fresh.transport_url))

        logger.info(
            "Merged %d saved addons: %d added, %d updated, %d skipped, %d protected",
            len(saved_addons),
            len(result.added),
            len(result.updated),
            len(result.skipped),
            len(result.protected),
        )
        return addons, result

    async def preview_merge(
        self, current: list[Addon], saved_addons: list[SavedAddon]
    ) -> MergeResult:
        """Report what merge_addons() would do, without keeping the new list."""
        _, result = await self.merge_addons(current, saved_addons)
        return result


def remove_addons_by_id(current: list[Addon], addon_ids: list[str]) -> RemoveResult:
    """Remove every addon whose manifest id is listed. Protected ones are kept."""
    wanted = set(addon_ids)
    kept: list[Addon] = []
    removed: list[str] = []
    protected: list[str] = []

    for addon in current:
        if addon.manifest.id not in wanted:
            kept.append(addon)
        elif addon.is_protected:
            protected.append(addon.manifest.id)
            kept.append(addon)
        else:
            removed.append(addon.manifest.id)

    return RemoveResult(addons=kept, removed=removed, protected=protected)


def find_equivalent(addons: list[Addon], url: str) -> Addon | None:
    """Find an installed addon whose URL is equivalent to `url` (query order/case-insensitive)."""
    return next((addon for addon in addons if are_urls_equivalent(addon.transport_url, url)), None)
