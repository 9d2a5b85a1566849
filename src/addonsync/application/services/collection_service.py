"""Collection reconciler - install / reinstall / remove against the account.

Hey future me - every mutation here follows the same shape:

    read remote collection -> change a COPY -> push the whole list back

The collection store only has get/set (no per-addon endpoints), so we always
push the complete collection. Two rules you must not break:

1. Local overlays (customName/customLogo/customDescription) are applied to COPIES
   right before pushing. The local manifest is never rewritten with them.
2. reinstall_addon() fetches the fresh manifest BEFORE touching anything. If the
   addon server is down we abort and the account stays exactly as it was. Never
   "remove first, add later" - that's how users lose addons for good.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, replace

from addonsync.domain.entities import Addon, AddonManifest, AddonMetadata
from addonsync.domain.exceptions import ManifestError, ProtectedAddonError, ReinstallAbortedError
from addonsync.domain.ports import ICollectionStore, IManifestFetcher, Session
from addonsync.domain.value_objects import normalize_transport_url

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT = "Unknown"


def apply_overlay(manifest: AddonManifest, metadata: AddonMetadata | None) -> AddonManifest:
    """Return a copy of `manifest` with the local overlay applied.

    Overlay fields that are unset (None or "") fall back to the manifest's own
    name/logo/description. The input manifest is never modified.
    """
    result = copy.deepcopy(manifest)
    if metadata is None or not metadata.has_overlay:
        return result
    return replace(
        result,
        name=metadata.custom_name or manifest.name,
        logo=metadata.custom_logo or manifest.logo,
        description=metadata.custom_description or manifest.description,
    )


def prepare_for_push(addons: list[Addon]) -> list[Addon]:
    """Build the list the collection store will see.

    Hidden addons (enabled=False) are dropped, overlays are baked into copies.
    """
    prepared: list[Addon] = []
    for addon in addons:
        if not addon.is_enabled:
            continue
        pushed = addon.clone()
        if addon.metadata.has_overlay:
            pushed.manifest = apply_overlay(addon.manifest, addon.metadata)
        prepared.append(pushed)
    return prepared


@dataclass
class ReinstallResult:
    """Outcome of reinstall_addon()."""

    addons: list[Addon]
    """Collection after the reinstall (unchanged if the addon wasn't installed)."""

    updated_addon: Addon
    """The freshly fetched addon."""

    previous_version: str | None
    """Installed version before the reinstall, None if the addon wasn't found."""

    new_version: str

    @property
    def was_installed(self) -> bool:
        return self.previous_version is not None


class CollectionReconciler:
    """Applies addon mutations to an account's remote collection.

    Usage:
        reconciler = CollectionReconciler(
            collection_store=StremioClient(),
            manifest_fetcher=ManifestFetcher(),
        )
        addons = await reconciler.install_addon(session, "https://x.test/manifest.json")
    """

    def __init__(
        self,
        collection_store: ICollectionStore,
        manifest_fetcher: IManifestFetcher,
        context: str = DEFAULT_CONTEXT,
    ) -> None:
        """Initialize reconciler.

        Args:
            collection_store: Remote collection get/set
            manifest_fetcher: Fetches fresh manifests for install/reinstall
            context: Account context string sent along for relay logging
        """
        self._store = collection_store
        self._fetcher = manifest_fetcher
        self.context = context

    async def get_addons(self, session: Session) -> list[Addon]:
        """Read the account's addon collection."""
        return await self._store.get(session.auth_key, self.context)

    async def update_addons(self, session: Session, addons: list[Addon]) -> None:
        """Push a collection, dropping hidden addons and applying overlays first."""
        prepared = prepare_for_push(addons)
        hidden = len(addons) - len(prepared)
        if hidden:
            logger.debug("Not pushing %d disabled addons", hidden)
        await self._store.set(session.auth_key, prepared, self.context)

    async def install_addon(self, session: Session, url: str) -> list[Addon]:
        """Install an addon, or refresh it in place if the URL is already installed.

        Raises:
            ManifestError: The manifest could not be fetched (nothing was pushed)

        Returns:
            The pushed collection (local view, overlays not applied)
        """
        fresh = await self._fetcher.fetch(url, self.context)
        addons = await self.get_addons(session)

        index = self._find_exact(addons, fresh.transport_url)
        if index is None:
            addons.append(fresh)
            logger.info("Installing addon %s (%s)", fresh.manifest.name, fresh.transport_url)
        else:
            # Same instance already installed: keep the user's flags, overlay and
            # unknown wire keys. Everything else comes from the fresh fetch.
            existing = addons[index]
            addons[index] = replace(
                fresh,
                flags=existing.flags.merged_with(fresh.flags),
                metadata=copy.deepcopy(existing.metadata),
                extra=copy.deepcopy(existing.extra),
            )
            logger.info(
                "Addon %s already installed, replaced in place at position %d",
                fresh.manifest.name,
                index,
            )

        await self.update_addons(session, addons)
        return addons

    async def remove_addon(self, session: Session, transport_url: str) -> list[Addon]:
        """Remove an addon by transport URL.

        Raises:
            ProtectedAddonError: The addon is protected (nothing was pushed)
        """
        addons = await self.get_addons(session)

        index = self._find_exact(addons, transport_url)
        if index is not None and addons[index].is_protected:
            raise ProtectedAddonError(addons[index].manifest.name, transport_url)

        remaining = [addon for addon in addons if addon.transport_url != transport_url]
        if index is None:
            logger.warning("Remove requested for addon not in collection: %s", transport_url)
        else:
            logger.info("Removing addon %s", addons[index].manifest.name)

        await self.update_addons(session, remaining)
        return remaining

    async def reinstall_addon(self, session: Session, transport_url: str) -> ReinstallResult:
        """Refetch an addon's manifest and swap it into the collection.

        Order is fetch -> read -> mutate copy -> push. A failed fetch aborts
        before the collection is even read.

        Raises:
            ReinstallAbortedError: Fresh manifest could not be fetched

        Returns:
            ReinstallResult (collection untouched when the addon isn't installed)
        """
        try:
            fresh = await self._fetcher.fetch(transport_url, self.context)
        except ManifestError as e:
            logger.warning("Reinstall of %s aborted: %s", transport_url, e.message)
            raise ReinstallAbortedError(transport_url, e.message) from e

        addons = await self.get_addons(session)
        index = self._find_normalized(addons, transport_url)

        if index is None:
            logger.info(
                "Addon %s not in remote collection, returning fresh manifest only",
                transport_url,
            )
            return ReinstallResult(
                addons=addons,
                updated_addon=fresh,
                previous_version=None,
                new_version=fresh.manifest.version,
            )

        existing = addons[index]
        updated = addons.copy()
        updated[index] = replace(
            existing.clone(),
            transport_url=fresh.transport_url,
            manifest=copy.deepcopy(fresh.manifest),
            flags=existing.flags.merged_with(fresh.flags),
        )

        await self.update_addons(session, updated)
        logger.info(
            "Reinstalled %s: %s -> %s",
            fresh.manifest.name,
            existing.manifest.version,
            fresh.manifest.version,
        )
        return ReinstallResult(
            addons=updated,
            updated_addon=fresh,
            previous_version=existing.manifest.version,
            new_version=fresh.manifest.version,
        )

    @staticmethod
    def _find_exact(addons: list[Addon], transport_url: str) -> int | None:
        for index, addon in enumerate(addons):
            if addon.transport_url == transport_url:
                return index
        return None

    @staticmethod
    def _find_normalized(addons: list[Addon], transport_url: str) -> int | None:
        wanted = normalize_transport_url(transport_url)
        for index, addon in enumerate(addons):
            if normalize_transport_url(addon.transport_url) == wanted:
                return index
        return None
