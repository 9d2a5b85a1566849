"""Batch update checker - which addons have a newer manifest version?

Hey future me - this runs for tens to hundreds of addons at once (every addon of
every account when the user hits "check updates"). Three things keep it from
melting the relay and the addon servers:

1. Fixed-size batches. Batch N+1 starts only after every member of batch N has
   settled, so at most batch_size checks are in flight. (A sliding window would
   also be fine - this is a throttle, not a correctness rule.)
2. Health gate per ORIGIN. Each origin is probed once; an origin confirmed online
   in this run is not probed again, and an offline origin means we don't even try
   the manifest fetch.
3. Request coalescing across runs. Health goes through the origin-keyed
   coalescer, manifests through the URL-keyed one, so overlapping runs (several
   accounts checked at once) share the network round trips.

One addon failing (offline, 404, garbage manifest) NEVER fails the batch - it is
logged, recorded in the report and left out of the results.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from itertools import batched
from typing import Any

from addonsync.application.cache import (
    RequestCoalescer,
    get_health_coalescer,
    get_manifest_coalescer,
)
from addonsync.config import UpdateCheckSettings, get_settings
from addonsync.domain.entities import (
    Addon,
    HealthResult,
    SavedAddon,
    UpdateCandidate,
    UpdateCheckResult,
)
from addonsync.domain.exceptions import AddonOfflineError, AddonSyncError
from addonsync.domain.ports import IHealthProbe, IManifestFetcher
from addonsync.domain.value_objects import get_origin, has_update
from addonsync.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)


@dataclass
class UpdateCheckFailure:
    """An addon that could not be checked, and why."""

    candidate: UpdateCandidate
    error: Exception

    @property
    def message(self) -> str:
        return getattr(self.error, "message", None) or str(self.error)


@dataclass
class UpdateCheckReport:
    """Outcome of one update-check run."""

    results: list[UpdateCheckResult] = field(default_factory=list)
    failures: list[UpdateCheckFailure] = field(default_factory=list)
    batches: int = 0

    @property
    def updates_available(self) -> list[UpdateCheckResult]:
        return [result for result in self.results if result.has_update]


class UpdateBatchChecker:
    """Checks addons for newer versions in bounded-concurrency batches.

    Usage:
        checker = UpdateBatchChecker(
            manifest_fetcher=ManifestFetcher(),
            health_probe=OriginHealthProbe(),
        )
        results = await checker.check_updates(addons)
    """

    def __init__(
        self,
        manifest_fetcher: IManifestFetcher,
        health_probe: IHealthProbe,
        health_coalescer: RequestCoalescer[Any] | None = None,
        manifest_coalescer: RequestCoalescer[Any] | None = None,
        settings: UpdateCheckSettings | None = None,
    ) -> None:
        """Initialize checker.

        Args:
            manifest_fetcher: Fetches the latest manifests
            health_probe: Origin reachability gate
            health_coalescer: Origin-keyed coalescer (default: process-wide one)
            manifest_coalescer: URL-keyed coalescer (default: process-wide one)
            settings: Batch size and default contexts
        """
        self._fetcher = manifest_fetcher
        self._health_probe = health_probe
        self._health_coalescer = (
            health_coalescer if health_coalescer is not None else get_health_coalescer()
        )
        self._manifest_coalescer = (
            manifest_coalescer if manifest_coalescer is not None else get_manifest_coalescer()
        )
        self.settings = settings or get_settings().update_check

    async def check_updates(
        self, addons: list[Addon], context: str | None = None
    ) -> list[UpdateCheckResult]:
        """Check installed addons for updates.

        Official addons are skipped up front; protected addons ARE checked.

        Returns:
            Results of every addon that could be checked, in batch order
        """
        report = await self.run_update_check(addons, context)
        return report.results

    async def run_update_check(
        self, addons: list[Addon], context: str | None = None
    ) -> UpdateCheckReport:
        """Like check_updates(), but also returns the per-addon failures."""
        candidates = [
            UpdateCandidate(
                addon_id=addon.manifest.id,
                name=addon.manifest.name,
                transport_url=addon.transport_url,
                installed_version=addon.manifest.version,
            )
            for addon in addons
            if not addon.is_official
        ]
        skipped = len(addons) - len(candidates)
        if skipped:
            logger.debug("Skipping %d official addons", skipped)
        return await self._check_candidates(candidates, context or self.settings.account_context)

    async def check_saved_addon_updates(
        self, saved_addons: list[SavedAddon], context: str | None = None
    ) -> list[UpdateCheckResult]:
        """Check library records (saved addons) for updates.

        Results carry the library record's id and name, not the manifest's.
        """
        candidates = [
            UpdateCandidate(
                addon_id=saved.id,
                name=saved.name,
                transport_url=saved.install_url,
                installed_version=saved.manifest.version,
            )
            for saved in saved_addons
        ]
        report = await self._check_candidates(
            candidates, context or self.settings.library_context
        )
        return report.results

    async def _check_candidates(
        self, candidates: list[UpdateCandidate], context: str
    ) -> UpdateCheckReport:
        correlation_id = set_correlation_id()
        batch_size = self.settings.batch_size
        logger.info(
            "Update check started: %d addons in batches of %d (context=%s, run=%s)",
            len(candidates),
            batch_size,
            context,
            correlation_id,
        )

        report = UpdateCheckReport()
        # Per-run health cache: origins already confirmed online in THIS run.
        online_origins: set[str] = set()

        for batch in batched(candidates, batch_size):
            report.batches += 1
            outcomes = await asyncio.gather(
                *(self._check_one(candidate, context, online_origins) for candidate in batch)
            )
            for candidate, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, UpdateCheckResult):
                    report.results.append(outcome)
                else:
                    report.failures.append(UpdateCheckFailure(candidate=candidate, error=outcome))

        logger.info(
            "Update check complete: %d checked, %d failed, %d updates available",
            len(report.results),
            len(report.failures),
            len(report.updates_available),
        )
        return report

    # Listen, this wrapper is the "one addon never kills the batch" guarantee.
    # It returns the exception instead of raising so gather() always gets a value.
    async def _check_one(
        self, candidate: UpdateCandidate, context: str, online_origins: set[str]
    ) -> UpdateCheckResult | Exception:
        try:
            return await self._check_candidate(candidate, context, online_origins)
        except AddonSyncError as e:
            logger.warning("Failed to check %s: %s", candidate.name, e.message)
            return e
        except Exception as e:
            logger.exception("Unexpected error checking %s", candidate.name)
            return e

    async def _check_candidate(
        self, candidate: UpdateCandidate, context: str, online_origins: set[str]
    ) -> UpdateCheckResult:
        origin = get_origin(candidate.transport_url)

        if origin in online_origins:
            health = HealthResult(is_online=True)
        else:
            health = await self._health_coalescer.run(
                origin,
                lambda: self._health_probe.check(candidate.transport_url),
                keep=lambda result: result.is_online,
            )
            if health.is_online:
                online_origins.add(origin)

        if not health.is_online:
            raise AddonOfflineError(candidate.transport_url, health.error)

        latest = await self._manifest_coalescer.run(
            candidate.transport_url,
            lambda: self._fetcher.fetch(candidate.transport_url, context),
        )
        latest_version = latest.manifest.version

        return UpdateCheckResult(
            addon_id=candidate.addon_id,
            name=candidate.name,
            transport_url=candidate.transport_url,
            installed_version=candidate.installed_version,
            latest_version=latest_version,
            has_update=has_update(candidate.installed_version, latest_version),
            health=health,
        )
