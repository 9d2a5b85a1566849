"""Bulk health refresh for saved (library) addons."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from itertools import batched

from addonsync.config import HealthSettings, get_settings
from addonsync.domain.entities import AddonHealth, SavedAddon
from addonsync.domain.ports import IHealthProbe

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class HealthSummary:
    online: int
    offline: int
    unchecked: int


class AddonHealthService:
    """Refreshes the health badge of library records.

    Unlike the update checker this does NOT go through the coalescer: the user
    asked for a fresh answer, so every record is probed.
    """

    def __init__(
        self,
        health_probe: IHealthProbe,
        settings: HealthSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._probe = health_probe
        self.settings = settings or get_settings().health
        self._clock = clock or (lambda: datetime.now(UTC))

    async def check_addon_health(self, saved: SavedAddon) -> SavedAddon:
        """Probe one saved addon and return a copy with fresh health."""
        result = await self._probe.check(saved.install_url)
        return replace(
            saved.clone(),
            health=AddonHealth(is_online=result.is_online, last_checked=self._clock()),
        )

    async def check_all_addons_health(
        self,
        saved_addons: list[SavedAddon],
        on_progress: ProgressCallback | None = None,
    ) -> list[SavedAddon]:
        """Probe saved addons, concurrency_limit at a time.

        Args:
            saved_addons: Records to check (not modified)
            on_progress: Called with (completed, total) after every batch

        Returns:
            Copies of the records with health set, in input order
        """
        total = len(saved_addons)
        checked: list[SavedAddon] = []

        for batch in batched(saved_addons, self.settings.concurrency_limit):
            checked.extend(
                await asyncio.gather(*(self.check_addon_health(saved) for saved in batch))
            )
            if on_progress is not None:
                on_progress(len(checked), total)

        summary = get_health_summary(checked)
        logger.info(
            "Health check complete: %d online, %d offline", summary.online, summary.offline
        )
        return checked


def get_health_summary(saved_addons: list[SavedAddon]) -> HealthSummary:
    """Count online / offline / never-checked records."""
    online = offline = unchecked = 0
    for saved in saved_addons:
        if saved.health is None:
            unchecked += 1
        elif saved.health.is_online:
            online += 1
        else:
            offline += 1
    return HealthSummary(online=online, offline=offline, unchecked=unchecked)
