"""Tests for the bulk health refresh of saved addons."""

from datetime import UTC, datetime

from addonsync.application.services.addon_health_service import (
    AddonHealthService,
    get_health_summary,
)
from addonsync.config import HealthSettings
from addonsync.domain.entities import AddonHealth, AddonManifest, HealthResult, SavedAddon
from addonsync.domain.ports import IHealthProbe

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


class FakeProbe(IHealthProbe):
    def __init__(self, offline: set[str]) -> None:
        self.offline = offline
        self.calls: list[str] = []

    async def check(self, url):
        self.calls.append(url)
        return HealthResult(is_online=url not in self.offline)


def make_saved(index: int, health: AddonHealth | None = None) -> SavedAddon:
    return SavedAddon(
        id=f"saved-{index}",
        name=f"Saved {index}",
        install_url=f"https://host{index}.test/manifest.json",
        manifest=AddonManifest(id=f"a{index}", name="A", version="1.0.0"),
        health=health,
    )


class TestCheckAllAddonsHealth:
    """Test batched probing and progress reporting."""

    async def test_health_is_set_on_copies(self):
        probe = FakeProbe(offline={"https://host1.test/manifest.json"})
        service = AddonHealthService(probe, HealthSettings(concurrency_limit=5), clock=lambda: NOW)
        saved = [make_saved(0), make_saved(1)]

        checked = await service.check_all_addons_health(saved)

        assert [s.health.is_online for s in checked] == [True, False]
        assert checked[0].health.last_checked == NOW
        assert saved[0].health is None

    async def test_progress_after_every_batch(self):
        probe = FakeProbe(offline=set())
        service = AddonHealthService(probe, HealthSettings(concurrency_limit=5), clock=lambda: NOW)
        progress: list[tuple[int, int]] = []

        checked = await service.check_all_addons_health(
            [make_saved(i) for i in range(12)],
            on_progress=lambda done, total: progress.append((done, total)),
        )

        assert len(checked) == 12
        assert progress == [(5, 12), (10, 12), (12, 12)]
        assert len(probe.calls) == 12


class TestHealthSummary:
    def test_counts(self):
        saved = [
            make_saved(0, AddonHealth(is_online=True, last_checked=NOW)),
            make_saved(1, AddonHealth(is_online=False, last_checked=NOW)),
            make_saved(2, AddonHealth(is_online=True, last_checked=NOW)),
            make_saved(3),
        ]

        summary = get_health_summary(saved)

        assert (summary.online, summary.offline, summary.unchecked) == (2, 1, 1)
