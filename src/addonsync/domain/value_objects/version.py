"""Version ordering for update detection.

Hey future me - we NEVER compare versions as strings! "1.10.0" != "1.2.0" says
nothing about which one is newer, and "v1.2" vs "1.2.0" are the same release.
Addon authors mostly use semver-ish strings, so the order here is:

- optional leading "v"
- dot-separated numeric core, missing segments count as 0 (1.2 == 1.2.0)
- optional "-prerelease": sorts BEFORE the plain release (1.0.0-beta < 1.0.0);
  identifiers compare numerically when both are numbers, otherwise lexically,
  and numbers sort before words
- "+build" metadata is ignored

Anything else ("latest", "2024-beta.x!", "") is malformed and never produces an
update - we'd rather miss an update than nag about a bogus one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

_VERSION_RE = re.compile(
    r"^[vV]?(?P<core>\d+(?:\.\d+)*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)


@total_ordering
@dataclass(frozen=True)
class Version:
    """Parsed, totally ordered version."""

    core: tuple[int, ...]
    prerelease: tuple[str, ...] = ()

    @classmethod
    def parse(cls, raw: str | None) -> Version | None:
        """Parse a version string, returning None when it is malformed."""
        if raw is None:
            return None
        match = _VERSION_RE.match(raw.strip())
        if match is None:
            return None

        core = [int(part) for part in match.group("core").split(".")]
        # Trailing zeros carry no ordering information: 1.2.0 == 1.2
        while len(core) > 1 and core[-1] == 0:
            core.pop()

        pre = match.group("pre")
        return cls(core=tuple(core), prerelease=tuple(pre.split(".")) if pre else ())

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def _key(self) -> tuple:
        # A release (1,) outranks any pre-release (0, ...) of the same core.
        if not self.prerelease:
            return (self.core, (1,))
        pre_key = tuple(
            (0, int(ident), "") if ident.isdigit() else (1, 0, ident)
            for ident in self.prerelease
        )
        return (self.core, (0, pre_key))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


def is_newer_version(latest: str | None, installed: str | None) -> bool:
    """Check whether `latest` is strictly newer than `installed`."""
    latest_v = Version.parse(latest)
    installed_v = Version.parse(installed)
    if latest_v is None or installed_v is None:
        return False
    return latest_v > installed_v


def has_update(installed_version: str | None, latest_version: str | None) -> bool:
    """Update available? Downgrades and malformed versions are never updates.

    Example:
        has_update("1.2.0", "1.10.0")  # True
        has_update("1.10.0", "1.2.0")  # False
    """
    return is_newer_version(latest_version, installed_version)
