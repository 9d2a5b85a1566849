"""Addon entities.

Hey future me - these mirror the account provider's addon descriptor, but with
snake_case attributes. The wire format is camelCase (transportUrl, customName...),
so ALWAYS go through from_dict()/to_dict() at the boundary. Unknown keys are kept
in `extra` and written back untouched - the remote manifest carries lots of fields
we never look at (catalogs, behaviorHints, idPrefixes...) and dropping them would
break the addon in the client app.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

_MANIFEST_FIELDS = ("id", "name", "version", "description", "logo", "types", "resources")


@dataclass
class AddonManifest:
    """Addon manifest as served by the addon itself."""

    id: str
    name: str
    version: str
    description: str | None = None
    logo: str | None = None
    types: list[str] = field(default_factory=list)
    resources: list[Any] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    # Listen up, types/resources default to [] EVEN IF the server sent null. The
    # collection store rejects manifests without them ("missing field types"), so
    # every manifest we construct is sanitized here. Not optional!
    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AddonManifest:
        """Build a sanitized manifest from a raw payload."""
        data = data or {}
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            version=str(data.get("version") or ""),
            description=data.get("description"),
            logo=data.get("logo"),
            types=list(data.get("types") or []),
            resources=list(data.get("resources") or []),
            extra={
                key: copy.deepcopy(value)
                for key, value in data.items()
                if key not in _MANIFEST_FIELDS
            },
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        data: dict[str, Any] = copy.deepcopy(self.extra)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "version": self.version,
                "types": list(self.types),
                "resources": copy.deepcopy(self.resources),
            }
        )
        if self.description is not None:
            data["description"] = self.description
        if self.logo is not None:
            data["logo"] = self.logo
        return data


@dataclass
class AddonFlags:
    """Per-instance flags. None means "not set" (distinct from False)."""

    enabled: bool | None = None
    protected: bool | None = None
    official: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AddonFlags:
        data = data or {}
        return cls(
            enabled=data.get("enabled"),
            protected=data.get("protected"),
            official=data.get("official"),
            extra={
                k: copy.deepcopy(v)
                for k, v in data.items()
                if k not in ("enabled", "protected", "official")
            },
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = copy.deepcopy(self.extra)
        for key in ("enabled", "protected", "official"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    def merged_with(self, fresh: AddonFlags) -> AddonFlags:
        """Return a copy where every flag set on `fresh` wins over ours."""
        return AddonFlags(
            enabled=fresh.enabled if fresh.enabled is not None else self.enabled,
            protected=fresh.protected if fresh.protected is not None else self.protected,
            official=fresh.official if fresh.official is not None else self.official,
            extra={**copy.deepcopy(self.extra), **copy.deepcopy(fresh.extra)},
        )


@dataclass
class AddonMetadata:
    """Local customization overlay. Never pushed as-is - see apply_overlay()."""

    custom_name: str | None = None
    custom_description: str | None = None
    custom_logo: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    _WIRE_KEYS = {
        "customName": "custom_name",
        "customDescription": "custom_description",
        "customLogo": "custom_logo",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AddonMetadata:
        data = data or {}
        return cls(
            custom_name=data.get("customName"),
            custom_description=data.get("customDescription"),
            custom_logo=data.get("customLogo"),
            extra={
                k: copy.deepcopy(v) for k, v in data.items() if k not in cls._WIRE_KEYS
            },
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = copy.deepcopy(self.extra)
        for wire_key, attr in self._WIRE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[wire_key] = value
        return data

    @property
    def has_overlay(self) -> bool:
        """True if any overlay field is set (empty strings count as unset)."""
        return bool(self.custom_name or self.custom_description or self.custom_logo)


@dataclass
class Addon:
    """One installed (or installable) addon instance.

    Identity is transport_url, NOT manifest.id! The same addon can be installed
    several times with different configurations baked into the URL.
    """

    transport_url: str
    manifest: AddonManifest
    flags: AddonFlags = field(default_factory=AddonFlags)
    metadata: AddonMetadata = field(default_factory=AddonMetadata)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Addon:
        """Build an addon from a collection store entry."""
        return cls(
            transport_url=str(data.get("transportUrl") or ""),
            manifest=AddonManifest.from_dict(data.get("manifest")),
            flags=AddonFlags.from_dict(data.get("flags")),
            metadata=AddonMetadata.from_dict(data.get("metadata")),
            extra={
                k: copy.deepcopy(v)
                for k, v in data.items()
                if k not in ("transportUrl", "manifest", "flags", "metadata")
            },
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = copy.deepcopy(self.extra)
        data["transportUrl"] = self.transport_url
        data["manifest"] = self.manifest.to_dict()
        flags = self.flags.to_dict()
        if flags:
            data["flags"] = flags
        metadata = self.metadata.to_dict()
        if metadata:
            data["metadata"] = metadata
        return data

    @property
    def is_enabled(self) -> bool:
        """Only an explicit enabled=False hides the addon."""
        return self.flags.enabled is not False

    @property
    def is_protected(self) -> bool:
        return self.flags.protected is True

    @property
    def is_official(self) -> bool:
        return self.flags.official is True

    def clone(self) -> Addon:
        return copy.deepcopy(self)


@dataclass
class AddonHealth:
    """Last known reachability of a saved addon."""

    is_online: bool
    last_checked: datetime


@dataclass
class SavedAddon:
    """A library record - an addon URL + cached manifest kept outside any account."""

    id: str
    name: str
    install_url: str
    manifest: AddonManifest
    tags: list[str] = field(default_factory=list)
    metadata: AddonMetadata = field(default_factory=AddonMetadata)
    health: AddonHealth | None = None

    def clone(self) -> SavedAddon:
        return copy.deepcopy(self)
