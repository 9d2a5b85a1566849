"""Tests for addon entities (wire format mapping and sanitizing)."""

from addonsync.domain.entities import Addon, AddonFlags, AddonManifest, AddonMetadata


def _wire_addon() -> dict:
    return {
        "transportUrl": "https://addon.test/manifest.json",
        "transportName": "http",
        "manifest": {
            "id": "org.test.addon",
            "name": "Test Addon",
            "version": "1.0.0",
            "types": None,
            "catalogs": [{"type": "movie", "id": "top"}],
            "behaviorHints": {"configurable": True},
        },
        "flags": {"protected": True, "someFutureFlag": 1},
        "metadata": {"customName": "My Addon", "note": "keep me"},
    }


class TestAddonManifest:
    """Test manifest sanitizing."""

    def test_types_and_resources_default_to_empty(self):
        manifest = AddonManifest.from_dict({"id": "a", "name": "A", "version": "1"})
        assert manifest.types == []
        assert manifest.resources == []

    def test_null_types_become_empty(self):
        manifest = AddonManifest.from_dict({"id": "a", "name": "A", "version": "1", "types": None})
        assert manifest.types == []
        assert manifest.to_dict()["types"] == []

    def test_unknown_fields_survive_round_trip(self):
        raw = _wire_addon()["manifest"]
        data = AddonManifest.from_dict(raw).to_dict()
        assert data["catalogs"] == [{"type": "movie", "id": "top"}]
        assert data["behaviorHints"] == {"configurable": True}

    def test_optional_fields_omitted_when_unset(self):
        data = AddonManifest(id="a", name="A", version="1").to_dict()
        assert "description" not in data
        assert "logo" not in data


class TestAddon:
    """Test the addon descriptor mapping."""

    def test_from_dict_maps_camel_case(self):
        addon = Addon.from_dict(_wire_addon())
        assert addon.transport_url == "https://addon.test/manifest.json"
        assert addon.manifest.id == "org.test.addon"
        assert addon.is_protected is True
        assert addon.metadata.custom_name == "My Addon"
        assert addon.extra == {"transportName": "http"}

    def test_to_dict_keeps_unknown_keys(self):
        data = Addon.from_dict(_wire_addon()).to_dict()
        assert data["transportName"] == "http"
        assert data["flags"] == {"protected": True, "someFutureFlag": 1}
        assert data["metadata"] == {"customName": "My Addon", "note": "keep me"}
        assert data["manifest"]["types"] == []

    def test_enabled_only_false_when_explicit(self):
        addon = Addon.from_dict(_wire_addon())
        assert addon.is_enabled is True
        addon.flags.enabled = False
        assert addon.is_enabled is False

    def test_clone_is_deep(self):
        addon = Addon.from_dict(_wire_addon())
        clone = addon.clone()
        clone.manifest.name = "Changed"
        clone.flags.protected = False
        assert addon.manifest.name == "Test Addon"
        assert addon.is_protected is True


class TestAddonFlags:
    def test_fresh_values_win(self):
        existing = AddonFlags(enabled=False, protected=True)
        fresh = AddonFlags(enabled=True)
        merged = existing.merged_with(fresh)
        assert merged.enabled is True
        assert merged.protected is True

    def test_unset_fresh_values_keep_existing(self):
        merged = AddonFlags(protected=True).merged_with(AddonFlags())
        assert merged.protected is True
        assert merged.enabled is None


class TestAddonMetadata:
    def test_has_overlay(self):
        assert AddonMetadata(custom_logo="https://img.test/x.png").has_overlay is True
        assert AddonMetadata().has_overlay is False
        assert AddonMetadata(custom_name="").has_overlay is False
