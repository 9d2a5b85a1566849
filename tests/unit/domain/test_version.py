"""Tests for version ordering."""

import pytest

from addonsync.domain.value_objects.version import Version, has_update, is_newer_version


class TestVersionParse:
    """Test version string parsing."""

    def test_parses_plain_semver(self):
        assert Version.parse("1.2.3") == Version(core=(1, 2, 3))

    def test_strips_leading_v(self):
        assert Version.parse("v2.0.1") == Version.parse("2.0.1")

    def test_trailing_zero_segments_are_equal(self):
        """1.2 and 1.2.0 are the same release."""
        assert Version.parse("1.2") == Version.parse("1.2.0")
        assert Version.parse("3") == Version.parse("3.0.0.0")

    def test_build_metadata_is_ignored(self):
        assert Version.parse("1.0.0+build.7") == Version.parse("1.0.0")

    def test_prerelease_is_parsed(self):
        version = Version.parse("1.0.0-beta.2")
        assert version is not None
        assert version.is_prerelease
        assert version.prerelease == ("beta", "2")

    @pytest.mark.parametrize("raw", ["", "latest", "1..2", "1.2.x", "v", None, "1.0.0-"])
    def test_malformed_returns_none(self, raw):
        assert Version.parse(raw) is None


class TestVersionOrdering:
    """Test the total order over versions."""

    def test_numeric_segments_compare_numerically(self):
        assert Version.parse("1.10.0") > Version.parse("1.2.0")

    def test_prerelease_sorts_before_release(self):
        assert Version.parse("1.0.0-rc.1") < Version.parse("1.0.0")

    def test_prerelease_identifiers(self):
        assert Version.parse("1.0.0-alpha") < Version.parse("1.0.0-beta")
        assert Version.parse("1.0.0-beta.2") < Version.parse("1.0.0-beta.11")
        # numeric identifiers sort before alphanumeric ones
        assert Version.parse("1.0.0-1") < Version.parse("1.0.0-alpha")

    def test_sorting(self):
        raw = ["2.0.0", "1.0.0-beta", "1.10.0", "1.0.0", "1.2.0"]
        ordered = sorted(raw, key=Version.parse)
        assert ordered == ["1.0.0-beta", "1.0.0", "1.2.0", "1.10.0", "2.0.0"]


class TestHasUpdate:
    """Test update detection."""

    def test_newer_minor_is_update(self):
        assert has_update("1.2.0", "1.10.0") is True

    def test_downgrade_is_not_update(self):
        assert has_update("1.10.0", "1.2.0") is False

    def test_same_version_is_not_update(self):
        assert has_update("2.0.0", "2.0.0") is False

    def test_differently_formatted_same_version(self):
        assert has_update("v1.2", "1.2.0") is False

    def test_release_after_prerelease_is_update(self):
        assert has_update("1.0.0-beta", "1.0.0") is True

    def test_malformed_is_never_an_update(self):
        assert has_update("1.0.0", "latest") is False
        assert has_update("unknown", "2.0.0") is False

    def test_is_newer_version_argument_order(self):
        assert is_newer_version("1.1.0", "1.0.0") is True
        assert is_newer_version("1.0.0", "1.1.0") is False
