"""Tests for numeric version ordering."""

import pytest

from versioning.comparator import compare_versions, is_plain_version, max_version


class TestCompareVersions:
    """Component-wise comparison with implicit zeros."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("1.2.3", "1.2.3", 0),
            ("1.2", "1.2.0", 0),
            ("1.2.3", "1.2", 1),
            ("1.10.0", "1.9.9", 1),
            ("3.9.18", "3.12.0", -1),
            ("20", "20.0.1", -1),
        ],
    )
    def test_ordering(self, a, b, expected):
        result = compare_versions(a, b)
        assert (result > 0) - (result < 0) == expected

    def test_antisymmetric(self):
        assert compare_versions("1.23.10", "1.23.4") == -compare_versions("1.23.4", "1.23.10")

    def test_rejects_non_numeric(self):
        with pytest.raises(ValueError):
            compare_versions("1.2.x", "1.2.0")


class TestMaxVersion:
    def test_numeric_not_lexicographic(self):
        assert max_version({"1.23.0", "1.23.4", "1.23.10"}) == "1.23.10"

    def test_skips_prerelease_and_junk(self):
        assert max_version(["3.13.0rc1", "3.12.7", "latest", "3.12.10"]) == "3.12.10"

    def test_empty(self):
        assert max_version([]) is None


class TestIsPlainVersion:
    @pytest.mark.parametrize("value", ["1", "1.2", "1.2.3", "10.0.0.1"])
    def test_accepts(self, value):
        assert is_plain_version(value)

    @pytest.mark.parametrize("value", ["", "v1.2.3", "1.2.3-rc1", "1..2", "1.2.", "3.13.0a1"])
    def test_rejects(self, value):
        assert not is_plain_version(value)
