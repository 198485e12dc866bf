"""Tests for idlist.versions module."""
from __future__ import annotations

import pytest

from idlist.versions import VersionRange, compare_versions, version_in_range


class TestCompareVersions:
    """Tests for compare_versions()."""

    @pytest.mark.parametrize(
        "a,b,sign",
        [
            ("1.18.10.21", "1.18.10.21", 0),
            ("1.18.2.3", "1.18.10.0", -1),
            ("1.19.0.0", "1.18.99.99", 1),
            ("1.18", "1.18.0", -1),
            ("1.18.0.21", "*", -1),
            ("1.18.*", "1.18.999", 1),
            ("1.x.0", "1.0.0", -1),
        ],
    )
    def test_ordering(self, a: str, b: str, sign: int):
        result = compare_versions(a, b)
        assert (result > 0) - (result < 0) == sign


class TestVersionInRange:
    """Tests for version ranges."""

    def test_inclusive_bounds(self):
        assert version_in_range("1.18.0.21", "1.18.0.21", "1.18.0.21")
        assert not version_in_range("1.18.0.22", "1.18.0.21", "1.18.0.21")

    def test_unbounded_upper(self):
        r = VersionRange("1.18.10.21")
        assert r.contains("1.18.10.21")
        assert r.contains("1.20.0.1")
        assert not r.contains("1.18.2.0")
