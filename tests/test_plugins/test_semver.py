"""Unit tests for npm-style version ranges (stackforge.plugins.semver)."""

from __future__ import annotations

import pytest

from stackforge.plugins.semver import (
    SemverError,
    Version,
    intersects,
    is_valid_version,
    parse_range,
    parse_version,
    pick_stricter,
    satisfies,
    valid_range,
)

pytestmark = pytest.mark.unit


class TestVersions:
    @pytest.mark.parametrize(
        "text, valid",
        [
            ("1.0.0", True),
            ("10.20.30", True),
            ("1.0.0-rc.1", True),
            ("1.0.0-alpha+build.5", True),
            ("1.0", False),
            ("v1.0.0", False),
            ("latest", False),
            ("", False),
        ],
    )
    def test_is_valid_version(self, text, valid):
        assert is_valid_version(text) is valid

    def test_parse_tolerates_prefix(self):
        assert parse_version("v1.2.3") == Version(1, 2, 3)
        assert parse_version("=1.2.3") == Version(1, 2, 3)

    def test_parse_rejects_partial(self):
        with pytest.raises(SemverError):
            parse_version("1.2")

    def test_prerelease_precedence(self):
        chain = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        versions = [parse_version(v) for v in chain]
        assert versions == sorted(versions)
        assert len(set(versions)) == len(versions)

    def test_str(self):
        assert str(parse_version("1.2.3-rc.1+meta")) == "1.2.3-rc.1"


class TestRanges:
    @pytest.mark.parametrize(
        "range_text, inside, outside",
        [
            ("^1.2.3", ["1.2.3", "1.9.0"], ["1.2.2", "2.0.0"]),
            ("^0.2.3", ["0.2.3", "0.2.9"], ["0.3.0"]),
            ("^0.0.3", ["0.0.3"], ["0.0.4"]),
            ("~1.2.3", ["1.2.3", "1.2.9"], ["1.3.0"]),
            ("~1", ["1.0.0", "1.9.9"], ["2.0.0"]),
            ("~>1.2", ["1.2.0"], ["1.3.0"]),
            ("1.x", ["1.0.0", "1.5.5"], ["2.0.0", "0.9.9"]),
            ("1.2.*", ["1.2.0"], ["1.3.0"]),
            ("*", ["0.0.1", "99.0.0"], []),
            ("", ["3.0.0"], []),
            (">1.2", ["1.3.0"], ["1.2.9"]),
            ("<=1.2", ["1.2.9"], ["1.3.0"]),
            (">= 1.0.0 < 2.0.0", ["1.0.0", "1.99.0"], ["2.0.0"]),
            ("1.2 - 2.3.4", ["1.2.0", "2.3.4"], ["2.3.5", "1.1.9"]),
            ("1.2.3 - 2", ["2.9.9"], ["3.0.0"]),
            ("^1.0.0 || ^3.0.0", ["1.1.0", "3.1.0"], ["2.0.0"]),
            ("=2.0.0", ["2.0.0"], ["2.0.1"]),
        ],
    )
    def test_membership(self, range_text, inside, outside):
        parsed = parse_range(range_text)
        for version in inside:
            assert parsed.contains(version), f"{version} should satisfy {range_text!r}"
        for version in outside:
            assert not parsed.contains(version), f"{version} should not satisfy {range_text!r}"

    @pytest.mark.parametrize("bad", ["latest", "^abc", ">=1.0.0 <two", "github:user/repo"])
    def test_invalid_ranges(self, bad):
        with pytest.raises(SemverError):
            parse_range(bad)
        assert valid_range(bad) is None

    def test_unsatisfiable_range_is_empty(self):
        parsed = parse_range(">2.0.0 <1.0.0")
        assert parsed.intervals == ()
        assert parsed.min_version() is None

    @pytest.mark.parametrize(
        "range_text, minimum",
        [
            ("^8.57.0", "8.57.0"),
            (">1.2.3", "1.2.4"),
            (">=1.0.0 || ^0.5.0", "0.5.0"),
            ("*", "0.0.0"),
            ("<1.0.0", "0.0.0"),
            (">0.0.0-rc", "0.0.0-rc.0"),
        ],
    )
    def test_min_version(self, range_text, minimum):
        assert parse_range(range_text).min_version() == parse_version(minimum)

    def test_satisfies(self):
        assert satisfies("1.5.0", "^1.2.0")
        assert not satisfies("2.0.0", "^1.2.0")
        assert not satisfies("not-a-version", "^1.2.0")
        assert not satisfies("1.0.0", "latest")


class TestReconciliation:
    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ("^8.57.0", "^8.0.0", True),
            ("^1.0.0", "^2.0.0", False),
            ("~1.2.0", ">=1.2.5", True),
            (">=2.0.0", "<2.0.0", False),
            ("1.x", "latest", False),
        ],
    )
    def test_intersects(self, a, b, expected):
        assert intersects(a, b) is expected
        assert intersects(b, a) is expected

    def test_greater_minimum_wins(self):
        assert pick_stricter("^8.57.0", "^8.0.0") == "^8.57.0"
        assert pick_stricter("^8.0.0", "^8.57.0") == "^8.57.0"

    def test_tie_keeps_existing(self):
        assert pick_stricter("^1.2.0", ">=1.2.0") == "^1.2.0"

    def test_disjoint_or_invalid_is_none(self):
        assert pick_stricter("^1.0.0", "^2.0.0") is None
        assert pick_stricter("^1.0.0", "workspace") is None
