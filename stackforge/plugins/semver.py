"""npm-style semantic version ranges.

Only what dependency reconciliation needs: parse versions and ranges, test
whether two ranges overlap, and find the lowest version a range admits.

Supported range syntax: exact versions, ``=``, ``>``, ``>=``, ``<``, ``<=``,
caret (``^1.2.3``), tilde (``~1.2.3`` / ``~>1.2``), x-ranges (``1.x``,
``1.2.*``, ``*``, empty string), hyphen ranges (``1.2 - 2.3.4``), whitespace
separated comparator sets (AND) and ``||`` alternatives (OR).

A range is kept as a union of intervals over the version order.  Prerelease
versions are ordered per SemVer 2.0 but are not excluded from ranges the way
npm's ``includePrerelease=false`` does.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional, Union


class SemverError(ValueError):
    """A version or range string could not be parsed."""


_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_VERSION = re.compile(rf"^(\d+)\.(\d+)\.(\d+)(?:-({_IDENT}))?(?:\+({_IDENT}))?$")
_XR = r"(?:\d+|[xX*])"
_PARTIAL = re.compile(rf"^v?({_XR})(?:\.({_XR})(?:\.({_XR})(?:-({_IDENT}))?(?:\+({_IDENT}))?)?)?$")
_COMPARATOR = re.compile(r"^(<=|>=|<|>|=|\^|~>|~)?(.*)$")
_OP_SPACE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")
_HYPHEN = re.compile(r"^(\S+)\s+-\s+(\S+)$")


def _prerelease(text: Optional[str]) -> tuple[Union[int, str], ...]:
    if not text:
        return ()
    return tuple(int(part) if part.isdigit() else part for part in text.split("."))


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------

@total_ordering
@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: tuple[Union[int, str], ...] = ()

    def _key(self) -> tuple:
        # A release sorts after all of its prereleases; numeric identifiers
        # sort before alphanumeric ones.
        if not self.prerelease:
            pre: tuple = (1,)
        else:
            pre = (0, tuple((0, p, "") if isinstance(p, int) else (1, 0, p) for p in self.prerelease))
        return (self.major, self.minor, self.patch, pre)

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(p) for p in self.prerelease)
        return text


def is_valid_version(text: str) -> bool:
    """True for ``MAJOR.MINOR.PATCH[-prerelease][+build]``."""
    return isinstance(text, str) and _VERSION.match(text) is not None


def parse_version(text: str) -> Version:
    """Parse a single version; a leading ``v`` or ``=`` is tolerated."""
    cleaned = text.strip().lstrip("=v").strip() if isinstance(text, str) else ""
    match = _VERSION.match(cleaned)
    if match is None:
        raise SemverError(f"invalid version {text!r}")
    major, minor, patch, pre, _build = match.groups()
    return Version(int(major), int(minor), int(patch), _prerelease(pre))


# ---------------------------------------------------------------------------
# Intervals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Interval:
    """Contiguous set of versions; ``None`` bounds are unbounded."""

    lower: Optional[Version] = None
    lower_inclusive: bool = True
    upper: Optional[Version] = None
    upper_inclusive: bool = False

    def is_empty(self) -> bool:
        if self.lower is None or self.upper is None:
            return False
        if self.lower < self.upper:
            return False
        if self.lower == self.upper:
            return not (self.lower_inclusive and self.upper_inclusive)
        return True

    def contains(self, version: Version) -> bool:
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True

    def intersect(self, other: "Interval") -> "Interval":
        lower, lower_inclusive = self.lower, self.lower_inclusive
        if other.lower is not None and (
            lower is None
            or other.lower > lower
            or (other.lower == lower and not other.lower_inclusive)
        ):
            lower, lower_inclusive = other.lower, other.lower_inclusive

        upper, upper_inclusive = self.upper, self.upper_inclusive
        if other.upper is not None and (
            upper is None
            or other.upper < upper
            or (other.upper == upper and not other.upper_inclusive)
        ):
            upper, upper_inclusive = other.upper, other.upper_inclusive

        return Interval(lower, lower_inclusive, upper, upper_inclusive)

    def min_version(self) -> Optional[Version]:
        """Lowest version inside the interval, or ``None`` when it is empty."""
        if self.is_empty():
            return None
        if self.lower is None:
            candidates = [Version(0, 0, 0), Version(0, 0, 0, (0,))]
        elif self.lower_inclusive:
            candidates = [self.lower]
        elif self.lower.prerelease:
            candidates = [Version(self.lower.major, self.lower.minor, self.lower.patch,
                                  self.lower.prerelease + (0,))]
        else:
            candidates = [Version(self.lower.major, self.lower.minor, self.lower.patch + 1)]
        for candidate in candidates:
            if self.contains(candidate):
                return candidate
        return None


ANY = Interval()
_NOTHING = Interval(Version(0, 0, 0), False, Version(0, 0, 0), False)


def _partial(token: str) -> tuple[Optional[int], Optional[int], Optional[int], tuple]:
    match = _PARTIAL.match(token)
    if match is None:
        raise SemverError(f"invalid version in range: {token!r}")
    raw_major, raw_minor, raw_patch, pre, _build = match.groups()

    def number(raw: Optional[str]) -> Optional[int]:
        return None if raw is None or raw in ("x", "X", "*") else int(raw)

    major, minor, patch = number(raw_major), number(raw_minor), number(raw_patch)
    # Anything after a wildcard is a wildcard too.
    if major is None:
        minor = patch = None
    elif minor is None:
        patch = None
    return major, minor, patch, _prerelease(pre) if patch is not None else ()


def _floor(major: int, minor: Optional[int], patch: Optional[int], pre: tuple) -> Version:
    return Version(major, minor or 0, patch or 0, pre)


def _ceiling(major: int, minor: Optional[int]) -> Version:
    """First version above a partial ``M`` or ``M.m``."""
    if minor is None:
        return Version(major + 1, 0, 0)
    return Version(major, minor + 1, 0)


def _comparator(op: str, token: str) -> Interval:
    major, minor, patch, pre = _partial(token)

    if major is None:
        return _NOTHING if op in (">", "<") else ANY

    floor = _floor(major, minor, patch, pre)
    partial = patch is None

    if op in ("", "="):
        if partial:
            return Interval(floor, True, _ceiling(major, minor), False)
        return Interval(floor, True, floor, True)
    if op == ">=":
        return Interval(floor, True, None)
    if op == ">":
        if partial:
            return Interval(_ceiling(major, minor), True, None)
        return Interval(floor, False, None)
    if op == "<":
        return Interval(None, True, floor, False)
    if op == "<=":
        if partial:
            return Interval(None, True, _ceiling(major, minor), False)
        return Interval(None, True, floor, True)
    if op in ("~", "~>"):
        return Interval(floor, True, _ceiling(major, minor), False)
    if op == "^":
        if minor is None or major > 0:
            upper = Version(major + 1, 0, 0)
        elif patch is None or minor > 0:
            upper = Version(0, minor + 1, 0)
        else:
            upper = Version(0, 0, patch + 1)
        return Interval(floor, True, upper, False)

    raise SemverError(f"unknown range operator {op!r}")


def _hyphen(low: str, high: str) -> Interval:
    l_major, l_minor, l_patch, l_pre = _partial(low)
    h_major, h_minor, h_patch, h_pre = _partial(high)

    lower = None if l_major is None else _floor(l_major, l_minor, l_patch, l_pre)
    if h_major is None:
        return Interval(lower, True, None)
    if h_patch is None:
        return Interval(lower, True, _ceiling(h_major, h_minor), False)
    return Interval(lower, True, _floor(h_major, h_minor, h_patch, h_pre), True)


def _comparator_set(text: str) -> Interval:
    text = text.strip()
    if not text:
        return ANY

    hyphen = _HYPHEN.match(text)
    if hyphen is not None:
        return _hyphen(*hyphen.groups())

    interval = ANY
    for token in _OP_SPACE.sub(r"\1", text).split():
        op, rest = _COMPARATOR.match(token).groups()
        interval = interval.intersect(_comparator(op or "", rest))
    return interval


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VersionRange:
    raw: str
    intervals: tuple[Interval, ...]

    def contains(self, version: Union[Version, str]) -> bool:
        if isinstance(version, str):
            version = parse_version(version)
        return any(interval.contains(version) for interval in self.intervals)

    def intersects(self, other: "VersionRange") -> bool:
        return any(
            not mine.intersect(theirs).is_empty()
            for mine in self.intervals
            for theirs in other.intervals
        )

    def min_version(self) -> Optional[Version]:
        found = [v for v in (i.min_version() for i in self.intervals) if v is not None]
        return min(found) if found else None


def parse_range(text: str) -> VersionRange:
    """Parse an npm range; raises :class:`SemverError` when it is malformed."""
    if not isinstance(text, str):
        raise SemverError(f"range must be a string, got {text!r}")
    intervals = tuple(
        interval
        for interval in (_comparator_set(part) for part in text.split("||"))
        if not interval.is_empty()
    )
    return VersionRange(raw=text, intervals=intervals)


def valid_range(text: str) -> Optional[VersionRange]:
    """``parse_range`` that returns ``None`` instead of raising."""
    try:
        return parse_range(text)
    except SemverError:
        return None


def intersects(first: str, second: str) -> bool:
    """True when both ranges are valid and admit at least one common version."""
    a, b = valid_range(first), valid_range(second)
    return a is not None and b is not None and a.intersects(b)


def satisfies(version: str, range_text: str) -> bool:
    parsed = valid_range(range_text)
    if parsed is None:
        return False
    try:
        return parsed.contains(version)
    except SemverError:
        return False


def pick_stricter(existing: str, incoming: str) -> Optional[str]:
    """Reconcile two requirements for the same package.

    Returns the range with the greater minimum version (``existing`` on a
    tie), or ``None`` when either range is invalid or they do not overlap.
    """
    a, b = valid_range(existing), valid_range(incoming)
    if a is None or b is None or not a.intersects(b):
        return None
    a_min, b_min = a.min_version(), b.min_version()
    if b_min is not None and (a_min is None or b_min > a_min):
        return incoming
    return existing
