"""Semantic versions and the range syntax used by plugin dependencies.

Supported ranges:
    ``*`` or empty      any version
    ``^1.2.3``          same major, at least 1.2.3
    ``~1.2.3``          same major and minor, patch at least 3
    ``>=`` ``>`` ``<=`` ``<``   comparisons
    ``=1.2.3``, ``1.2.3``       exact match

A prerelease sorts before its release (``1.0.0-beta < 1.0.0``); two
prereleases of the same version compare as plain strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-(.+))?$")

_COMPARATORS = (
    (">=", lambda c: c >= 0),
    ("<=", lambda c: c <= 0),
    (">", lambda c: c > 0),
    ("<", lambda c: c < 0),
    ("=", lambda c: c == 0),
)


@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: str | None = None

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        return f"{text}-{self.prerelease}" if self.prerelease else text

    def compare(self, other: Version) -> int:
        """-1, 0 or 1 as ``self`` sorts before, equal to or after ``other``."""
        left, right = self._key(), other._key()
        return (left > right) - (left < right)

    def _key(self) -> tuple[int, int, int, bool, str]:
        return (self.major, self.minor, self.patch, self.prerelease is None, self.prerelease or "")


def parse_version(text: str) -> Version:
    """Parse ``MAJOR.MINOR.PATCH[-pre]``; raises ValueError otherwise."""
    match = VERSION_RE.match(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"Invalid version format: {text!r}")
    major, minor, patch, pre = match.groups()
    return Version(int(major), int(minor), int(patch), pre)


def _matches(version: Version, spec: str) -> bool:
    if spec in ("", "*"):
        return True
    if spec.startswith("^"):
        base = parse_version(spec[1:])
        return version.major == base.major and version.compare(base) >= 0
    if spec.startswith("~"):
        base = parse_version(spec[1:])
        return (version.major, version.minor) == (base.major, base.minor) and version.patch >= base.patch
    for prefix, test in _COMPARATORS:
        if spec.startswith(prefix):
            return test(version.compare(parse_version(spec[len(prefix) :])))
    return version.compare(parse_version(spec)) == 0


def satisfies(version: str, spec: str) -> bool:
    """True if ``version`` falls within the range ``spec``.

    Unparseable input never satisfies.

    Example:
        >>> satisfies("1.4.0", "^1.2.0")
        True
        >>> satisfies("2.0.0", "^1.2.0")
        False
    """
    try:
        return _matches(parse_version(version), spec.strip())
    except (ValueError, AttributeError):
        return False
