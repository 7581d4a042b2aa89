"""Version identifiers and versioning schemes.

Two identifier variants exist:

- ``SemanticVersion``: ``major.minor.patch`` with optional pre-release and
  build metadata. Used by both SemVer and CalVer (``YY.M.MICRO``) ledgers and
  ordered by semver precedence.
- ``VersionString``: an opaque label for AnyStringVer ledgers. Compared for
  equality only.

Identifiers render back to the exact text they were parsed from, so a ledger
written as ``v1.2`` stays ``v1.2``.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal

from kaeter.core.errors import KaeterError
from kaeter.core.result import Err, Ok, Result

__all__ = [
    "Bump",
    "SemanticVersion",
    "VersionIdentifier",
    "VersionString",
    "VersioningScheme",
    "parse_semantic_version",
    "parse_version",
]

Bump = Literal["major", "minor", "patch"]

VERSION_STRING_PATTERN = re.compile(r"[a-zA-Z0-9.+_~@-]+")

_SEMVER_PATTERN = re.compile(
    r"(?P<prefix>v?)"
    r"(?P<major>[0-9]+)(?:\.(?P<minor>[0-9]+))?(?:\.(?P<patch>[0-9]+))?"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
)
_YEAR_MODULO = 100


class VersioningScheme(Enum):
    SEMVER = "SemVer"
    CALVER = "CalVer"
    ANY_STRING = "AnyStringVer"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: str) -> VersioningScheme | None:
        """Match a ledger's ``versioning`` value, ignoring case."""
        for scheme in cls:
            if scheme.value.lower() == raw.strip().lower():
                return scheme
        return None


@functools.total_ordering
@dataclass(frozen=True, slots=True)
class SemanticVersion:
    """A ``major.minor.patch[-pre][+build]`` version.

    ``original`` holds the text the version was parsed from; it is empty for
    computed versions, which render canonically (keeping a ``v`` prefix when
    ``v_prefix`` is set).
    """

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""
    v_prefix: bool = False
    original: str = ""

    def __str__(self) -> str:
        return self.original or self.canonical()

    def canonical(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return ("v" + text) if self.v_prefix else text

    def bump(self, kind: Bump) -> SemanticVersion:
        """Next version for a SemVer bump.

        Major and minor bumps zero the lower components. A patch bump of a
        pre-release only drops the pre-release (``1.2.3-rc1`` -> ``1.2.3``).
        Build metadata never survives a bump.
        """
        match kind:
            case "major":
                return SemanticVersion(self.major + 1, 0, 0, v_prefix=self.v_prefix)
            case "minor":
                return SemanticVersion(self.major, self.minor + 1, 0, v_prefix=self.v_prefix)
            case _:
                if self.prerelease:
                    return SemanticVersion(self.major, self.minor, self.patch, v_prefix=self.v_prefix)
                return SemanticVersion(self.major, self.minor, self.patch + 1, v_prefix=self.v_prefix)

    def next_calendar(self, ref_time: datetime) -> SemanticVersion:
        """Next ``YY.M.MICRO`` version; MICRO counts releases within the month."""
        major = ref_time.year % _YEAR_MODULO
        minor = ref_time.month
        if (self.major, self.minor) == (major, minor):
            return self.bump("patch")
        return SemanticVersion(major, minor, 0)

    def _precedence(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        if self._precedence() != other._precedence():
            return self._precedence() < other._precedence()
        return _prerelease_lt(self.prerelease, other.prerelease)


def _prerelease_lt(left: str, right: str) -> bool:
    # A version without pre-release has higher precedence than one with it.
    if left == right:
        return False
    if not left:
        return False
    if not right:
        return True
    for a, b in zip(left.split("."), right.split(".")):
        if a == b:
            continue
        if a.isdigit() and b.isdigit():
            return int(a) < int(b)
        if a.isdigit() != b.isdigit():
            return a.isdigit()
        return a < b
    return len(left.split(".")) < len(right.split("."))


@dataclass(frozen=True, slots=True)
class VersionString:
    """Opaque version label for AnyStringVer ledgers."""

    value: str

    def __str__(self) -> str:
        return self.value


type VersionIdentifier = SemanticVersion | VersionString


def parse_semantic_version(raw: str) -> Result[SemanticVersion, KaeterError]:
    """Parse a (possibly partial, possibly ``v``-prefixed) semantic version."""
    m = _SEMVER_PATTERN.fullmatch(raw)
    if m is None:
        return Err(KaeterError(kind="validation", message=f"invalid semantic version: {raw!r}"))
    return Ok(
        SemanticVersion(
            major=int(m.group("major")),
            minor=int(m.group("minor") or 0),
            patch=int(m.group("patch") or 0),
            prerelease=m.group("pre") or "",
            build=m.group("build") or "",
            v_prefix=bool(m.group("prefix")),
            original=raw,
        )
    )


def parse_version(raw: str, scheme: str) -> Result[VersionIdentifier, KaeterError]:
    """Parse ``raw`` according to a ledger's ``versioning`` value.

    AnyStringVer yields a ``VersionString`` checked against
    ``[a-zA-Z0-9.+_~@-]+``; every other scheme, known or not, parses as a
    semantic version.
    """
    if VersioningScheme.parse(scheme) is VersioningScheme.ANY_STRING:
        if not VERSION_STRING_PATTERN.fullmatch(raw):
            return Err(
                KaeterError(
                    kind="validation",
                    message=f"version does not match {VERSION_STRING_PATTERN.pattern}: {raw!r}",
                )
            )
        return Ok(VersionString(raw))
    match parse_semantic_version(raw):
        case Ok(version):
            return Ok(version)
        case Err(e):
            return Err(e)
