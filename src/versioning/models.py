"""Data models for versions, ranges and version selectors."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import semantic_version


@functools.total_ordering
class PackageVersion:
    """Immutable package version compared on its normalized form.

    Supports an optional fourth (revision) component. Pre-release labels compare
    case-insensitively and build metadata never affects equality or ordering.
    """

    __slots__ = ("major", "minor", "patch", "revision", "prerelease", "build", "original", "_semver")

    def __init__(
        self,
        major: int,
        minor: int = 0,
        patch: int = 0,
        revision: int = 0,
        prerelease: Tuple[str, ...] = (),
        build: Tuple[str, ...] = (),
        original: Optional[str] = None,
    ):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.revision = revision
        self.prerelease = tuple(prerelease)
        self.build = tuple(build)
        self.original = original
        # semantic_version validates the identifiers and provides pre-release precedence
        self._semver = semantic_version.Version(
            major=major,
            minor=minor,
            patch=patch,
            prerelease=tuple(part.lower() for part in self.prerelease),
            build=(),
        )

    @property
    def release(self) -> Tuple[int, int, int, int]:
        """Numeric components."""
        return (self.major, self.minor, self.patch, self.revision)

    def normalized(self) -> str:
        """Normalized string: revision only when non-zero, no build metadata."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text

    def _key(self) -> Tuple:
        return self.release + (tuple(part.lower() for part in self.prerelease),)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "PackageVersion") -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        if self.release != other.release:
            return self.release < other.release
        return self._semver < other._semver

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.normalized()

    def __repr__(self) -> str:
        return f"PackageVersion('{self.normalized()}')"


@dataclass(frozen=True)
class VersionRange:
    """Interval predicate over ``PackageVersion``; a missing bound is open-ended."""

    min_version: Optional[PackageVersion] = None
    min_inclusive: bool = True
    max_version: Optional[PackageVersion] = None
    max_inclusive: bool = False
    original: Optional[str] = None

    def satisfies(self, version: PackageVersion) -> bool:
        """Return True when ``version`` lies within the bounds."""
        if self.min_version is not None:
            if self.min_inclusive:
                if version < self.min_version:
                    return False
            elif version <= self.min_version:
                return False
        if self.max_version is not None:
            if self.max_inclusive:
                if version > self.max_version:
                    return False
            elif version >= self.max_version:
                return False
        return True

    def __str__(self) -> str:
        if (
            self.min_version is not None
            and self.min_version == self.max_version
            and self.min_inclusive
            and self.max_inclusive
        ):
            return f"[{self.min_version}]"
        low = "[" if self.min_inclusive and self.min_version is not None else "("
        high = "]" if self.max_inclusive and self.max_version is not None else ")"
        lower = str(self.min_version) if self.min_version is not None else ""
        upper = str(self.max_version) if self.max_version is not None else ""
        return f"{low}{lower}, {upper}{high}"


class SelectorKind(Enum):
    """Kinds of version selectors."""
    ALL = "all"
    RANGE = "range"
    VERSION = "version"


@dataclass(frozen=True)
class Selector:
    """User-supplied rule picking target versions.

    ``text`` keeps the raw input for diagnostics; ``parsed`` is None when the
    text could not be parsed (only accepted when validation is skipped).
    """
    kind: SelectorKind
    text: Optional[str] = None
    parsed: Optional[Union[PackageVersion, VersionRange]] = None

    @property
    def label(self) -> str:
        """Option-style description used in log messages."""
        if self.kind == SelectorKind.ALL:
            return "--all"
        return f"--{self.kind.value} '{self.text}'"


ALL_SELECTOR = Selector(SelectorKind.ALL)


@dataclass(frozen=True)
class MatchRecord:
    """Audit-trail entry linking a matched version to its selector."""
    version: str
    selector: Selector
    displayable: bool = True
