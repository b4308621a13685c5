"""Parsing utilities for version and version range literals."""

import re
from typing import Optional

from common.errors import VersionParseError
from .models import PackageVersion, VersionRange

_IDENTIFIERS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_VERSION_RE = re.compile(
    r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
    rf"(?:-({_IDENTIFIERS}))?(?:\+({_IDENTIFIERS}))?$"
)
_FLOAT_RE = re.compile(r"^(\d+(?:\.\d+){0,2})\.\*$")


def parse_version(text: str) -> PackageVersion:
    """Parse a version literal such as ``1.0``, ``1.2.3.4`` or ``2.0.0-Beta.1+sha``.

    Raises:
        VersionParseError: If the text is not a valid version.
    """
    if not isinstance(text, str):
        raise VersionParseError(str(text))
    s = text.strip()
    m = _VERSION_RE.match(s)
    if not m:
        raise VersionParseError(text)

    major, minor, patch, revision, prerelease, build = m.groups()
    try:
        return PackageVersion(
            major=int(major),
            minor=int(minor or 0),
            patch=int(patch or 0),
            revision=int(revision or 0),
            prerelease=tuple(prerelease.split(".")) if prerelease else (),
            build=tuple(build.split(".")) if build else (),
            original=s,
        )
    except ValueError as exc:
        # semantic_version rejects e.g. numeric identifiers with leading zeroes
        raise VersionParseError(text) from exc


def try_parse_version(text: str) -> Optional[PackageVersion]:
    """Return the parsed version or None."""
    try:
        return parse_version(text)
    except VersionParseError:
        return None


def _parse_floating(s: str, original: str) -> VersionRange:
    """Convert ``*``, ``1.*``, ``1.2.*`` style floats into bounded intervals."""
    if s == "*":
        return VersionRange(original=original)
    m = _FLOAT_RE.match(s)
    if not m:
        raise VersionParseError(original, "version range")
    parts = [int(p) for p in m.group(1).split(".")]
    lower_parts = parts + [0] * (4 - len(parts))
    upper_parts = list(parts)
    upper_parts[-1] += 1
    upper_parts += [0] * (4 - len(upper_parts))
    return VersionRange(
        min_version=PackageVersion(*lower_parts),
        min_inclusive=True,
        max_version=PackageVersion(*upper_parts),
        max_inclusive=False,
        original=original,
    )


def _parse_bound(text: str, original: str) -> Optional[PackageVersion]:
    text = text.strip()
    if not text:
        return None
    try:
        return parse_version(text)
    except VersionParseError as exc:
        raise VersionParseError(original, "version range") from exc


def _parse_interval(s: str, original: str) -> VersionRange:
    """Parse NuGet interval notation: ``[1.0]``, ``[1.0, 2.0)``, ``(,2.0]``..."""
    if len(s) < 3 or s[-1] not in "])":
        raise VersionParseError(original, "version range")
    min_inclusive = s[0] == "["
    max_inclusive = s[-1] == "]"
    inner = s[1:-1]

    if "," not in inner:
        if not (min_inclusive and max_inclusive):
            raise VersionParseError(original, "version range")
        exact = _parse_bound(inner, original)
        if exact is None:
            raise VersionParseError(original, "version range")
        return VersionRange(exact, True, exact, True, original=original)

    parts = inner.split(",")
    if len(parts) != 2:
        raise VersionParseError(original, "version range")
    lower = _parse_bound(parts[0], original)
    upper = _parse_bound(parts[1], original)

    if lower is None and upper is None:
        raise VersionParseError(original, "version range")
    if lower is not None and upper is not None:
        if lower > upper:
            raise VersionParseError(original, "version range")
        if lower == upper and not (min_inclusive and max_inclusive):
            raise VersionParseError(original, "version range")

    return VersionRange(
        min_version=lower,
        min_inclusive=min_inclusive if lower is not None else False,
        max_version=upper,
        max_inclusive=max_inclusive if upper is not None else False,
        original=original,
    )


def parse_range(text: str) -> VersionRange:
    """Parse a version range.

    A bare version means "this version or newer"; bracket notation gives
    inclusive (``[``/``]``) or exclusive (``(``/``)``) bounds.

    Raises:
        VersionParseError: If the text is not a valid range.
    """
    if not isinstance(text, str):
        raise VersionParseError(str(text), "version range")
    s = text.strip()
    if not s:
        raise VersionParseError(text, "version range")

    if s[0] in "[(":
        return _parse_interval(s, text)
    if "*" in s:
        return _parse_floating(s, text)

    try:
        minimum = parse_version(s)
    except VersionParseError as exc:
        raise VersionParseError(text, "version range") from exc
    return VersionRange(min_version=minimum, min_inclusive=True, original=text)


def try_parse_range(text: str) -> Optional[VersionRange]:
    """Return the parsed range or None."""
    try:
        return parse_range(text)
    except VersionParseError:
        return None
