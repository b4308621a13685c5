"""Version parsing and version selection."""

from .models import MatchRecord, PackageVersion, Selector, SelectorKind, VersionRange
from .parser import parse_range, parse_version, try_parse_range, try_parse_version
from .selection import SelectionResult, select_versions

__all__ = [
    "MatchRecord",
    "PackageVersion",
    "Selector",
    "SelectorKind",
    "VersionRange",
    "parse_range",
    "parse_version",
    "try_parse_range",
    "try_parse_version",
    "SelectionResult",
    "select_versions",
]
