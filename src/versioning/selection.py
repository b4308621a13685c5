"""Version selection: turn --all/--range/--version selectors into target versions.

Selectors consume versions from a working copy of the package's known
versions, so a version is never claimed by two selectors. The match trace is
logged for auditing and then discarded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from common.errors import InputError, ResolutionError
from common.logging_utils import extra_context, is_debug_enabled
from .models import ALL_SELECTOR, MatchRecord, PackageVersion, Selector, SelectorKind
from .parser import try_parse_range, try_parse_version

logger = logging.getLogger(__name__)


@dataclass
class SelectionResult:
    """Outcome of a selection run."""
    versions: List[str]
    matches: List[MatchRecord] = field(default_factory=list)
    unused: List[Selector] = field(default_factory=list)
    ignored: List[PackageVersion] = field(default_factory=list)


def build_selectors(
    versions: Optional[Sequence[str]],
    ranges: Optional[Sequence[str]],
    skip_validation: bool = False,
) -> Tuple[List[Selector], List[Selector]]:
    """Parse raw selector text into (range selectors, version selectors).

    Unparseable text is an InputError unless validation is skipped. Skipped
    ranges are dropped; skipped versions are kept as literals.
    """
    range_selectors: List[Selector] = []
    for text in ranges or []:
        parsed = try_parse_range(text)
        if parsed is None:
            if not skip_validation:
                raise InputError(f"The --range '{text}' is not a valid version range.")
            logger.warning("Ignoring --range '%s' because it is not a valid version range.", text)
            continue
        range_selectors.append(Selector(SelectorKind.RANGE, text, parsed))

    version_selectors: List[Selector] = []
    for text in versions or []:
        parsed = try_parse_version(text)
        if parsed is None and not skip_validation:
            raise InputError(f"The --version '{text}' is not a valid version string.")
        version_selectors.append(Selector(SelectorKind.VERSION, text, parsed))

    return range_selectors, version_selectors


def _sort_key(entry: Tuple[Optional[PackageVersion], str]):
    parsed, text = entry
    if parsed is not None:
        return (0, parsed, text.lower())
    return (1, None, text.lower())


def finalize_versions(matches: Iterable[MatchRecord]) -> List[str]:
    """Deduplicate (case-insensitive, first wins) and sort matched versions.

    Parsed versions sort ascending by version; unparsed literals follow,
    ordered case-insensitively.
    """
    seen: Set[str] = set()
    entries: List[Tuple[Optional[PackageVersion], str]] = []
    for record in matches:
        parsed = try_parse_version(record.version)
        text = parsed.normalized() if parsed is not None else record.version.strip()
        key = text.lower()
        if key in seen:
            continue
        seen.add(key)
        entries.append((parsed, text))
    entries.sort(key=_sort_key)
    return [text for _, text in entries]


def _log_trace(result: SelectionResult) -> None:
    if not is_debug_enabled(logger):
        return
    by_version = {v.lower(): i for i, v in enumerate(result.versions)}
    ordered = sorted(
        (m for m in result.matches if m.displayable),
        key=lambda m: by_version.get(_normalized_text(m.version).lower(), len(by_version)),
    )
    for record in ordered:
        logger.debug(
            "Input %s matched %s",
            record.selector.label,
            record.version,
            extra=extra_context(event="decision", component="selection", action="match"),
        )
    for selector in result.unused:
        logger.debug(
            "Input %s did not match any additional versions.",
            selector.label,
            extra=extra_context(event="decision", component="selection", action="unused"),
        )
    for version in result.ignored:
        logger.debug(
            "Version %s did not match any deprecation options and will be ignored.",
            version,
            extra=extra_context(event="decision", component="selection", action="ignore"),
        )


def _normalized_text(text: str) -> str:
    parsed = try_parse_version(text)
    return parsed.normalized() if parsed is not None else text.strip()


def select_versions(
    known_versions: Iterable[PackageVersion],
    *,
    versions: Optional[Sequence[str]] = None,
    ranges: Optional[Sequence[str]] = None,
    select_all: bool = False,
    allow_missing: bool = False,
    skip_validation: bool = False,
    package_id: Optional[str] = None,
) -> SelectionResult:
    """Resolve selectors against the known versions of a package.

    Args:
        known_versions: Versions reported by the registry (may be empty).
        versions: Explicit version selectors, in input order.
        ranges: Range selectors, in input order.
        select_all: Select every known version.
        allow_missing: Trust explicit versions absent from the registry.
        skip_validation: Accept unparseable selector text instead of failing.
        package_id: Only used in messages.

    Returns:
        SelectionResult with the ordered, deduplicated version strings.

    Raises:
        InputError: On unparseable selectors when validation is not skipped.
        ResolutionError: When nothing was selected and missing versions are
            not allowed. With ``allow_missing`` an empty result is returned.
    """
    range_selectors, version_selectors = build_selectors(versions, ranges, skip_validation)

    remaining: Set[PackageVersion] = set(known_versions)
    if not remaining and not allow_missing:
        raise ResolutionError(
            f"No versions were found for package {package_id or '(unknown)'}. If the package "
            "is not yet available on the package source, you can try --allow-missing-versions "
            "and providing explicit --version options."
        )

    matches: List[MatchRecord] = []
    unused: List[Selector] = []

    if select_all:
        if not remaining:
            unused.append(ALL_SELECTOR)
        for version in sorted(remaining):
            matches.append(MatchRecord(version.normalized(), ALL_SELECTOR))
        remaining.clear()

    for selector in range_selectors:
        matching = sorted(v for v in remaining if selector.parsed.satisfies(v))
        remaining.difference_update(matching)
        for version in matching:
            matches.append(MatchRecord(version.normalized(), selector))
        if not matching:
            unused.append(selector)

    for selector in version_selectors:
        if selector.parsed is None:
            # Only reachable with skip_validation: trust the literal
            matches.append(MatchRecord(selector.text, selector, displayable=False))
            continue
        if selector.parsed in remaining:
            remaining.discard(selector.parsed)
            matches.append(MatchRecord(selector.text, selector))
        elif allow_missing:
            matches.append(MatchRecord(selector.text, selector, displayable=False))
        else:
            unused.append(selector)

    result = SelectionResult(
        versions=finalize_versions(matches),
        matches=matches,
        unused=unused,
        ignored=sorted(remaining),
    )
    _log_trace(result)

    if not result.versions and not allow_missing:
        labels = [s.label for s in unused]
        raise ResolutionError(
            "No versions matched the selection"
            + (f" ({', '.join(labels)} did not match any version)." if labels else "."),
            unused=labels,
        )

    if is_debug_enabled(logger):
        logger.debug(
            "Selection complete",
            extra=extra_context(
                event="function_exit",
                component="selection",
                action="select_versions",
                outcome="success",
                count=len(result.versions),
                target=package_id,
            ),
        )
    return result
