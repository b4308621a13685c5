"""Skip versions that already carry deprecation metadata."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from registry.nuget.models import DeprecationInfo

logger = logging.getLogger(__name__)


@dataclass
class FilterResult:
    """Versions to deprecate and versions skipped as already deprecated."""
    versions: List[str]
    skipped: List[str] = field(default_factory=list)


def filter_deprecated(
    versions: Sequence[str],
    metadata: Optional[Mapping[str, Optional[DeprecationInfo]]],
    overwrite: bool = False,
) -> FilterResult:
    """Drop versions whose metadata entry is present, unless overwriting.

    Args:
        versions: Resolved, normalized version strings.
        metadata: Normalized version -> deprecation info (None = not deprecated).
            Ignored when ``overwrite`` is set.
        overwrite: Keep every version regardless of existing metadata.

    Returns:
        FilterResult preserving the input order.
    """
    if overwrite:
        return FilterResult(versions=list(versions))

    lookup: Dict[str, Optional[DeprecationInfo]] = {
        key.lower(): value for key, value in (metadata or {}).items()
    }
    kept: List[str] = []
    skipped: List[str] = []
    for version in versions:
        key = version.lower()
        if key not in lookup:
            logger.warning(
                "Version %s was not found in the package metadata. It's assumed to be not deprecated.",
                version,
            )
            kept.append(version)
        elif lookup[key] is not None:
            logger.info("Version %s is already deprecated and will be skipped.", version)
            skipped.append(version)
        else:
            kept.append(version)

    if skipped:
        logger.info(
            "%d package version(s) are already deprecated so they won't be updated.",
            len(skipped),
        )
    return FilterResult(versions=kept, skipped=skipped)
