"""Data models for NuGet registry responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DeprecationInfo:
    """Existing deprecation record of one package version."""
    reasons: List[str] = field(default_factory=list)
    message: Optional[str] = None
    alternate_package_id: Optional[str] = None
    alternate_version_range: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DeprecationInfo":
        """Build from a registration ``catalogEntry.deprecation`` object."""
        alternate = data.get("alternatePackage") or {}
        if not isinstance(alternate, dict):
            alternate = {}
        reasons = data.get("reasons") or []
        if isinstance(reasons, str):
            reasons = [reasons]
        return cls(
            reasons=[str(r) for r in reasons],
            message=data.get("message"),
            alternate_package_id=alternate.get("id"),
            alternate_version_range=alternate.get("range"),
        )
