"""Deprecation attributes, validation and the wire request."""

from __future__ import annotations

import json
import logging
import urllib.parse
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from common.errors import InputError
from constants import Constants, ListingDirective
from versioning.parser import try_parse_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeprecationAttributes:
    """What the deprecation says about the selected versions."""
    legacy: bool = False
    critical_bugs: bool = False
    other: bool = False
    message: Optional[str] = None
    alternate_package_id: Optional[str] = None
    alternate_package_version: Optional[str] = None
    listing: ListingDirective = ListingDirective.UNCHANGED

    @property
    def has_reason(self) -> bool:
        """True when at least one reason flag is set."""
        return self.legacy or self.critical_bugs or self.other


def with_default_reason(attributes: DeprecationAttributes) -> DeprecationAttributes:
    """Select the "other" reason when no reason was chosen."""
    if attributes.has_reason:
        return attributes
    logger.debug(
        "Defaulting to deprecation reason --other-reason since no other deprecation reason was provided."
    )
    return replace(attributes, other=True)


def validate_attributes(attributes: DeprecationAttributes) -> DeprecationAttributes:
    """Apply the default reason and check the attribute invariants.

    Returns:
        The attributes with a reason guaranteed.

    Raises:
        InputError: On a missing message, or an invalid alternate package.
    """
    attributes = with_default_reason(attributes)

    if attributes.other and not (attributes.message or "").strip():
        raise InputError(
            "No message was provided but deprecation reason --other-reason is being used."
        )

    if attributes.alternate_package_version is not None:
        if not (attributes.alternate_package_id or "").strip():
            raise InputError("--alternate-version can only be used together with --alternate-id.")
        if try_parse_version(attributes.alternate_package_version) is None:
            raise InputError(
                f"The --alternate-version '{attributes.alternate_package_version}' "
                "is not a valid version string."
            )

    return attributes


def requires_credential(url: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Return (required, host) for a source or publish URL.

    The production registry and its test mirror reject anonymous writes.
    """
    if not url:
        return False, None
    try:
        parsed = urllib.parse.urlsplit(url)
    except ValueError:
        return False, None
    if not parsed.scheme or not parsed.hostname:
        return False, None
    host = parsed.hostname.lower()
    required = host in Constants.CREDENTIAL_REQUIRED_HOSTS or any(
        host.endswith(suffix) for suffix in Constants.CREDENTIAL_REQUIRED_HOST_SUFFIXES
    )
    return required, parsed.hostname


def check_credential(api_key: Optional[str], urls: Iterable[Optional[str]]) -> None:
    """Fail when a host requiring authentication is targeted without an API key.

    Raises:
        InputError: If no API key was supplied for such a host.
    """
    if api_key and api_key.strip():
        return
    for url in urls:
        required, host = requires_credential(url)
        if required:
            raise InputError(f"An --api-key is required when deprecating packages on {host}.")


@dataclass(frozen=True)
class DeprecationRequest:
    """Immutable body of the deprecation PUT."""
    versions: Tuple[str, ...]
    is_legacy: bool = False
    has_critical_bugs: bool = False
    is_other: bool = False
    message: Optional[str] = None
    alternate_package_id: Optional[str] = None
    alternate_package_version: Optional[str] = None
    listing: ListingDirective = ListingDirective.UNCHANGED

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload; false flags and unset strings are omitted."""
        payload: Dict[str, Any] = {"versions": list(self.versions)}
        if self.is_legacy:
            payload["isLegacy"] = True
        if self.has_critical_bugs:
            payload["hasCriticalBugs"] = True
        if self.is_other:
            payload["isOther"] = True
        if self.alternate_package_id is not None:
            payload["alternatePackageId"] = self.alternate_package_id
        if self.alternate_package_version is not None:
            payload["alternatePackageVersion"] = self.alternate_package_version
        if self.message is not None:
            payload["message"] = self.message
        payload["listedVerb"] = self.listing.value
        return payload

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize the payload with a stable key order."""
        return json.dumps(self.to_payload(), indent=indent, ensure_ascii=False)


def build_request(
    versions: Sequence[str],
    attributes: DeprecationAttributes,
    validate: bool = True,
) -> DeprecationRequest:
    """Map resolved versions and attributes to a DeprecationRequest.

    With ``validate=False`` only the default reason is applied.

    Raises:
        InputError: If there are no versions or the attributes are invalid.
    """
    if not versions:
        raise InputError("At least one version is required to build a deprecation request.")
    attributes = validate_attributes(attributes) if validate else with_default_reason(attributes)
    return DeprecationRequest(
        versions=tuple(versions),
        is_legacy=attributes.legacy,
        has_critical_bugs=attributes.critical_bugs,
        is_other=attributes.other,
        message=attributes.message,
        alternate_package_id=attributes.alternate_package_id,
        alternate_package_version=attributes.alternate_package_version,
        listing=attributes.listing,
    )
