"""NuGet discovery helpers: locate V3 resources in a service index."""

import logging
import urllib.parse
from typing import Any, Dict, Iterable, Optional

from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


def is_v3_service_index(data: Any) -> bool:
    """Return True for a parsed V3 service index document."""
    if not isinstance(data, dict):
        return False
    version = str(data.get("version", ""))
    return version.startswith("3.") and isinstance(data.get("resources"), list)


def get_resource_url(service_index: Dict[str, Any], resource_types: Iterable[str]) -> Optional[str]:
    """Return the ``@id`` of the first resource matching ``resource_types``.

    Args:
        service_index: Parsed service index
        resource_types: Accepted ``@type`` values, most preferred first

    Returns:
        Resource URL or None
    """
    resources = [r for r in service_index.get("resources", []) if isinstance(r, dict)]
    for resource_type in resource_types:
        for resource in resources:
            types = resource.get("@type")
            if isinstance(types, str):
                types = [types]
            if resource_type in (types or []):
                url = resource.get("@id")
                if url:
                    if is_debug_enabled(logger):
                        logger.debug("Resolved service index resource", extra=extra_context(
                            event="decision", component="discovery", action="get_resource_url",
                            target=resource_type, outcome="found", package_manager="nuget"
                        ))
                    return url

    if is_debug_enabled(logger):
        logger.debug("Service index resource missing", extra=extra_context(
            event="decision", component="discovery", action="get_resource_url",
            outcome="missing", package_manager="nuget"
        ))
    return None


def _with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def flat_container_index_url(base_url: str, package_id: str) -> str:
    """Version list URL under PackageBaseAddress."""
    encoded_id = urllib.parse.quote(package_id.lower(), safe="")
    return f"{_with_trailing_slash(base_url)}{encoded_id}/index.json"


def registration_index_url(base_url: str, package_id: str) -> str:
    """Registration index URL under RegistrationsBaseUrl."""
    encoded_id = urllib.parse.quote(package_id.lower(), safe="")
    return f"{_with_trailing_slash(base_url)}{encoded_id}/index.json"


def v2_find_packages_url(source: str, package_id: str) -> str:
    """OData query listing every version of a package on a V2 feed."""
    quoted_id = urllib.parse.quote(package_id.replace("'", "''"), safe="")
    return f"{source.rstrip('/')}/FindPackagesById()?id='{quoted_id}'&semVerLevel=2.0.0"


def expand_details_template(template: str, package_id: str, version: str) -> str:
    """Fill a PackageDetailsUriTemplate."""
    return (
        template
        .replace("{id}", urllib.parse.quote(package_id, safe=""))
        .replace("{version}", urllib.parse.quote(version, safe=""))
    )
