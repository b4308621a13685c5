"""NuGet registry client: service index, version listing and deprecation metadata."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Set, Tuple
from xml.etree import ElementTree as ET

import requests

from constants import Constants, ServiceTypes
from common.cache import ReadCache
from common.errors import RegistryReadError, TransportError
from common.http_client import get_json, new_session, robust_get
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.models import PackageVersion
from versioning.parser import try_parse_version

from .discovery import (
    expand_details_template,
    flat_container_index_url,
    get_resource_url,
    is_v3_service_index,
    registration_index_url,
    v2_find_packages_url,
)
from .models import DeprecationInfo

logger = logging.getLogger(__name__)

_NOT_LOADED = object()

_ATOM_NS = "{http://www.w3.org/2005/Atom}"
_DATA_NS = "{http://schemas.microsoft.com/ado/2007/08/dataservices}"
_METADATA_NS = "{http://schemas.microsoft.com/ado/2007/08/dataservices/metadata}"
HEADERS_V2 = {"Accept": "application/atom+xml,application/xml,application/json;q=0.9"}


def _parse_v2_atom(text: str) -> Optional[Tuple[List[Any], Optional[str]]]:
    """Versions and ``next`` link of one OData Atom feed page."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return None
    if root.tag != f"{_ATOM_NS}feed":
        return None

    versions: List[Any] = []
    for entry in root.findall(f"{_ATOM_NS}entry"):
        props = entry.find(f".//{_METADATA_NS}properties")
        if props is None:
            continue
        version_elem = props.find(f"{_DATA_NS}Version")
        if version_elem is not None and version_elem.text:
            versions.append(version_elem.text.strip())

    next_url = None
    for link in root.findall(f"{_ATOM_NS}link"):
        if link.get("rel") == "next" and link.get("href"):
            next_url = link.get("href")
    return versions, next_url


def _parse_v2_json(text: str) -> Optional[Tuple[List[Any], Optional[str]]]:
    """Versions and ``__next`` link of one OData JSON page."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    # OData JSON format: {"d": {"results": [...], "__next": ...}} or {"d": [...]}
    results = data.get("d", data) if isinstance(data, dict) else data
    next_url = None
    if isinstance(results, dict):
        next_url = results.get("__next")
        results = results.get("results", [])
    if not isinstance(results, list):
        return None
    versions = [item.get("Version") for item in results if isinstance(item, dict)]
    return versions, next_url


def _parse_v2_page(text: str) -> Optional[Tuple[List[Any], Optional[str]]]:
    """Parse a ``FindPackagesById()`` page; Atom first, JSON as fallback.

    Returns:
        (raw version strings, next page URL) or None when the body is neither.
    """
    if not text or not text.strip():
        return None
    if text.lstrip().startswith("<"):
        return _parse_v2_atom(text)
    return _parse_v2_json(text)


class NuGetRegistryClient:
    """Read-only view of one package source.

    Every GET goes through a per-instance ``ReadCache``, so one client should
    be created per invocation.
    """

    def __init__(
        self,
        source: str = Constants.DEFAULT_SOURCE,
        session: Optional[requests.Session] = None,
        cache: Optional[ReadCache] = None,
    ):
        self.source = source
        self._session = session or new_session()
        self._cache = cache if cache is not None else ReadCache()
        self._service_index: Any = _NOT_LOADED

    def _get_json(self, url: str, context: str):
        try:
            return get_json(url, session=self._session, cache=self._cache)
        except TransportError as exc:
            raise RegistryReadError(f"Failed to read {context} from {safe_url(url)}: {exc}", url) from exc

    def _get_text(self, url: str, context: str) -> Tuple[int, str]:
        try:
            status_code, _, text = robust_get(url, session=self._session, headers=HEADERS_V2, cache=self._cache)
        except TransportError as exc:
            raise RegistryReadError(f"Failed to read {context} from {safe_url(url)}: {exc}", url) from exc
        return status_code, text

    def service_index(self) -> Optional[Dict[str, Any]]:
        """Fetch and parse the V3 service index.

        Returns:
            Service index dictionary or None when the source is not V3
        """
        if self._service_index is _NOT_LOADED:
            status_code, _, data = self._get_json(self.source, "the service index")
            if status_code == 200 and is_v3_service_index(data):
                self._service_index = data
            else:
                self._service_index = None
                if is_debug_enabled(logger):
                    logger.debug("Source is not a V3 service index", extra=extra_context(
                        event="http_response", component="client", action="service_index",
                        status_code=status_code, target=safe_url(self.source),
                        package_manager="nuget",
                    ))
        return self._service_index

    def is_v3(self) -> bool:
        """True when the source exposes a V3 service index."""
        return self.service_index() is not None

    def _resource(self, resource_types: List[str]) -> Optional[str]:
        index = self.service_index()
        if index is None:
            return None
        return get_resource_url(index, resource_types)

    def publish_url(self) -> Optional[str]:
        """PackagePublish endpoint advertised by the source."""
        return self._resource(ServiceTypes.PACKAGE_PUBLISH)

    def package_details_url(self, package_id: str, version: str) -> Optional[str]:
        """Gallery page of a package version, when the source advertises one."""
        template = self._resource(ServiceTypes.PACKAGE_DETAILS_URI_TEMPLATE)
        if template is None:
            return None
        return expand_details_template(template, package_id, version)

    @staticmethod
    def _parse_versions(raw_versions: List[Any], package_id: str) -> Set[PackageVersion]:
        versions: Set[PackageVersion] = set()
        for raw in raw_versions:
            parsed = try_parse_version(str(raw)) if raw is not None else None
            if parsed is None:
                logger.debug("Skipping unparseable version %r of %s", raw, package_id)
                continue
            versions.add(parsed)
        return versions

    def _list_versions_v3(self, package_id: str) -> Set[PackageVersion]:
        base_url = self._resource(ServiceTypes.PACKAGE_BASE_ADDRESS)
        if base_url is None:
            raise RegistryReadError("The service index has no PackageBaseAddress resource.", self.source)
        url = flat_container_index_url(base_url, package_id)
        status_code, _, data = self._get_json(url, f"the version list of {package_id}")
        if status_code == 404:
            return set()
        if status_code != 200 or not isinstance(data, dict):
            raise RegistryReadError(
                f"Unexpected response {status_code} while listing versions of {package_id}.", url
            )
        return self._parse_versions(data.get("versions", []), package_id)

    def _list_versions_v2(self, package_id: str) -> Set[PackageVersion]:
        url: Optional[str] = v2_find_packages_url(self.source, package_id)
        raw_versions: List[Any] = []
        visited: Set[str] = set()
        first_page = True
        while url and url not in visited:
            visited.add(url)
            status_code, text = self._get_text(url, f"the version list of {package_id}")
            if status_code == 404 and first_page:
                return set()
            page = _parse_v2_page(text) if status_code == 200 else None
            if page is None:
                raise RegistryReadError(
                    f"Unexpected response {status_code} while listing versions of {package_id}.", url
                )
            page_versions, url = page
            raw_versions.extend(page_versions)
            first_page = False
        return self._parse_versions(raw_versions, package_id)

    def list_versions(self, package_id: str) -> Set[PackageVersion]:
        """All versions of a package, listed and unlisted.

        A package unknown to the source yields an empty set.

        Raises:
            RegistryReadError: On transport failures or unexpected responses.
        """
        if self.is_v3():
            versions = self._list_versions_v3(package_id)
        else:
            versions = self._list_versions_v2(package_id)

        if is_debug_enabled(logger):
            logger.debug("Listed package versions", extra=extra_context(
                event="function_exit", component="client", action="list_versions",
                outcome="success", count=len(versions), target=package_id,
                package_manager="nuget",
            ))
        return versions

    def _registration_leaves(self, package_id: str) -> List[Dict[str, Any]]:
        base_url = self._resource(ServiceTypes.REGISTRATIONS_BASE_URL)
        if base_url is None:
            raise RegistryReadError("The service index has no RegistrationsBaseUrl resource.", self.source)
        url = registration_index_url(base_url, package_id)
        status_code, _, data = self._get_json(url, f"the registration index of {package_id}")
        if status_code == 404:
            return []
        if status_code != 200 or not isinstance(data, dict):
            raise RegistryReadError(
                f"Unexpected response {status_code} while reading metadata of {package_id}.", url
            )

        leaves: List[Dict[str, Any]] = []
        for page in data.get("items", []):
            items = page.get("items")
            if items is None and page.get("@id"):
                # Large packages reference their pages instead of inlining them
                page_url = page["@id"]
                page_status, _, page_data = self._get_json(page_url, f"a registration page of {package_id}")
                if page_status != 200 or not isinstance(page_data, dict):
                    raise RegistryReadError(
                        f"Unexpected response {page_status} while reading metadata of {package_id}.",
                        page_url,
                    )
                items = page_data.get("items", [])
            leaves.extend(item for item in items or [] if isinstance(item, dict))
        return leaves

    def get_deprecation_metadata(self, package_id: str) -> Dict[str, Optional[DeprecationInfo]]:
        """Normalized version -> existing deprecation (None when not deprecated).

        Raises:
            RegistryReadError: On transport failures or unexpected responses.
        """
        metadata: Dict[str, Optional[DeprecationInfo]] = {}
        for leaf in self._registration_leaves(package_id):
            entry = leaf.get("catalogEntry")
            if not isinstance(entry, dict):
                continue
            parsed = try_parse_version(str(entry.get("version", "")))
            if parsed is None:
                continue
            deprecation = entry.get("deprecation")
            metadata[parsed.normalized()] = (
                DeprecationInfo.from_json(deprecation) if isinstance(deprecation, dict) else None
            )

        if is_debug_enabled(logger):
            logger.debug("Read deprecation metadata", extra=extra_context(
                event="function_exit", component="client", action="get_deprecation_metadata",
                outcome="success", count=len(metadata), target=package_id,
                package_manager="nuget",
            ))
        return metadata
