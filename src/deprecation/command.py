"""The ``deprecate`` command: resolve versions, filter, build and submit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from constants import ExitCodes, ListingDirective
from common.errors import InputError
from common.logging_utils import extra_context, is_debug_enabled
from registry.nuget.client import NuGetRegistryClient
from versioning.parser import try_parse_version
from versioning.selection import build_selectors, select_versions
from .filter import filter_deprecated
from .request import (
    DeprecationAttributes,
    build_request,
    check_credential,
    validate_attributes,
)
from .service import DeprecationService

logger = logging.getLogger(__name__)


def listing_directive(listed: Optional[bool]) -> ListingDirective:
    """Map the tri-state ``--listed`` option to a listing directive."""
    if listed is None:
        return ListingDirective.UNCHANGED
    return ListingDirective.RELIST if listed else ListingDirective.UNLIST


@dataclass
class DeprecateOptions:
    """Inputs of one deprecate run."""
    package_id: Optional[str]
    versions: List[str] = field(default_factory=list)
    ranges: List[str] = field(default_factory=list)
    select_all: bool = False
    api_key: Optional[str] = None
    legacy: bool = False
    critical_bugs: bool = False
    other_reason: bool = False
    message: Optional[str] = None
    alternate_id: Optional[str] = None
    alternate_version: Optional[str] = None
    dry_run: bool = False
    overwrite: bool = False
    allow_missing_versions: bool = False
    skip_validation: bool = False
    source: Optional[str] = None
    package_publish_url: Optional[str] = None
    listed: Optional[bool] = None
    confirm: bool = False

    @property
    def attributes(self) -> DeprecationAttributes:
        """Deprecation attributes carried by these options."""
        return DeprecationAttributes(
            legacy=self.legacy,
            critical_bugs=self.critical_bugs,
            other=self.other_reason,
            message=self.message,
            alternate_package_id=self.alternate_id,
            alternate_package_version=self.alternate_version,
            listing=listing_directive(self.listed),
        )


def validate_options(options: DeprecateOptions) -> None:
    """Check the options before any network call.

    Raises:
        InputError: On the first invalid option.
    """
    # Parses every selector, raising on the first bad one
    build_selectors(options.versions, options.ranges, skip_validation=False)
    validate_attributes(options.attributes)
    check_credential(options.api_key, [options.package_publish_url, options.source])

    if not options.select_all and not options.versions and not options.ranges:
        raise InputError(
            "You must specify a --version option, --range, or --all in order to select "
            "the versions to deprecate."
        )


class DeprecateCommand:
    """Orchestrates one deprecation run against a package source."""

    def __init__(self, client: NuGetRegistryClient, service: DeprecationService):
        self._client = client
        self._service = service

    def _check_alternate_package(self, options: DeprecateOptions) -> None:
        logger.debug("Validating alternate package information.")
        versions = self._client.list_versions(options.alternate_id)
        if not versions:
            raise InputError(f"The alternate package {options.alternate_id} does not exist.")
        if options.alternate_version is not None:
            parsed = try_parse_version(options.alternate_version)
            if parsed not in versions:
                logger.warning(
                    "The version %s for alternate package %s does not exist.",
                    options.alternate_version,
                    options.alternate_id,
                )

    def _resolve(self, options: DeprecateOptions) -> List[str]:
        logger.info("Reading the version list for %s on %s.", options.package_id, self._client.source)
        known = self._client.list_versions(options.package_id)
        result = select_versions(
            known,
            versions=options.versions,
            ranges=options.ranges,
            select_all=options.select_all,
            allow_missing=options.allow_missing_versions,
            skip_validation=options.skip_validation,
            package_id=options.package_id,
        )
        return result.versions

    def _filter(self, options: DeprecateOptions, versions: List[str]) -> List[str]:
        if options.overwrite:
            return versions
        logger.info("Reading the current deprecation information.")
        if not self._client.is_v3():
            raise InputError(
                "Deprecation information is only available on V3 package sources. "
                "Specify --overwrite to skip checking current deprecation information."
            )
        metadata = self._client.get_deprecation_metadata(options.package_id)
        return filter_deprecated(versions, metadata, overwrite=False).versions

    def _publish_url(self, options: DeprecateOptions) -> str:
        if options.package_publish_url:
            return options.package_publish_url
        url = self._client.publish_url()
        if url is None:
            raise InputError(
                "No PackagePublish resource was found in the service index. Try providing "
                "the --package-publish-url directly, if you know it."
            )
        return url

    def run(self, options: DeprecateOptions) -> int:
        """Execute the command.

        Returns:
            ExitCodes.SUCCESS value on success, dry run or when nothing is left to do.

        Raises:
            PackageLifecycleError: Any input, resolution, registry or submission failure.
        """
        if not options.package_id:
            raise InputError("No package ID was provided.")

        if not options.skip_validation:
            validate_options(options)

        if is_debug_enabled(logger):
            logger.debug("Deprecate start", extra=extra_context(
                event="function_entry", component="command", action="deprecate",
                target=options.package_id,
            ))

        if not self._client.is_v3():
            logger.warning("The package source URL does not appear to be a V3 package source.")

        if not options.skip_validation and options.alternate_id is not None:
            self._check_alternate_package(options)

        versions = self._filter(options, self._resolve(options))
        if not versions:
            logger.warning(
                "No versions will be deprecated. Check the parameters and logs (perhaps with "
                "--loglevel DEBUG) if this is not expected."
            )
            return ExitCodes.SUCCESS.value
        logger.info("%d versions will be marked as deprecated.", len(versions))

        publish_url = self._publish_url(options)
        request = build_request(versions, options.attributes, validate=not options.skip_validation)

        logger.info(
            "Submitting the deprecation request for %s to %s.", options.package_id, publish_url
        )
        if options.dry_run:
            logger.warning("The deprecation request was skipped because --dry-run is enabled.")
        else:
            self._service.deprecate(
                publish_url, options.package_id, options.api_key, request, confirm=options.confirm
            )
            logger.info("Successfully marked %d package versions as deprecated.", len(versions))

        details_url = self._client.package_details_url(options.package_id, versions[-1])
        if details_url:
            logger.info("Check the package details page to view the change: %s", details_url)

        return ExitCodes.SUCCESS.value
