"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1


class ListingDirective(Enum):
    """Listing change applied while deprecating.

    Args:
        Enum (string): Wire value of the ``listedVerb`` field.
    """

    UNCHANGED = "Unchanged"
    UNLIST = "Unlist"
    RELIST = "Relist"


class ServiceTypes:  # pylint: disable=too-few-public-methods
    """NuGet V3 service index resource types, in order of preference."""

    PACKAGE_BASE_ADDRESS = ["PackageBaseAddress/3.0.0"]
    REGISTRATIONS_BASE_URL = [
        "RegistrationsBaseUrl/3.6.0",
        "RegistrationsBaseUrl/3.4.0",
        "RegistrationsBaseUrl/3.0.0-rc",
        "RegistrationsBaseUrl",
    ]
    PACKAGE_PUBLISH = ["PackagePublish/2.0.0"]
    PACKAGE_DETAILS_URI_TEMPLATE = ["PackageDetailsUriTemplate/5.1.0"]


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    Tunables below may be overridden at runtime by cli_config.
    """

    PROG_NAME = "pkglifecycle"
    VERSION = "0.3.0"
    USER_AGENT = f"{PROG_NAME}/{VERSION}"

    DEFAULT_SOURCE = "https://api.nuget.org/v3/index.json"
    # Hosts where the publish endpoint rejects anonymous writes
    CREDENTIAL_REQUIRED_HOSTS = ["nuget.org"]
    CREDENTIAL_REQUIRED_HOST_SUFFIXES = [".nuget.org", ".nugettest.org"]

    API_KEY_HEADER = "X-NuGet-ApiKey"
    HEADERS_TO_REDACT = ["X-NuGet-ApiKey", "Authorization", "Cookie", "Set-Cookie"]
    REDACTED = "[REDACTED]"
    # Transcript bodies above this size are truncated
    DEBUG_BODY_LIMIT = 32 * 1024

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FORMAT_FILE = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "PKGLIFECYCLE_LOG_LEVEL"
    ENV_API_KEY = "PKGLIFECYCLE_API_KEY"
    ENV_SOURCE = "PKGLIFECYCLE_SOURCE"

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3  # Attempts for idempotent registry reads
    DEFAULT_RETRY_AFTER_SEC = 60
    MAX_RETRIES = None  # None retries rate-limited writes until a terminal response
    CACHE_MAX_ENTRIES = 256
