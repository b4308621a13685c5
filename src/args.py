"""Argument parsing functionality for pkglifecycle."""

import argparse
from constants import Constants


def _parse_bool(value):
    """Parse true/false style option values."""
    lowered = str(value).strip().lower()
    if lowered in ("true", "t", "yes", "y", "1"):
        return True
    if lowered in ("false", "f", "no", "n", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got '{value}'")


def _non_negative_int(value):
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError("must be zero or greater")
    return number


def _add_common_options(parser):
    parser.add_argument("--loglevel", "--log-level",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)


def _add_deprecate_parser(subparsers):
    parser = subparsers.add_parser(
        "deprecate",
        help="Mark existing packages as deprecated.",
        description="Mark existing packages as deprecated.",
    )
    parser.add_argument("PACKAGE_ID",
                        help="The ID of the package that should be deprecated.",
                        nargs="?")
    parser.add_argument("--version",
                        dest="VERSIONS",
                        help="A specific version to mark as deprecated (multiple allowed).",
                        action="extend", nargs="+", type=str,
                        default=[])
    parser.add_argument("--range",
                        dest="RANGES",
                        help="A range of versions to mark as deprecated (multiple allowed).",
                        action="extend", nargs="+", type=str,
                        default=[])
    parser.add_argument("--all",
                        dest="ALL",
                        help="Deprecate all versions.",
                        action="store_true")
    parser.add_argument("--api-key",
                        dest="API_KEY",
                        help="The API key to use when deprecating the package.",
                        action="store", type=str)
    parser.add_argument("--legacy",
                        dest="LEGACY",
                        help="Mark the deprecated versions as legacy.",
                        action="store_true")
    parser.add_argument("--critical-bugs",
                        dest="CRITICAL_BUGS",
                        help="Mark the deprecated versions as having critical bugs.",
                        action="store_true")
    parser.add_argument("--other-reason",
                        dest="OTHER_REASON",
                        help=("Mark the deprecated versions as having some other deprecation reason. "
                              "Enabled by default if no other deprecation reason is selected."),
                        action="store_true")
    parser.add_argument("--message",
                        dest="MESSAGE",
                        help=("A deprecation message to display. Required if --other-reason is "
                              "specified or no other deprecation reason is selected."),
                        action="store", type=str)
    parser.add_argument("--alternate-id",
                        dest="ALTERNATE_ID",
                        metavar="id",
                        help="An alternate package ID to recommend instead of this package.",
                        action="store", type=str)
    parser.add_argument("--alternate-version",
                        dest="ALTERNATE_VERSION",
                        metavar="ver",
                        help="A specific alternate package version to recommend. Only usable with --alternate-id.",
                        action="store", type=str)
    parser.add_argument("--dry-run",
                        dest="DRY_RUN",
                        help="Runs the entire operation without actually submitting the deprecation request.",
                        action="store_true")
    parser.add_argument("--overwrite",
                        dest="OVERWRITE",
                        help="Replace existing deprecation metadata on a package version.",
                        action="store_true")
    parser.add_argument("--allow-missing-versions",
                        dest="ALLOW_MISSING_VERSIONS",
                        help="Allow deprecating versions that are not yet available on the source.",
                        action="store_true")
    parser.add_argument("--skip-validation",
                        dest="SKIP_VALIDATION",
                        help="Skip as much validation as possible before submitting the request.",
                        action="store_true")
    parser.add_argument("--source",
                        dest="SOURCE",
                        help=f"The package source to use (default: {Constants.DEFAULT_SOURCE}).",
                        action="store", type=str)
    parser.add_argument("--package-publish-url",
                        dest="PACKAGE_PUBLISH_URL",
                        metavar="url",
                        help=("The URL to use for the PackagePublish resource. Defaults to "
                              "discovering it from the --source option."),
                        action="store", type=str)
    parser.add_argument("--listed",
                        dest="LISTED",
                        metavar="true|false",
                        help=("Set the listed status of the versions while deprecating. Use 'false' "
                              "to unlist the versions, 'true' to relist them. If the option is not "
                              "provided, the listed status is not changed."),
                        action="store", type=_parse_bool, default=None)
    parser.add_argument("--confirm",
                        dest="CONFIRM",
                        help="Interactively confirm the contents of the deprecation API request before proceeding.",
                        action="store_true")
    parser.add_argument("--max-retries",
                        dest="MAX_RETRIES",
                        help="Stop retrying rate-limited requests after this many retries (default: unbounded).",
                        action="store", type=_non_negative_int)
    _add_common_options(parser)
    return parser


def build_parser():
    """Build the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog=Constants.PROG_NAME,
        description=(
            "A CLI tool to help you manage the lifecycle of published NuGet packages. "
            "You can deprecate, unlist and relist package versions."
        ),
        add_help=True,
    )
    parser.add_argument("--version-info",
                        action="version",
                        version=f"%(prog)s {Constants.VERSION}")
    subparsers = parser.add_subparsers(dest="action", metavar="command")
    _add_deprecate_parser(subparsers)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
