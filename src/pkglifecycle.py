"""pkglifecycle - manage the lifecycle of published NuGet packages

    Returns:
        int: Exit code
"""
import logging
import signal
import sys
import threading

from constants import Constants, ExitCodes
from common.cache import ReadCache
from common.errors import (
    OperationCancelled,
    PackageLifecycleError,
    UserAborted,
)
from common.http_client import RequestsTransport, new_session
from common.logging_utils import configure_logging, extra_context, is_debug_enabled, redact
from args import build_parser
from cli_config import (
    apply_runtime_overrides,
    build_deprecate_options,
    load_config_file,
)
from deprecation.command import DeprecateCommand
from deprecation.service import DeprecationService
from registry.nuget.client import NuGetRegistryClient

logger = logging.getLogger(__name__)


def _install_sigterm_handler(cancel_event):
    """Turn SIGTERM into a cancellation observed between attempts."""
    try:
        signal.signal(signal.SIGTERM, lambda _signum, _frame: cancel_event.set())
    except ValueError:
        # Not the main thread (embedded use); rely on the caller to cancel
        logger.debug("SIGTERM handler not installed outside the main thread.")


def run_deprecate(args, cancel_event=None):
    """Run the deprecate command for parsed arguments.

    Returns:
        int: Exit code
    """
    config = load_config_file(getattr(args, "CONFIG", None))
    apply_runtime_overrides(args, config)
    options = build_deprecate_options(args, config)

    cancel_event = cancel_event or threading.Event()
    session = new_session()
    client = NuGetRegistryClient(options.source, session=session, cache=ReadCache(Constants.CACHE_MAX_ENTRIES))
    service = DeprecationService(
        RequestsTransport(session),
        cancel_event=cancel_event,
        max_retries=Constants.MAX_RETRIES,
    )
    command = DeprecateCommand(client, service)

    try:
        return command.run(options)
    except UserAborted as exc:
        logger.error("Aborted: %s", exc)
    except OperationCancelled as exc:
        logger.error("Cancelled: %s", exc)
    except PackageLifecycleError as exc:
        logger.error("%s", redact(str(exc)))
    except KeyboardInterrupt:
        cancel_event.set()
        logger.error("Cancelled by user.")
    return ExitCodes.FAILURE.value


def run(argv=None):
    """Parse arguments, configure logging and dispatch the subcommand.

    Returns:
        int: Exit code
    """
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    if not argv or all(not a.strip() for a in argv):
        argv = ["--help"]
    args = parser.parse_args(argv)

    configure_logging(getattr(args, "LOG_LEVEL", None), getattr(args, "LOG_FILE", None))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    if args.action == "deprecate":
        cancel_event = threading.Event()
        _install_sigterm_handler(cancel_event)
        return run_deprecate(args, cancel_event)

    parser.print_help()
    return ExitCodes.SUCCESS.value


def main():
    """Main function of the program."""
    sys.exit(run())


if __name__ == "__main__":
    main()
