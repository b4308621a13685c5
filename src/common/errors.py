"""Exception hierarchy shared by the resolution and submission layers.

Library code raises these; only the CLI entry point turns them into exit codes.
"""
from __future__ import annotations

from typing import List, Optional


class PackageLifecycleError(Exception):
    """Base exception for all expected failures."""


class InputError(PackageLifecycleError):
    """Invalid user input detected before any network write."""


class VersionParseError(InputError, ValueError):
    """A version or version range literal could not be parsed."""

    def __init__(self, text: str, kind: str = "version"):
        self.text = text
        self.kind = kind
        super().__init__(f"'{text}' is not a valid {kind} string.")


class ResolutionError(PackageLifecycleError):
    """The selectors did not resolve to any version."""

    def __init__(self, message: str, unused: Optional[List[str]] = None):
        self.unused = list(unused or [])
        super().__init__(message)


class RegistryReadError(PackageLifecycleError):
    """Reading from the package source failed."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(
            f"{message} Check that the package source URL is correct."
        )


class TransportError(PackageLifecycleError):
    """The HTTP exchange itself failed (connection, timeout)."""


class SubmissionFailure(PackageLifecycleError):
    """The registry rejected the deprecation request."""

    def __init__(self, status_code: int, reason: Optional[str]):
        self.status_code = status_code
        self.reason = reason or ""
        super().__init__(
            f"The deprecation request failed: {status_code} {self.reason}".rstrip()
        )


class UserAborted(PackageLifecycleError):
    """The user declined the confirmation prompt."""


class OperationCancelled(PackageLifecycleError):
    """The operation was cancelled between attempts."""
