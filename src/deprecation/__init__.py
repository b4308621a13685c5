"""Deprecation: filtering, request building and submission."""

from .command import DeprecateCommand, DeprecateOptions
from .filter import FilterResult, filter_deprecated
from .request import DeprecationAttributes, DeprecationRequest, build_request
from .service import DeprecationService, RetryDecision, classify_response, parse_retry_after

__all__ = [
    "DeprecateCommand",
    "DeprecateOptions",
    "FilterResult",
    "filter_deprecated",
    "DeprecationAttributes",
    "DeprecationRequest",
    "build_request",
    "DeprecationService",
    "RetryDecision",
    "classify_response",
    "parse_retry_after",
]
