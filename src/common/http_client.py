"""Shared HTTP helpers used by the registry client and the submission protocol.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. Failures are raised as ``TransportError``;
callers decide how to surface them.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple

import requests
from requests.structures import CaseInsensitiveDict

from constants import Constants
from common.cache import ReadCache
from common.errors import TransportError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

HEADERS_JSON = {"Accept": "application/json"}


@dataclass
class HttpResponse:
    """Transport-neutral view of one HTTP response."""

    status_code: int
    reason: str = ""
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""
    http_version: str = "1.1"

    @property
    def is_success(self) -> bool:
        """True for any 2xx status."""
        return 200 <= self.status_code < 300


class HttpTransport(Protocol):
    """Capability performing a single HTTP PUT."""

    def put(self, url: str, headers: Mapping[str, str], body: bytes) -> HttpResponse:
        """Send ``body`` to ``url`` and return the response."""


def _http_version(response: requests.Response) -> str:
    raw_version = getattr(response.raw, "version", None)
    if isinstance(raw_version, int) and raw_version > 0:
        return f"{raw_version // 10}.{raw_version % 10}"
    return "1.1"


def to_http_response(response: requests.Response) -> HttpResponse:
    """Convert a ``requests`` response to an ``HttpResponse``."""
    return HttpResponse(
        status_code=response.status_code,
        reason=response.reason or "",
        headers=CaseInsensitiveDict(response.headers),
        body=response.content or b"",
        http_version=_http_version(response),
    )


def new_session() -> requests.Session:
    """Create a session carrying the tool's User-Agent."""
    session = requests.Session()
    session.headers["User-Agent"] = Constants.USER_AGENT
    return session


def _get_cache_key(method: str, url: str, headers: Optional[Mapping[str, str]] = None) -> str:
    """Generate cache key from request parameters."""
    headers_str = str(sorted(headers.items())) if headers else ""
    return f"{method}:{url}:{headers_str}"


def robust_get(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Mapping[str, str]] = None,
    cache: Optional[ReadCache] = None,
) -> Tuple[int, Dict[str, str], str]:
    """Perform a GET with timeout, retries and optional caching.

    Returns:
        Tuple of (status_code, headers_dict, text).

    Raises:
        TransportError: If every attempt failed before a response arrived.
    """
    cache_key = _get_cache_key("GET", url, headers)
    safe_target = safe_url(url)

    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP cache hit",
                    extra=extra_context(
                        event="cache_hit",
                        component="http_client",
                        action="GET",
                        target=safe_target
                    )
                )
            return cached

    getter = session.get if session is not None else requests.get
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = getter(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=dict(headers or {}),
                )
                result = (response.status_code, dict(response.headers), response.text)

                # Don't cache server errors
                if cache is not None and response.status_code < 500:
                    cache.set(cache_key, result)

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            outcome="success",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                return result

            except requests.Timeout:
                last_exception = f"timed out after {Constants.REQUEST_TIMEOUT} seconds"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

    raise TransportError(
        f"GET {safe_target} failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"
    )


def get_json(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Mapping[str, str]] = None,
    cache: Optional[ReadCache] = None,
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response.

    Args:
        url: Target URL
        session: Optional session to send the request through
        headers: Optional request headers (defaults to Accept: application/json)
        cache: Optional per-invocation read cache

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(
        url, session=session, headers=headers or HEADERS_JSON, cache=cache
    )

    if status_code == 200 and text:
        try:
            return status_code, response_headers, json.loads(text)
        except json.JSONDecodeError:
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        status_code=status_code,
                        target=safe_url(url)
                    )
                )
            return status_code, response_headers, None

    return status_code, response_headers, None


class RequestsTransport:
    """``HttpTransport`` backed by a ``requests`` session."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self._session = session or new_session()
        self._timeout = timeout

    def put(self, url: str, headers: Mapping[str, str], body: bytes) -> HttpResponse:
        """Perform a PUT request with consistent error handling and DEBUG traces.

        Raises:
            TransportError: On timeouts and connection errors.
        """
        safe_target = safe_url(url)
        timeout = self._timeout if self._timeout is not None else Constants.REQUEST_TIMEOUT
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="PUT",
                        target=safe_target
                    )
                )
            try:
                res = self._session.put(url, data=body, headers=dict(headers), timeout=timeout)
            except requests.Timeout as exc:
                raise TransportError(
                    f"PUT {safe_target} timed out after {timeout} seconds"
                ) from exc
            except requests.RequestException as exc:  # includes ConnectionError
                raise TransportError(f"PUT {safe_target} connection error: {exc}") from exc

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="PUT",
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target
                    )
                )
            return to_http_response(res)
