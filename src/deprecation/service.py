"""Submission protocol: confirm, PUT, classify, wait and retry.

The deprecation PUT is idempotent, so a rate-limited request is simply sent
again once the registry's ``Retry-After`` window has passed.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Dict, Optional

from constants import Constants
from common.errors import OperationCancelled, SubmissionFailure, UserAborted
from common.http_client import HttpResponse, HttpTransport
from common.http_debug import format_http_session
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from .request import DeprecationRequest

logger = logging.getLogger(__name__)

_AFFIRMATIVE = ("y", "yes")
_NEGATIVE = ("n", "no")


@dataclass(frozen=True)
class RetryDecision:
    """Classification of one HTTP attempt."""
    succeeded: bool
    retry: bool
    retry_after: timedelta = timedelta(0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[timedelta]:
    """Interpret a ``Retry-After`` header as a delay.

    Accepts delta-seconds or an HTTP-date; dates in the past yield zero.

    Returns:
        The delay, or None when the value is missing or unparseable.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return timedelta(seconds=int(text))
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or _utcnow()
    return max(when - now, timedelta(0))


def classify_response(
    response: HttpResponse,
    now: Optional[datetime] = None,
    default_retry_after: Optional[float] = None,
) -> RetryDecision:
    """Classify a response as success, retryable rate limit or terminal failure.

    403 is only a rate limit when the registry sends ``Retry-After``; 429 is
    always one.
    """
    if response.is_success:
        return RetryDecision(succeeded=True, retry=False)

    retry_after_header = response.headers.get("Retry-After")
    if (response.status_code == 403 and retry_after_header is not None) or response.status_code == 429:
        delay = parse_retry_after(retry_after_header, now)
        if delay is None:
            default = default_retry_after if default_retry_after is not None else Constants.DEFAULT_RETRY_AFTER_SEC
            delay = timedelta(seconds=default)
        return RetryDecision(succeeded=False, retry=True, retry_after=delay)

    return RetryDecision(succeeded=False, retry=False)


def deprecation_url(publish_url: str, package_id: str) -> str:
    """Endpoint receiving the deprecation PUT."""
    return f"{publish_url.rstrip('/')}/{package_id}/deprecations"


class DeprecationService:
    """Sends one deprecation request, honoring registry rate limits.

    Args:
        transport: Performs the HTTP PUT.
        input_func: Reads one line of user input (confirmation prompt).
        output_func: Writes prompt text for the user.
        cancel_event: Set to abort between attempts or while waiting.
        wait: ``wait(seconds) -> bool`` blocking for the retry delay; returns
            True when cancelled. Defaults to ``cancel_event.wait``.
        max_retries: Optional cap on retries; None retries until a terminal response.
    """

    def __init__(
        self,
        transport: HttpTransport,
        *,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
        cancel_event: Optional[threading.Event] = None,
        wait: Optional[Callable[[float], bool]] = None,
        max_retries: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._transport = transport
        self._input = input_func
        self._output = output_func
        self._cancel_event = cancel_event or threading.Event()
        self._wait = wait or self._cancel_event.wait
        self._max_retries = max_retries
        self._clock = clock

    def render(self, package_id: str, request: DeprecationRequest) -> str:
        """Text shown before the confirmation prompt."""
        return (
            f"The deprecation request will be for package '{package_id}' and have the "
            f"following content:\n\n{request.to_json()}\n"
        )

    def confirm(self, package_id: str, request: DeprecationRequest) -> bool:
        """Ask the user to approve the request; re-prompt until y or n.

        End of input counts as a refusal.
        """
        self._output(self.render(package_id, request))
        while True:
            try:
                answer = self._input("Do you want to proceed? (y/n) ")
            except EOFError:
                return False
            answer = (answer or "").strip().lower()
            if answer in _AFFIRMATIVE:
                return True
            if answer in _NEGATIVE:
                return False

    def _build_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "User-Agent": Constants.USER_AGENT,
        }
        if api_key and api_key.strip():
            headers[Constants.API_KEY_HEADER] = api_key
        return headers

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise OperationCancelled("The deprecation request was cancelled.")

    def deprecate(
        self,
        publish_url: str,
        package_id: str,
        api_key: Optional[str],
        request: DeprecationRequest,
        confirm: bool = False,
    ) -> None:
        """Submit ``request`` until it succeeds or fails terminally.

        Raises:
            UserAborted: The user declined the confirmation prompt.
            SubmissionFailure: A non-retryable response, or retries exhausted.
            OperationCancelled: Cancellation between attempts or while waiting.
            TransportError: The PUT could not be sent.
        """
        if confirm and not self.confirm(package_id, request):
            raise UserAborted("The deprecation request was not confirmed.")

        url = deprecation_url(publish_url, package_id)
        body = request.to_json().encode("utf-8")
        headers = self._build_headers(api_key)
        retries = 0

        while True:
            self._check_cancelled()

            response = self._transport.put(url, headers, body)
            if is_debug_enabled(logger):
                logger.debug(
                    "The full HTTP session is below:\n%s",
                    format_http_session("PUT", url, headers, body, response),
                    extra=extra_context(
                        event="http_session",
                        component="deprecation_service",
                        action="PUT",
                        status_code=response.status_code,
                        target=safe_url(url),
                    ),
                )

            decision = classify_response(response, self._clock())
            if decision.succeeded:
                return

            if not decision.retry:
                logger.error(
                    "The deprecation request failed: %d %s", response.status_code, response.reason
                )
                raise SubmissionFailure(response.status_code, response.reason)

            logger.warning(
                "The deprecation request was rate limited: %d %s",
                response.status_code,
                response.reason,
            )
            if self._max_retries is not None and retries >= self._max_retries:
                logger.error("Giving up after %d retries.", retries)
                raise SubmissionFailure(response.status_code, response.reason)
            retries += 1

            seconds = decision.retry_after.total_seconds()
            logger.warning("Retry will occur in %d seconds.", round(seconds))
            if self._wait(seconds):
                raise OperationCancelled("The deprecation request was cancelled while waiting to retry.")
