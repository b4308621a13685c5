"""Human-readable HTTP transcripts for DEBUG logging.

Sensitive headers are replaced with a redaction marker; bodies are capped.
"""
from __future__ import annotations

import base64
from typing import Iterable, Mapping, Optional

from constants import Constants
from common.http_client import HttpResponse

# Headers whose values are joined on one line instead of one line per value
_JOIN_SPACE = {"user-agent"}
_JOIN_COMMA = {"accept-encoding"}


def _redacted_names(headers_to_redact: Optional[Iterable[str]]) -> set:
    names = headers_to_redact if headers_to_redact is not None else Constants.HEADERS_TO_REDACT
    return {name.lower() for name in names}


def _header_values(value) -> list:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def format_headers(headers: Mapping[str, object], headers_to_redact: Optional[Iterable[str]] = None) -> str:
    """Render headers as ``Name: value`` lines, redacting sensitive ones."""
    redacted = _redacted_names(headers_to_redact)
    lines = []
    for name, raw in headers.items():
        values = _header_values(raw)
        key = name.lower()
        if key in redacted:
            values = [Constants.REDACTED]
        if key in _JOIN_SPACE:
            lines.append(f"{name}: {' '.join(values)}")
        elif key in _JOIN_COMMA:
            lines.append(f"{name}: {', '.join(values)}")
        else:
            lines.extend(f"{name}: {value}" for value in values)
    return "".join(line + "\r\n" for line in lines)


def format_body(body: Optional[bytes], limit: Optional[int] = None) -> str:
    """Render a body as text, falling back to base64 for undecodable bytes."""
    if not body:
        return ""
    limit = limit if limit is not None else Constants.DEBUG_BODY_LIMIT
    data = body[:limit]
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        text = "<base64>\r\n" + base64.b64encode(data).decode("ascii")
    if len(body) > limit:
        text += "\r\n<truncated>"
    return text


def format_request(
    method: str,
    url: str,
    headers: Mapping[str, object],
    body: Optional[bytes] = None,
    http_version: str = "1.1",
    headers_to_redact: Optional[Iterable[str]] = None,
) -> str:
    """Render the request line, headers and body."""
    return (
        f"{method} {url} HTTP/{http_version}\r\n"
        + format_headers(headers, headers_to_redact)
        + "\r\n"
        + format_body(body)
    )


def format_response(response: HttpResponse, headers_to_redact: Optional[Iterable[str]] = None) -> str:
    """Render the status line, headers and body."""
    return (
        f"HTTP/{response.http_version} {response.status_code} {response.reason}\r\n"
        + format_headers(response.headers, headers_to_redact)
        + "\r\n"
        + format_body(response.body)
    )


def format_http_session(
    method: str,
    url: str,
    request_headers: Mapping[str, object],
    request_body: Optional[bytes],
    response: HttpResponse,
    headers_to_redact: Optional[Iterable[str]] = None,
) -> str:
    """Full request/response transcript of one exchange."""
    return (
        "=== REQUEST ===\n"
        + format_request(method, url, request_headers, request_body, response.http_version, headers_to_redact)
        + "\n\n=== RESPONSE ===\n"
        + format_response(response, headers_to_redact)
        + "\n"
    )
