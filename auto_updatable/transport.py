"""
HTTP transport for tag lookups and the Repology registry.

Requests go through urllib. ``request_with_retry`` owns the retry policy:
a bounded number of attempts, a fixed delay between them and a wall-clock
ceiling for the whole request. Callers see a single outcome.
"""

from __future__ import annotations

import json
import logging
import socket
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from . import __version__
from .config import Preferences

logger = logging.getLogger(__name__)

USER_AGENT = f"check-auto-updatable/{__version__}"

# Status reported when no HTTP exchange took place at all
NO_CONNECTION = 0

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class NetworkError(Exception):
    """Raised when a request fails below the HTTP layer."""
    pass


@dataclass(frozen=True)
class HttpResponse:
    """Status, body and headers of one HTTP exchange."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def status_text(self) -> str:
        """Status as curl prints it, ``000`` when nothing was received."""
        return f"{self.status:03d}"

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body.decode("utf-8"))


def http_request(
    url: str,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    data: bytes | None = None,
    timeout: float = 30,
) -> HttpResponse:
    """Perform a single HTTP request.

    HTTP error statuses are returned, not raised.

    Raises:
        NetworkError: If no HTTP response was received
    """
    default_headers = {"User-Agent": USER_AGENT}
    if headers:
        default_headers.update(headers)

    req = urllib.request.Request(url, data=data, headers=default_headers, method=method)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return HttpResponse(
                status=response.status,
                body=response.read(),
                headers=dict(response.headers.items()),
            )
    except urllib.error.HTTPError as e:
        body = e.read() if e.fp is not None else b""
        return HttpResponse(
            status=e.code,
            body=body,
            headers=dict(e.headers.items()) if e.headers else {},
        )
    except (urllib.error.URLError, socket.timeout, OSError) as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e


def is_retryable_status(status: int) -> bool:
    """Transient server-side statuses worth another attempt."""
    return status in RETRYABLE_STATUSES


def request_with_retry(
    url: str,
    preferences: Preferences,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    data: bytes | None = None,
) -> HttpResponse:
    """
    Perform a request with the configured retry policy.

    Transport failures and transient statuses are retried up to
    ``preferences.retries`` attempts, waiting ``retry_delay_seconds``
    between attempts, as long as the next attempt would start within
    ``retry_max_time_seconds`` of the first one.

    Returns:
        The last response. A transport failure on the final attempt yields a
        response with status ``NO_CONNECTION``.
    """
    start_time = time.monotonic()
    response = HttpResponse(status=NO_CONNECTION)

    for attempt in range(preferences.retries):
        try:
            response = http_request(
                url,
                method=method,
                headers=headers,
                data=data,
                timeout=preferences.request_timeout_seconds,
            )
            if not is_retryable_status(response.status):
                return response
            logger.debug(f"HTTP {response.status} from {url} (attempt {attempt + 1}/{preferences.retries})")
        except NetworkError as e:
            response = HttpResponse(status=NO_CONNECTION)
            logger.debug(f"{e} (attempt {attempt + 1}/{preferences.retries})")

        if attempt == preferences.retries - 1:
            break

        elapsed = time.monotonic() - start_time
        if elapsed + preferences.retry_delay_seconds > preferences.retry_max_time_seconds:
            logger.debug(f"Retry budget of {preferences.retry_max_time_seconds}s exhausted for {url}")
            break

        time.sleep(preferences.retry_delay_seconds)

    return response
