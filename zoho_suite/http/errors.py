"""Typed errors for Zoho API calls and the classifier that produces them.

Every failure that leaves the access layer is one of four ``ClassifiedError``
subclasses, each carrying enough detail for a caller to decide whether to retry:

- ``AuthError``: the token was rejected (401) or the refresh token itself was refused.
- ``RateLimitError``: 429, with ``retry_after_seconds`` from the Retry-After header.
- ``ApiError``: any other HTTP or transport failure; ``retryable`` for 5xx and network errors.
- ``ValidationError``: the request was malformed on our side and was never sent.
"""

import math
from collections.abc import Mapping
from typing import Any

import httpx

DEFAULT_RETRY_AFTER_SECONDS = 60

# status used for failures that never produced an HTTP response (timeouts, DNS, resets)
TRANSPORT_FAILURE_STATUS = 0


class ClassifiedError(Exception):
    """Base class for every error surfaced by the access layer."""

    retryable: bool = False
    http_status: int = 0

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(ClassifiedError):
    """Access token invalid or expired, or the refresh token was rejected."""

    http_status = 401

    def __init__(self, message: str = "Zoho rejected the access token", body: Any = None):
        super().__init__(message)
        self.body = body


class RateLimitError(ClassifiedError):
    """The product API answered 429."""

    retryable = True
    http_status = 429

    def __init__(
        self,
        retry_after_seconds: float = DEFAULT_RETRY_AFTER_SECONDS,
        message: str = "Rate limit exceeded",
    ):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class ApiError(ClassifiedError):
    """Generic API failure. Only 5xx and transport failures are retryable."""

    def __init__(self, message: str, http_status: int, body: Any = None, retryable: bool = False):
        super().__init__(message)
        self.http_status = http_status
        self.body = body
        self.retryable = retryable

    def __str__(self) -> str:
        return f"{self.message} (status {self.http_status})"


class ValidationError(ClassifiedError):
    """Caller-side malformed request, raised before anything is sent. Never retried."""


def parse_retry_after(value: str | None) -> float:
    """Seconds to wait according to a Retry-After header, 60 when absent or unparsable."""
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        seconds = float(value.strip())
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS
    if not math.isfinite(seconds) or seconds < 0:
        return DEFAULT_RETRY_AFTER_SECONDS
    return seconds


def _extract_message(status: int, body: Any) -> str:
    # CRM: {"code": "INVALID_TOKEN", "message": ...}; Books: {"code": 1002, "message": ...}
    if isinstance(body, Mapping):
        message = body.get("message")
        if message:
            return str(message)
        # CRM bulk responses nest per-record errors under "data"
        data = body.get("data")
        if isinstance(data, list) and data and isinstance(data[0], Mapping):
            nested = data[0].get("message")
            if nested:
                return str(nested)
    elif isinstance(body, str) and body.strip():
        return body.strip()[:500]

    try:
        reason = httpx.codes.get_reason_phrase(status)
    except ValueError:
        reason = ""
    return f"HTTP {status} {reason}".strip()


def classify(status: int, headers: Mapping[str, str], body: Any) -> ClassifiedError:
    """Map a non-2xx response into a ClassifiedError.

    Args:
        status: HTTP status code
        headers: Response headers (case-insensitive mapping preferred)
        body: Parsed JSON body, raw text, or None

    Returns:
        The error to raise; this function never raises itself
    """
    if status == httpx.codes.UNAUTHORIZED:
        return AuthError(_extract_message(status, body), body=body)

    if status == httpx.codes.TOO_MANY_REQUESTS:
        retry_after = parse_retry_after(_header(headers, "Retry-After"))
        return RateLimitError(retry_after_seconds=retry_after, message=_extract_message(status, body))

    if 400 <= status < 500:
        return ApiError(_extract_message(status, body), http_status=status, body=body)

    if status >= 500:
        return ApiError(_extract_message(status, body), http_status=status, body=body, retryable=True)

    return ApiError(f"Unexpected response status {status}", http_status=status, body=body)


def classify_response(response: httpx.Response) -> ClassifiedError:
    """Classify a failed httpx response, decoding its body when it is JSON."""
    body: Any
    try:
        body = response.json() if response.content else None
    except ValueError:
        body = response.text
    return classify(response.status_code, response.headers, body)


def classify_transport_error(error: Exception) -> ApiError:
    """Timeouts, DNS failures and dropped connections become retryable ApiErrors with status 0."""
    detail = str(error) or type(error).__name__
    return ApiError(
        f"{type(error).__name__}: {detail}",
        http_status=TRANSPORT_FAILURE_STATUS,
        retryable=True,
    )


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    # plain dicts are case-sensitive, httpx.Headers is not
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None
