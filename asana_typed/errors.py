#!/usr/bin/env python3
"""
Asana Client Exception Classes

Exception hierarchy for the request/response pipeline, the classifier that
turns non-2xx responses into typed API errors, and the predicates callers use
to decide on retries without matching error strings.
"""

from datetime import timedelta
from http import HTTPStatus
from typing import Any, Dict, List, Optional

# Retry hint applied to 429 responses without a usable Retry-After header
DEFAULT_RETRY_AFTER = timedelta(seconds=60)

_ERROR_TYPES = {
    400: "bad_request",
    401: "unauthorized",
    402: "payment_required",
    403: "forbidden",
    404: "not_found",
    413: "payload_too_large",
    429: "rate_limited",
}


class AsanaClientError(Exception):
    """Base exception for Asana client errors"""

    pass


class AsanaValidationError(AsanaClientError, ValueError):
    """Raised when request data fails client-side validation before any I/O"""

    pass


class AsanaEncodingError(AsanaClientError):
    """Raised when options or request data cannot be serialized"""

    pass


class AsanaTransportError(AsanaClientError):
    """Raised when the HTTP transport fails (connection, timeout, TLS)"""

    pass


class AsanaDecodeError(AsanaClientError):
    """Raised when response data does not match the expected shape"""

    pass


class AsanaProtocolError(AsanaClientError):
    """Raised when a 2xx response carries no data"""

    pass


class AsanaStorageError(AsanaClientError):
    """Raised by response cache implementations"""

    pass


class AsanaTokenError(AsanaClientError):
    """Raised when no valid access token can be obtained"""

    pass


class AsanaOperationError(AsanaClientError):
    """Wraps a pipeline error with the accessor operation that failed"""

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class AsanaAPIError(AsanaClientError):
    """
    Error response returned by the API.

    Instances are built by classify() and are read-only afterwards.
    """

    def __init__(
        self,
        status_code: int,
        type: str,
        message: str,
        phrase: Optional[str] = None,
        help: Optional[str] = None,
        retry_after: Optional[timedelta] = None,
        request_id: str = "",
    ):
        super().__init__(f"{type}: {message}")
        self._status_code = status_code
        self._type = type
        self._message = message
        self._phrase = phrase
        self._help = help
        self._retry_after = retry_after
        self._request_id = request_id

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def type(self) -> str:
        return self._type

    @property
    def message(self) -> str:
        return self._message

    @property
    def phrase(self) -> Optional[str]:
        return self._phrase

    @property
    def help(self) -> Optional[str]:
        return self._help

    @property
    def retry_after(self) -> Optional[timedelta]:
        return self._retry_after

    @property
    def request_id(self) -> str:
        return self._request_id

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status_code={self._status_code}, "
            f"type={self._type!r}, message={self._message!r}, "
            f"request_id={self._request_id!r})"
        )


class AsanaAuthenticationError(AsanaAPIError):
    """Raised when authentication fails (401)"""

    pass


class AsanaNotFoundError(AsanaAPIError):
    """Raised when resource is not found (404)"""

    pass


class AsanaPayloadTooLargeError(AsanaAPIError):
    """Raised when the request body is too large (413)"""

    pass


class AsanaRateLimitError(AsanaAPIError):
    """Raised when rate limit is exceeded (429)"""

    pass


class AsanaServerError(AsanaAPIError):
    """Raised when server returns 5xx error"""

    pass


# ============================================================================
# Classification
# ============================================================================

def status_text(status: int) -> str:
    """HTTP reason phrase for a status code, or a generic fallback."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"HTTP {status}"


def parse_retry_after(header: Optional[str]) -> timedelta:
    """Parse a Retry-After header given in seconds, defaulting to 60s."""
    if header is None:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = int(str(header).strip())
    except ValueError:
        return DEFAULT_RETRY_AFTER
    if seconds < 0:
        return DEFAULT_RETRY_AFTER
    return timedelta(seconds=seconds)


def _error_class(status: int) -> type:
    if status == 401:
        return AsanaAuthenticationError
    if status == 404:
        return AsanaNotFoundError
    if status == 413:
        return AsanaPayloadTooLargeError
    if status == 429:
        return AsanaRateLimitError
    if 500 <= status <= 599:
        return AsanaServerError
    return AsanaAPIError


def classify(
    status: int,
    errors: Optional[List[Dict[str, Any]]],
    retry_after_header: Optional[str],
    request_id: str,
    malformed: bool = False,
) -> AsanaAPIError:
    """
    Convert an error response into the matching AsanaAPIError subclass.

    Args:
        status: HTTP status code of the response
        errors: The envelope's errors list, or None when there was no envelope
        retry_after_header: Raw Retry-After header value, if any
        request_id: Correlation id of the request
        malformed: True when the body could not be decoded as JSON

    Returns:
        The classified error. The classifier never raises or retries.
    """
    phrase = None
    help_text = None

    retry_hint = parse_retry_after(retry_after_header) if status == 429 else None

    if malformed:
        return AsanaAPIError(
            status_code=status,
            type="unknown",
            message=status_text(status),
            retry_after=retry_hint,
            request_id=request_id,
        )

    if errors:
        first = errors[0] if isinstance(errors[0], dict) else {}
        message = first.get("message") or status_text(status)
        phrase = first.get("phrase")
        help_text = first.get("help")
    else:
        message = status_text(status)

    error_type = _ERROR_TYPES.get(status)
    if error_type is None:
        error_type = "server_error" if 500 <= status <= 599 else "api_error"

    return _error_class(status)(
        status_code=status,
        type=error_type,
        message=message,
        phrase=phrase,
        help=help_text,
        retry_after=retry_hint,
        request_id=request_id,
    )


# ============================================================================
# Predicates
# ============================================================================

def api_error(err: Optional[BaseException]) -> Optional[AsanaAPIError]:
    """Find the AsanaAPIError behind err, following wrapped causes."""
    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, AsanaAPIError):
            return err
        seen.add(id(err))
        err = err.__cause__
    return None


def _status(err: Optional[BaseException]) -> Optional[int]:
    found = api_error(err)
    return found.status_code if found is not None else None


def is_auth_error(err: Optional[BaseException]) -> bool:
    """True if err represents a 401 Authorization error response"""
    return _status(err) == 401


def is_not_found_error(err: Optional[BaseException]) -> bool:
    """True if err represents a 404 not found response"""
    return _status(err) == 404


def is_payload_too_large(err: Optional[BaseException]) -> bool:
    """True if err represents a 413 payload too large response"""
    return _status(err) == 413


def is_rate_limited(err: Optional[BaseException]) -> bool:
    """True if err represents a 429 rate limit response"""
    return _status(err) == 429


def is_recoverable_error(err: Optional[BaseException]) -> bool:
    """True if err represents a 5xx server error which may succeed on retry"""
    status = _status(err)
    return status is not None and 500 <= status <= 599


def retry_after(err: Optional[BaseException]) -> Optional[timedelta]:
    """The server's requested backoff for a rate limited request, if any"""
    found = api_error(err)
    return found.retry_after if found is not None else None
