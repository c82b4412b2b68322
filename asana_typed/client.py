#!/usr/bin/env python3
"""
Asana API Client

The request/response pipeline shared by every resource accessor:
- Merges per-call options over the client defaults
- Encodes query parameters (GET) or the JSON body (POST/PUT)
- Attaches feature headers; authentication comes from the session
- Unwraps the {data, next_page, errors} envelope
- Classifies error responses (see errors.classify)
- Optionally caches GET responses by path

The client never retries. Rate limit and server errors carry the hints a
caller needs to implement its own backoff.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import requests

from .cache import Cache, MapCache
from .errors import (
    AsanaAPIError,
    AsanaDecodeError,
    AsanaEncodingError,
    AsanaProtocolError,
    AsanaStorageError,
    AsanaTransportError,
    classify,
)
from .infrastructure import BASE_URL, AsanaSDKConfig, get_config, raise_alert
from .oauth import authorized_session
from .options import (
    Options,
    encode_options_body,
    encode_options_query,
    encode_query_data,
    feature_headers,
    merge_options,
)
from .types import encode_value

# Configure logging
logger = logging.getLogger(__name__)

ResultType = Optional[Callable[[Any], Any]]


@dataclass(frozen=True)
class NextPage:
    """Opaque pagination cursor returned by the server."""

    offset: str = ""
    path: str = ""
    uri: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["NextPage"]:
        """Decode the envelope's next_page. A cursor without an offset ends the listing."""
        if not data:
            return None
        if not isinstance(data, dict):
            raise AsanaDecodeError(f"Unexpected next_page value: {data!r}")
        if not data.get("offset"):
            logger.debug(f"Ignoring next_page without offset: {data!r}")
            return None
        return cls(
            offset=data.get("offset") or "",
            path=data.get("path") or "",
            uri=data.get("uri") or "",
        )


@dataclass(frozen=True)
class ErrorDetail:
    message: Optional[str] = None
    phrase: Optional[str] = None
    help: Optional[str] = None


@dataclass
class Response:
    """A decoded API response envelope."""

    data: Any = None
    next_page: Optional[NextPage] = None
    errors: List[ErrorDetail] = field(default_factory=list)
    raw_errors: Optional[List[Dict[str, Any]]] = None


def new_request_id() -> str:
    """Correlation id attached to log lines and errors of one request."""
    return uuid.uuid4().hex[:20]


def _json_default(value: Any) -> Any:
    encoded = encode_value(value)
    if encoded is value:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return encoded


def decode_result(data: Any, result_type: ResultType, request_id: str = "") -> Any:
    """
    Decode envelope data into the caller's result shape.

    result_type may be None (raw JSON), a class with from_dict, or any callable
    such as types.list_of(Task).
    """
    if result_type is None:
        return data
    decode = getattr(result_type, "from_dict", result_type)
    try:
        return decode(data)
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        raise AsanaDecodeError(f"{request_id} Unable to parse response data: {e}") from e


class Client:
    """
    Root client for the Asana API.

    The session must inject the Authorization header; use with_access_token(),
    from_token_manager() or oauth.App.new_client() to build one.

    Example:
        client = Client.with_access_token(token)
        task, _ = client.get("/tasks/123", None, Task)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
        default_options: Optional[Options] = None,
        cache: Optional[Cache] = None,
        debug: bool = False,
        timeout: Optional[float] = None,
    ):
        self.session = session if session is not None else requests.Session()
        self.base_url = base_url.rstrip("/")
        self.default_options = default_options or Options()
        self.cache = cache
        # Dumps request and response bodies at DEBUG level
        self.debug = debug
        self.timeout = timeout

    @classmethod
    def with_access_token(cls, access_token: str, **kwargs) -> "Client":
        """Client authenticating with a Personal Access Token."""
        return cls(session=authorized_session(access_token), **kwargs)

    @classmethod
    def from_token_manager(cls, manager=None, **kwargs) -> "Client":
        """Client authenticating with a token from a TokenManager."""
        if manager is None:
            from .token_manager import TokenManager

            config = get_config()
            manager = TokenManager(
                token_file=config.token_file,
                refresh_help_command=config.refresh_help_command,
            )
        return cls.with_access_token(manager.get_valid_token(), **kwargs)

    @classmethod
    def from_config(cls, config: Optional[AsanaSDKConfig] = None, **kwargs) -> "Client":
        """Client built from environment configuration."""
        config = config or get_config()
        kwargs.setdefault("base_url", config.base_url)
        kwargs.setdefault("debug", config.debug)
        kwargs.setdefault("timeout", config.request_timeout)
        if "cache" not in kwargs and config.cache_expiry:
            kwargs["cache"] = MapCache(config.cache_expiry)
        if config.access_token:
            return cls.with_access_token(config.access_token, **kwargs)
        return cls.from_token_manager(**kwargs)

    # ========== Verbs ==========

    def get(
        self,
        path: str,
        data: Any = None,
        result_type: ResultType = None,
        *options: Options,
    ) -> Tuple[Any, Optional[NextPage]]:
        """
        GET a resource.

        Args:
            path: API path starting with '/'
            data: Query struct (dict, dataclass or object with to_query())
            result_type: Decoder for the response data
            *options: Per-call options, later ones taking precedence

        Returns:
            Tuple of (decoded result, next page cursor or None)
        """
        request_id = new_request_id()

        merged = self._merge(options, request_id)
        self._validate(data)

        path = self.query_path(path, data, *options)

        cached = self._get_cached(path)
        if cached is not None:
            try:
                value = json.loads(cached)
            except ValueError as e:
                raise AsanaDecodeError(f"{request_id} Cached response for {path} is corrupt: {e}") from e
            return decode_result(value, result_type, request_id), None

        logger.debug(f"{request_id} GET {path}")
        resp = self._send("GET", path, request_id, headers=feature_headers(merged))

        response = self._parse_response(resp, request_id)
        result = decode_result(response.data, result_type, request_id)
        # A cache hit has no cursor, so pages that carry one are not stored
        if response.next_page is None:
            self._put_cached(path, response.data)
        return result, response.next_page

    def post(self, path: str, data: Any = None, result_type: ResultType = None, *options: Options) -> Any:
        """POST data to path and decode the created or updated resource."""
        return self._do("POST", path, data, result_type, options)

    def put(self, path: str, data: Any = None, result_type: ResultType = None, *options: Options) -> Any:
        """PUT data to path and decode the updated resource."""
        return self._do("PUT", path, data, result_type, options)

    def delete(self, path: str, *options: Options) -> None:
        """DELETE the resource at path. Any 2xx response is success."""
        request_id = new_request_id()
        merged = self._merge(options, request_id)

        logger.debug(f"{request_id} DELETE {path}")
        resp = self._send("DELETE", path, request_id, headers=feature_headers(merged))

        if not 200 <= resp.status_code <= 299:
            self._parse_response(resp, request_id)
        elif self.debug:
            logger.debug(f"{request_id} {resp.status_code} {resp.text}")
        self.clear_cache(path)

    def post_multipart(
        self,
        path: str,
        field_name: str,
        stream: BinaryIO,
        filename: str,
        content_type: str,
        result_type: ResultType = None,
        *options: Options,
    ) -> Any:
        """
        POST a file as multipart/form-data.

        The stream is closed once the request has been sent.
        """
        request_id = new_request_id()
        try:
            merged = self._merge(options, request_id)

            logger.debug(
                f"{request_id} POST multipart {path} {field_name}={filename};ContentType={content_type}"
            )
            resp = self._send(
                "POST",
                path,
                request_id,
                headers=feature_headers(merged),
                files={field_name: (filename, stream, content_type)},
            )
        finally:
            stream.close()

        return self._handle_write(resp, result_type, request_id)

    # ========== Cache ==========

    def query_path(self, path: str, data: Any = None, *options: Options) -> str:
        """
        The path and query string a GET with these arguments requests.

        This is also the key its response is cached under.
        """
        params = encode_options_query(self.default_options)
        params.update(encode_query_data(data))
        params.update(encode_options_query(merge_options(options)))
        if params:
            return f"{path}?{urlencode(params)}"
        return path

    def clear_cache(self, path: str, all_queries: bool = False) -> None:
        """
        Drop any cached response for path.

        With all_queries, responses cached for path under any query string
        (field selections, page cursors) are dropped too.
        """
        if self.cache is None:
            return
        logger.debug(f"Clearing cache for {path}")
        try:
            if all_queries:
                self.cache.clear_path(path)
            else:
                self.cache.clear(path)
        except AsanaStorageError as e:
            logger.warning(f"Unable to clear cache for {path}: {e}")

    def _get_cached(self, path: str) -> Optional[bytes]:
        if self.cache is None:
            return None
        logger.debug(f"Check for cached response for {path}")
        try:
            value = self.cache.get(path)
        except AsanaStorageError as e:
            logger.warning(f"Cache lookup failed for {path}: {e}")
            return None
        if value is None:
            return None
        logger.info(f"Using cached response for {path}")
        return value

    def _put_cached(self, path: str, data: Any) -> None:
        if self.cache is None:
            return
        logger.debug(f"Caching response for {path}")
        try:
            self.cache.put(path, json.dumps(data).encode("utf-8"))
        except AsanaStorageError as e:
            logger.warning(f"Unable to cache response for {path}: {e}")

    def _cache_key_for_location(self, location: str) -> str:
        if location.startswith(self.base_url):
            location = location[len(self.base_url):]
        return location

    # ========== Internals ==========

    def _merge(self, options: Tuple[Options, ...], request_id: str) -> Options:
        try:
            return merge_options(options, self.default_options)
        except AsanaEncodingError as e:
            raise AsanaEncodingError(f"{request_id} unable to merge options: {e}") from e

    @staticmethod
    def _validate(data: Any) -> None:
        validate = getattr(data, "validate", None)
        if callable(validate):
            validate()

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            raise ValueError(f"Invalid API path: {path!r}")
        return self.base_url + path

    def _do(self, method: str, path: str, data: Any, result_type: ResultType, options) -> Any:
        request_id = new_request_id()

        merged = self._merge(options, request_id)
        self._validate(data)

        body: Dict[str, Any] = {"data": data.to_dict() if hasattr(data, "to_dict") else data}
        options_body = encode_options_body(merged)
        if options_body:
            body["options"] = options_body

        try:
            payload = json.dumps(body, default=_json_default)
        except (TypeError, ValueError) as e:
            raise AsanaEncodingError(f"{request_id} Unable to encode request body: {e}") from e

        if self.debug:
            logger.debug(f"{request_id} {method} {path}\n{json.dumps(body, indent=2, default=_json_default)}")
        else:
            logger.debug(f"{request_id} {method} {path}")

        headers = {"Content-Type": "application/json"}
        headers.update(feature_headers(merged))
        resp = self._send(method, path, request_id, headers=headers, data=payload.encode("utf-8"))

        result = self._handle_write(resp, result_type, request_id)
        if method == "PUT":
            self.clear_cache(path)
        return result

    def _handle_write(self, resp: requests.Response, result_type: ResultType, request_id: str) -> Any:
        response = self._parse_response(resp, request_id)
        result = decode_result(response.data, result_type, request_id)

        location = resp.headers.get("Location")
        if resp.status_code == 201 and location:
            self._put_cached(self._cache_key_for_location(location), response.data)
        return result

    def _send(self, method: str, path: str, request_id: str, **kwargs) -> requests.Response:
        url = self._url(path)
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise AsanaTransportError(f"{request_id} {method} error: {e}") from e

    def _parse_response(self, resp: requests.Response, request_id: str) -> Response:
        """
        Unwrap the response envelope.

        Raises:
            AsanaAPIError: For malformed bodies and non-200/201 statuses
            AsanaProtocolError: For a success response without data
        """
        status = resp.status_code
        body = resp.content or b""

        if self.debug:
            logger.debug(f"{request_id} {status} {dict(resp.headers)}\n{body[:4096]!r}")

        try:
            envelope = json.loads(body)
        except ValueError:
            envelope = None

        if not isinstance(envelope, dict):
            self._raise_classified(
                classify(status, None, resp.headers.get("Retry-After"), request_id, malformed=True)
            )

        raw_errors = envelope.get("errors")
        if raw_errors is not None and not isinstance(raw_errors, list):
            raw_errors = [raw_errors]

        if status not in (200, 201):
            self._raise_classified(classify(status, raw_errors, resp.headers.get("Retry-After"), request_id))

        if envelope.get("data") is None:
            raise AsanaProtocolError(f"{request_id} Missing data from response")

        return Response(
            data=envelope["data"],
            next_page=NextPage.from_dict(envelope.get("next_page")),
            errors=[
                ErrorDetail(e.get("message"), e.get("phrase"), e.get("help"))
                for e in raw_errors or []
                if isinstance(e, dict)
            ],
            raw_errors=raw_errors,
        )

    @staticmethod
    def _raise_classified(error: AsanaAPIError) -> None:
        """Report a classified error on the alert side channel, then raise it."""
        context = {
            "http_status": error.status_code,
            "request_id": error.request_id,
            "error": error.message,
        }
        if error.status_code == 401:
            raise_alert("critical", "auth_failed", "Asana rejected the access token", context)
        elif error.status_code == 429:
            if error.retry_after is not None:
                context["retry_after_seconds"] = int(error.retry_after.total_seconds())
            raise_alert("urgent", "rate_limit_hit", "Asana API rate limit exceeded", context)
        elif 500 <= error.status_code <= 599:
            raise_alert(
                "warning",
                "api_server_error",
                f"Asana server error (HTTP {error.status_code})",
                context,
            )
        logger.debug(f"{error.request_id} {error!r}")
        raise error


def fetch_all(page: Callable[..., Tuple[List[Any], Optional[NextPage]]], limit: int, *options: Options) -> List[Any]:
    """
    Repeatedly page through a list endpoint.

    Args:
        page: Function taking *options and returning (items, next_page)
        limit: Page size
        *options: Caller options; the page limit and offset override them

    Returns:
        All items in server order
    """
    results: List[Any] = []
    caller_options = [replace(o, limit=None, offset=None) for o in options]
    offset = None

    while True:
        items, next_page = page(*caller_options, Options(limit=limit, offset=offset))
        results.extend(items)
        if next_page is None or not next_page.offset:
            return results
        offset = next_page.offset
