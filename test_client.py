#!/usr/bin/env python3
"""
Unit tests for client.py

Tests cover:
- GET/POST/PUT/DELETE/multipart request construction
- Envelope decoding and pagination cursors
- Error classification and alerts
- Response caching
- Transport and decoding failures
"""

import json
import sys
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from asana_typed import (
    AsanaAPIError,
    AsanaAuthenticationError,
    AsanaDecodeError,
    AsanaEncodingError,
    AsanaNotFoundError,
    AsanaProtocolError,
    AsanaRateLimitError,
    AsanaServerError,
    AsanaTransportError,
    Client,
    CreateTaskRequest,
    Feature,
    MapCache,
    NextPage,
    Options,
    TagBase,
    Task,
    Workspace,
    create_task,
    fetch_all,
    get_config,
    is_rate_limited,
    is_recoverable_error,
    retry_after,
)
from asana_typed.types import list_of

BASE = "https://app.asana.com/api/1.0"


def mock_response(status=200, body=None, headers=None, raw=None):
    """Build a response object the way requests returns it."""
    resp = Mock()
    resp.status_code = status
    if raw is None:
        raw = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.content = raw
    resp.text = raw.decode("utf-8", errors="replace")
    resp.headers = headers or {}
    return resp


def sent_url(session, index=-1):
    return session.request.call_args_list[index][0][1]


def sent_query(session, index=-1):
    return parse_qs(urlsplit(sent_url(session, index)).query)


def sent_body(session, index=-1):
    return json.loads(session.request.call_args_list[index][1]["data"])


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return Client(session=session)


@pytest.fixture
def alerts():
    callback = Mock()
    get_config().set_alert_callback(callback)
    yield callback
    get_config().set_alert_callback(None)


class TestClientInitialization:
    """Tests for client construction."""

    def test_with_access_token(self):
        client = Client.with_access_token("secret")
        request = requests.Request("GET", BASE + "/users/me").prepare()
        client.session.auth(request)
        assert request.headers["Authorization"] == "Bearer secret"

    def test_base_url_trailing_slash(self, session):
        client = Client(session=session, base_url="https://example.test/api/")
        session.request.return_value = mock_response(body={"data": {}})
        client.get("/users/me")
        assert sent_url(session) == "https://example.test/api/users/me"

    def test_from_config_uses_static_token(self):
        config = Mock(
            base_url=BASE,
            debug=False,
            request_timeout=12.0,
            cache_expiry=timedelta(seconds=30),
            access_token="env-token",
        )
        client = Client.from_config(config)

        assert client.timeout == 12.0
        assert isinstance(client.cache, MapCache)
        assert client.session.auth.token == "env-token"

    def test_from_token_manager(self):
        manager = Mock()
        manager.get_valid_token.return_value = "file-token"
        client = Client.from_token_manager(manager)
        assert client.session.auth.token == "file-token"

    def test_path_must_be_absolute(self, client):
        with pytest.raises(ValueError):
            client.get("tasks/123")


class TestGet:
    """Tests for GET requests and envelope decoding."""

    def test_get_single_resource(self, client, session):
        session.request.return_value = mock_response(body={"data": {"gid": "123", "name": "Buy milk"}})

        task, next_page = client.get("/tasks/123", None, Task)

        assert isinstance(task, Task)
        assert task.gid == "123"
        assert task.name == "Buy milk"
        assert next_page is None
        args, kwargs = session.request.call_args
        assert args == ("GET", BASE + "/tasks/123")
        assert kwargs["headers"] == {}

    def test_raw_result_without_type(self, client, session):
        session.request.return_value = mock_response(body={"data": [{"gid": "1"}]})
        data, _ = client.get("/workspaces")
        assert data == [{"gid": "1"}]

    def test_next_page_cursor(self, client, session):
        session.request.return_value = mock_response(body={
            "data": [{"gid": "1"}, {"gid": "2"}],
            "next_page": {"offset": "abc", "path": "/projects/9/tasks?offset=abc", "uri": BASE + "/projects/9/tasks?offset=abc"},
        })

        tasks, next_page = client.get("/projects/9/tasks", None, list_of(Task))

        assert [t.gid for t in tasks] == ["1", "2"]
        assert next_page == NextPage(
            offset="abc",
            path="/projects/9/tasks?offset=abc",
            uri=BASE + "/projects/9/tasks?offset=abc",
        )

        session.request.return_value = mock_response(body={"data": [{"gid": "3"}]})
        client.get("/projects/9/tasks", None, list_of(Task), Options(offset=next_page.offset))
        assert sent_query(session)["offset"] == ["abc"]

    def test_null_next_page(self, client, session):
        session.request.return_value = mock_response(body={"data": [], "next_page": None})
        _, next_page = client.get("/tags")
        assert next_page is None

    def test_next_page_must_be_an_object(self, client, session):
        session.request.return_value = mock_response(body={"data": [], "next_page": "abc"})
        with pytest.raises(AsanaDecodeError):
            client.get("/tags")

    def test_next_page_without_offset_ends_listing(self, client, session):
        session.request.return_value = mock_response(
            body={"data": [], "next_page": {"path": "/tags?offset=", "uri": BASE + "/tags?offset="}}
        )
        _, next_page = client.get("/tags")
        assert next_page is None

    def test_query_precedence(self, session):
        client = Client(session=session, default_options=Options(fields=["name"], limit=20))
        session.request.return_value = mock_response(body={"data": []})

        client.get("/tasks", {"project": "9", "limit": 5}, None, Options(fields=["gid"]))

        query = sent_query(session)
        assert query["opt_fields"] == ["gid"]
        assert query["project"] == ["9"]
        assert query["limit"] == ["5"]

    def test_method_option_is_not_a_query_parameter(self, client, session):
        session.request.return_value = mock_response(body={"data": {}})
        client.get("/users/me", None, None, Options(method="PUT", pretty=True))
        assert sent_query(session) == {"opt_pretty": ["true"]}

    def test_feature_headers(self, session):
        client = Client(session=session, default_options=Options(enable=[Feature.STRING_IDS]))
        session.request.return_value = mock_response(body={"data": {}})

        client.get("/tasks/1", None, None, Options(enable=[Feature.NEW_SECTIONS], fast_api=True))

        headers = session.request.call_args[1]["headers"]
        assert headers["Asana-Enable"] == "string_ids,new_sections"
        assert headers["Asana-Fast-Api"] == "true"

    def test_timeout_passed_to_transport(self, session):
        client = Client(session=session, timeout=7.5)
        session.request.return_value = mock_response(body={"data": {}})
        client.get("/users/me")
        assert session.request.call_args[1]["timeout"] == 7.5

    def test_missing_data_is_protocol_error(self, client, session):
        session.request.return_value = mock_response(body={"data": None})
        with pytest.raises(AsanaProtocolError):
            client.get("/tasks/1")

    def test_malformed_json_success_status(self, client, session):
        session.request.return_value = mock_response(status=200, raw=b"<html>oops</html>")

        with pytest.raises(AsanaAPIError) as exc_info:
            client.get("/tasks/1")

        assert exc_info.value.type == "unknown"
        assert exc_info.value.status_code == 200

    def test_unexpected_success_status(self, client, session):
        session.request.return_value = mock_response(status=204, raw=b"{}")
        with pytest.raises(AsanaAPIError) as exc_info:
            client.get("/tasks/1")
        assert exc_info.value.status_code == 204

    def test_decode_failure(self, client, session):
        session.request.return_value = mock_response(body={"data": [{"gid": "1"}]})
        with pytest.raises(AsanaDecodeError):
            client.get("/tasks/1", None, Task)

    def test_transport_failure(self, client, session):
        session.request.side_effect = requests.ConnectionError("Connection refused")

        with pytest.raises(AsanaTransportError) as exc_info:
            client.get("/tasks/1")

        assert "Connection refused" in str(exc_info.value)
        assert session.request.call_count == 1

    def test_bad_options_fail_before_sending(self, client, session):
        with pytest.raises(AsanaEncodingError):
            client.get("/tasks/1", None, None, Options(fields="name"))
        session.request.assert_not_called()


class TestErrorResponses:
    """Tests for classification of error responses."""

    def test_rate_limited(self, client, session, alerts):
        session.request.return_value = mock_response(
            status=429,
            body={"errors": [{"message": "You have made too many requests recently."}]},
            headers={"Retry-After": "5"},
        )

        with pytest.raises(AsanaRateLimitError) as exc_info:
            client.get("/tasks/1")

        err = exc_info.value
        assert err.type == "rate_limited"
        assert is_rate_limited(err)
        assert retry_after(err) == timedelta(seconds=5)
        assert session.request.call_count == 1
        severity, category, _, context = alerts.call_args[0]
        assert (severity, category) == ("urgent", "rate_limit_hit")
        assert context["retry_after_seconds"] == 5

    def test_rate_limited_without_header(self, client, session, alerts):
        session.request.return_value = mock_response(status=429, body={"errors": []})
        with pytest.raises(AsanaRateLimitError) as exc_info:
            client.get("/tasks/1")
        assert exc_info.value.retry_after == timedelta(seconds=60)

    def test_rate_limited_text_body(self, client, session, alerts):
        session.request.return_value = mock_response(
            status=429, raw=b"Too Many Requests", headers={"Retry-After": "5"}
        )

        with pytest.raises(AsanaAPIError) as exc_info:
            client.get("/tasks/1")

        err = exc_info.value
        assert err.type == "unknown"
        assert is_rate_limited(err)
        assert retry_after(err) == timedelta(seconds=5)
        severity, category, _, context = alerts.call_args[0]
        assert (severity, category) == ("urgent", "rate_limit_hit")
        assert context["retry_after_seconds"] == 5

    def test_rate_limited_empty_body(self, client, session, alerts):
        session.request.return_value = mock_response(status=429, raw=b"")
        with pytest.raises(AsanaAPIError) as exc_info:
            client.get("/tasks/1")
        assert exc_info.value.retry_after == timedelta(seconds=60)
        assert alerts.call_args[0][3]["retry_after_seconds"] == 60

    def test_unauthorized(self, client, session, alerts):
        session.request.return_value = mock_response(
            status=401, body={"errors": [{"message": "Not Authorized"}]}
        )

        with pytest.raises(AsanaAuthenticationError) as exc_info:
            client.get("/users/me")

        assert exc_info.value.message == "Not Authorized"
        assert alerts.call_args[0][:2] == ("critical", "auth_failed")

    def test_not_found(self, client, session, alerts):
        session.request.return_value = mock_response(
            status=404, body={"errors": [{"message": "task: Unknown object: 999"}]}
        )

        with pytest.raises(AsanaNotFoundError):
            client.get("/tasks/999")
        alerts.assert_not_called()

    def test_server_error(self, client, session, alerts):
        session.request.return_value = mock_response(
            status=503, body={"errors": [{"message": "Unavailable", "phrase": "purple dogs dance"}]}
        )

        with pytest.raises(AsanaServerError) as exc_info:
            client.get("/tasks/1")

        assert is_recoverable_error(exc_info.value)
        assert exc_info.value.phrase == "purple dogs dance"
        assert alerts.call_args[0][:2] == ("warning", "api_server_error")

    def test_malformed_error_body(self, client, session, alerts):
        session.request.return_value = mock_response(status=502, raw=b"Bad Gateway")
        with pytest.raises(AsanaAPIError) as exc_info:
            client.get("/tasks/1")
        assert exc_info.value.type == "unknown"
        assert exc_info.value.status_code == 502


class TestWrites:
    """Tests for POST, PUT, DELETE and multipart requests."""

    def test_create_task_drops_assignee_status_without_assignee(self, client, session):
        session.request.return_value = mock_response(status=201, body={"data": {"gid": "55", "name": "Ship it"}})

        task = create_task(client, CreateTaskRequest(name="Ship it", assignee_status="today", workspace="1"))

        assert task.gid == "55"
        args, kwargs = session.request.call_args
        assert args == ("POST", BASE + "/tasks")
        assert kwargs["headers"]["Content-Type"] == "application/json"
        body = sent_body(session)
        assert body == {"data": {"name": "Ship it", "workspace": "1"}}

    def test_post_options_in_body(self, client, session):
        session.request.return_value = mock_response(status=201, body={"data": {"gid": "1"}})

        client.post("/tags", {"name": "urgent"}, None, Options(fields=["name"], pretty=True))

        assert sent_body(session) == {
            "data": {"name": "urgent"},
            "options": {"pretty": True, "fields": ["name"]},
        }

    def test_put(self, client, session):
        session.request.return_value = mock_response(body={"data": {"gid": "1", "completed": True}})

        task = Task(gid="1", name="Keep me")
        client.put("/tasks/1", {"completed": True}, task.update_from)

        assert session.request.call_args[0][0] == "PUT"
        assert task.completed is True
        assert task.name == "Keep me"

    def test_write_error(self, client, session):
        session.request.return_value = mock_response(
            status=400, body={"errors": [{"message": "workspace: Missing input"}]}
        )
        with pytest.raises(AsanaAPIError) as exc_info:
            client.post("/tasks", {"name": "x"})
        assert exc_info.value.type == "bad_request"
        assert exc_info.value.message == "workspace: Missing input"

    def test_unencodable_body(self, client, session):
        with pytest.raises(AsanaEncodingError):
            client.post("/tasks", {"blob": object()})
        session.request.assert_not_called()

    def test_delete_accepts_any_2xx(self, client, session):
        session.request.return_value = mock_response(status=204)
        client.delete("/tasks/1")
        assert session.request.call_args[0][:2] == ("DELETE", BASE + "/tasks/1")

    def test_delete_error(self, client, session):
        session.request.return_value = mock_response(status=404, body={"errors": [{"message": "gone"}]})
        with pytest.raises(AsanaNotFoundError):
            client.delete("/tasks/1")

    def test_post_multipart(self, client, session):
        session.request.return_value = mock_response(status=200, body={"data": {"gid": "9", "name": "a.txt"}})
        stream = Mock()

        result = client.post_multipart("/tasks/1/attachments", "file", stream, "a.txt", "text/plain")

        assert result == {"gid": "9", "name": "a.txt"}
        kwargs = session.request.call_args[1]
        assert kwargs["files"] == {"file": ("a.txt", stream, "text/plain")}
        stream.close.assert_called_once()

    def test_post_multipart_closes_stream_on_failure(self, client, session):
        session.request.side_effect = requests.Timeout("timed out")
        stream = Mock()

        with pytest.raises(AsanaTransportError):
            client.post_multipart("/tasks/1/attachments", "file", stream, "a.txt", "text/plain")
        stream.close.assert_called_once()


class TestCaching:
    """Tests for the GET response cache."""

    @pytest.fixture
    def cached_client(self, session):
        return Client(session=session, cache=MapCache(300))

    def test_second_get_is_served_from_cache(self, cached_client, session):
        session.request.return_value = mock_response(body={"data": {"gid": "1", "name": "Cached"}})

        first, _ = cached_client.get("/tasks/1", None, Task)
        second, cursor = cached_client.get("/tasks/1", None, Task)

        assert session.request.call_count == 1
        assert second == first
        assert cursor is None

    def test_cache_key_includes_query(self, cached_client, session):
        session.request.return_value = mock_response(body={"data": []})
        cached_client.get("/tags", None, None, Options(limit=50))
        cached_client.get("/tags", None, None, Options(limit=10))
        assert session.request.call_count == 2

    def test_errors_are_not_cached(self, cached_client, session):
        session.request.side_effect = [
            mock_response(status=500, body={"errors": [{"message": "boom"}]}),
            mock_response(body={"data": {"gid": "1"}}),
        ]
        with patch("asana_typed.client.raise_alert"):
            with pytest.raises(AsanaServerError):
                cached_client.get("/tasks/1")
        data, _ = cached_client.get("/tasks/1")
        assert data == {"gid": "1"}

    def test_put_clears_cached_path(self, cached_client, session):
        session.request.return_value = mock_response(body={"data": {"gid": "1"}})
        cached_client.get("/tasks/1")
        cached_client.put("/tasks/1", {"name": "renamed"})
        cached_client.get("/tasks/1")
        assert session.request.call_count == 3

    def test_delete_clears_cached_path(self, cached_client, session):
        session.request.return_value = mock_response(body={"data": {"gid": "1"}})
        cached_client.get("/tasks/1")
        session.request.return_value = mock_response(status=200, body={"data": {}})
        cached_client.delete("/tasks/1")
        assert cached_client.cache.get("/tasks/1") is None

    def test_created_location_is_cached(self, cached_client, session):
        session.request.return_value = mock_response(
            status=201,
            body={"data": {"gid": "77", "name": "New"}},
            headers={"Location": BASE + "/tasks/77"},
        )
        cached_client.post("/tasks", {"name": "New"}, Task)

        task, _ = cached_client.get("/tasks/77", None, Task)

        assert session.request.call_count == 1
        assert task.name == "New"

    def test_paged_listing_repeats_with_cache(self, cached_client, session):
        pages = [
            mock_response(body={"data": [{"gid": "1"}], "next_page": {"offset": "abc"}}),
            mock_response(body={"data": [{"gid": "2"}], "next_page": None}),
        ]
        session.request.side_effect = pages + pages
        workspace = Workspace(gid="w1")

        first = [t.gid for t in workspace.all_tags(cached_client)]
        second = [t.gid for t in workspace.all_tags(cached_client)]

        assert first == ["1", "2"]
        assert second == ["1", "2"]
        assert "/workspaces/w1/tags?limit=50" not in cached_client.cache
        assert "/workspaces/w1/tags?limit=50&offset=abc" in cached_client.cache
        assert session.request.call_count == 3

    def test_create_tag_clears_every_cached_listing(self, session):
        client = Client(session=session, cache=MapCache(300), default_options=Options(fields=["name"]))
        session.request.return_value = mock_response(body={"data": [{"gid": "1", "name": "old"}]})
        workspace = Workspace(gid="w1")
        workspace.all_tags(client)
        workspace.tags(client, Options(limit=10))
        client.get("/workspaces/w1/tags_archive")
        assert len(client.cache) == 3

        session.request.return_value = mock_response(status=201, body={"data": {"gid": "2", "name": "new"}})
        workspace.create_tag(client, TagBase(name="new"))

        assert len(client.cache) == 1
        assert "/workspaces/w1/tags_archive?opt_fields=name" in client.cache

    def test_storage_failure_is_a_miss(self, session):
        from asana_typed.errors import AsanaStorageError

        cache = Mock()
        cache.get.side_effect = AsanaStorageError("disk full")
        cache.put.side_effect = AsanaStorageError("disk full")
        client = Client(session=session, cache=cache)
        session.request.return_value = mock_response(body={"data": {"gid": "1"}})

        data, _ = client.get("/tasks/1")

        assert data == {"gid": "1"}
        assert session.request.call_count == 1


class TestFetchAll:
    """Tests for pagination."""

    def test_concatenates_pages_in_order(self, client, session):
        session.request.side_effect = [
            mock_response(body={"data": [{"gid": "1"}, {"gid": "2"}], "next_page": {"offset": "abc"}}),
            mock_response(body={"data": [{"gid": "3"}], "next_page": None}),
        ]

        def page(*options):
            return client.get("/projects/9/tasks", None, list_of(Task), *options)

        tasks = fetch_all(page, 100, Options(fields=["name"]))

        assert [t.gid for t in tasks] == ["1", "2", "3"]
        assert session.request.call_count == 2
        first, second = sent_query(session, 0), sent_query(session, 1)
        assert first["limit"] == ["100"]
        assert "offset" not in first
        assert second["offset"] == ["abc"]
        assert second["opt_fields"] == ["name"]

    def test_page_cursor_overrides_caller_options(self, client, session):
        session.request.side_effect = [
            mock_response(body={"data": [{"gid": "1"}], "next_page": {"offset": "abc"}}),
            mock_response(body={"data": [{"gid": "2"}], "next_page": None}),
        ]

        def page(*options):
            return client.get("/tags", None, None, *options)

        fetch_all(page, 50, Options(limit=5, offset="stale", fields=["name"]))

        first, second = sent_query(session, 0), sent_query(session, 1)
        assert first == {"limit": ["50"], "opt_fields": ["name"]}
        assert second == {"limit": ["50"], "offset": ["abc"], "opt_fields": ["name"]}

    def test_empty_offset_ends_listing(self):
        page = Mock(return_value=([1], NextPage(offset="")))
        assert fetch_all(page, 50) == [1]
        page.assert_called_once()

    def test_empty_result(self):
        page = Mock(return_value=([], None))
        assert fetch_all(page, 50) == []
        page.assert_called_once()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
