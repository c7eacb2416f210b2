"""Tests for the X API request client."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from xurl import __version__
from xurl.api.client import MAX_STREAM_LINE_BYTES, ApiClient, parse_header_lines
from xurl.api.endpoints import is_streaming_endpoint
from xurl.auth.http_client import HttpxHttpClient
from xurl.auth.selector import AuthSelector
from xurl.cli.services import build_api_client
from xurl.core.exceptions import ApiError, AuthError, NetworkError


@pytest.fixture
def api(test_config, store):
    client = ApiClient(test_config, AuthSelector(store))
    yield client
    client.close()


@pytest.mark.unit
class TestRequestBuilding:
    """URL resolution and header assembly."""

    def test_relative_endpoint_joins_base_url(self, api):
        assert api.build_url("/2/users/me") == "https://api.x.com/2/users/me"
        assert api.build_url("2/users/me") == "https://api.x.com/2/users/me"

    def test_absolute_url_is_kept(self, api):
        assert api.build_url("https://example.com/x") == "https://example.com/x"

    def test_header_lines(self):
        parsed = parse_header_lines(["X-One: 1", "X-Two:two:parts", "malformed"])

        assert parsed == [("X-One", "1"), ("X-Two", "two:parts")]

    def test_explicit_authorization_header_wins(self, api, store):
        store.save_bearer_token("AAAA")

        headers = api.build_headers("GET", "https://api.x.com/2/users/me", ["Authorization: Bearer mine"])

        assert headers["Authorization"] == "Bearer mine"
        assert headers["User-Agent"] == f"xurl/{__version__}"

    def test_no_credentials_sends_unauthenticated(self, api):
        headers = api.build_headers("GET", "https://api.x.com/2/users/me")

        assert "Authorization" not in headers

    def test_explicit_scheme_failure_is_raised(self, api):
        with pytest.raises(AuthError):
            api.build_headers("GET", "https://api.x.com/2/users/me", auth_type="app")


@pytest.mark.unit
class TestSendRequest:
    """Plain request/response cycle."""

    def test_get_returns_decoded_json(self, api, store, mock_x_api, user_me_response):
        store.save_bearer_token("AAAA")
        route = mock_x_api.get("/2/users/me").mock(
            return_value=httpx.Response(200, json=user_me_response)
        )

        assert api.send_request("GET", "/2/users/me") == user_me_response
        request = route.calls.last.request
        assert request.headers["authorization"] == "Bearer AAAA"
        assert request.headers["user-agent"] == f"xurl/{__version__}"

    def test_json_body_sets_content_type(self, api, mock_x_api):
        route = mock_x_api.post("/2/tweets").mock(
            return_value=httpx.Response(201, json={"data": {"id": "1"}})
        )

        api.send_request("POST", "/2/tweets", data='{"text": "hello"}')

        request = route.calls.last.request
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.read()) == {"text": "hello"}

    def test_form_body_is_signed_with_oauth1(self, api, store, mock_x_api):
        store.save_oauth1_tokens("at", "ts", "ck", "cs")
        route = mock_x_api.post("/1.1/statuses/update.json").mock(
            return_value=httpx.Response(200, json={})
        )

        api.send_request("POST", "/1.1/statuses/update.json", data="status=hi")

        request = route.calls.last.request
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["authorization"].startswith("OAuth ")

    def test_body_ignored_for_get(self, api, mock_x_api):
        route = mock_x_api.get("/2/users/me").mock(return_value=httpx.Response(200, json={}))

        api.send_request("GET", "/2/users/me", data='{"ignored": true}')

        assert route.calls.last.request.read() == b""

    @pytest.mark.parametrize("content", [b"", b"not json"])
    def test_empty_or_non_json_success_is_empty_object(self, api, mock_x_api, content):
        mock_x_api.delete("/2/tweets/1").mock(return_value=httpx.Response(200, content=content))

        assert api.send_request("DELETE", "/2/tweets/1") == {}

    def test_error_payload_is_kept_verbatim(self, api, mock_x_api, api_error_response):
        mock_x_api.get("/2/users/me").mock(
            return_value=httpx.Response(401, json=api_error_response)
        )

        with pytest.raises(ApiError) as exc_info:
            api.send_request("GET", "/2/users/me")

        assert exc_info.value.status_code == 401
        assert exc_info.value.payload == api_error_response
        assert json.loads(str(exc_info.value)) == api_error_response

    def test_transport_failure_is_network_error(self, api, mock_x_api):
        mock_x_api.get("/2/users/me").mock(side_effect=httpx.ConnectTimeout("timed out"))

        with pytest.raises(NetworkError):
            api.send_request("GET", "/2/users/me")


@pytest.mark.unit
class TestStreaming:
    """Line-oriented streaming responses."""

    def test_streaming_endpoints(self):
        assert is_streaming_endpoint("/2/tweets/search/stream")
        assert is_streaming_endpoint("https://api.x.com/2/tweets/sample/stream/")
        assert is_streaming_endpoint("/2/tweets/search/stream?tweet.fields=id")
        assert not is_streaming_endpoint("/2/tweets/search/recent")

    def test_lines_are_yielded_and_blank_lines_skipped(self, api, mock_x_api):
        body = b'{"data": {"id": "1"}}\r\n\r\n{"data": {"id": "2"}}\n'
        mock_x_api.get("/2/tweets/search/stream").mock(
            return_value=httpx.Response(200, content=body)
        )

        lines = list(api.stream_request("GET", "/2/tweets/search/stream"))

        assert lines == ['{"data": {"id": "1"}}', '{"data": {"id": "2"}}']

    def test_line_over_limit_is_network_error(self, api, mock_x_api):
        body = b"x" * (MAX_STREAM_LINE_BYTES + 1) + b"\n"
        mock_x_api.get("/2/tweets/search/stream").mock(
            return_value=httpx.Response(200, content=body)
        )

        with pytest.raises(NetworkError, match="line too long"):
            list(api.stream_request("GET", "/2/tweets/search/stream"))

    def test_error_status_raises_api_error(self, api, mock_x_api, api_error_response):
        mock_x_api.get("/2/tweets/search/stream").mock(
            return_value=httpx.Response(429, json=api_error_response)
        )

        with pytest.raises(ApiError) as exc_info:
            list(api.stream_request("GET", "/2/tweets/search/stream"))

        assert exc_info.value.status_code == 429


@pytest.mark.unit
class TestClose:
    def test_close_releases_token_client_once(self, test_config, store):
        token_client = MagicMock()
        selector = AuthSelector(
            store,
            refresher=MagicMock(http_client=token_client),
            flow=MagicMock(http_client=token_client),
        )

        with ApiClient(test_config, selector):
            pass

        token_client.close.assert_called_once_with()

    def test_build_api_client_closes_selector(self, test_config, store, monkeypatch):
        closed = []
        monkeypatch.setattr(HttpxHttpClient, "close", lambda self: closed.append(self))

        with build_api_client(test_config, store) as client:
            shared = client.selector.refresher.http_client

        assert client.selector.flow.http_client is shared
        assert closed == [shared]
