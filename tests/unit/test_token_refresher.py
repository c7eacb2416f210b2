"""Tests for OAuth2 token refresh."""

import time
import urllib.parse

import httpx
import pytest

from xurl.auth.tokens import TokenRefresher
from xurl.core.exceptions import AuthError


@pytest.mark.unit
class TestTokenRefresher:
    """Refresh-token grant against a mocked token endpoint."""

    def test_refresh_saves_rotated_tokens(self, mock_x_api, store, test_config, token_response):
        route = mock_x_api.post("/2/oauth2/token").mock(
            return_value=httpx.Response(200, json=token_response)
        )
        store.save_oauth2_token("alice", "old-access", "old-refresh", 1)

        access_token = TokenRefresher(store, test_config).refresh("alice")

        assert access_token == "new-access-token"
        credential = store.get_oauth2_token("alice")
        assert credential.access_token == "new-access-token"
        assert credential.refresh_token == "new-refresh-token"
        assert credential.expiration_time >= int(time.time()) + 7000

        form = dict(urllib.parse.parse_qsl(route.calls.last.request.read().decode()))
        assert form == {"grant_type": "refresh_token", "refresh_token": "old-refresh"}
        assert route.calls.last.request.headers["authorization"].startswith("Basic ")

    def test_refresh_keeps_refresh_token_when_not_rotated(self, mock_x_api, store, test_config):
        mock_x_api.post("/2/oauth2/token").mock(
            return_value=httpx.Response(200, json={"access_token": "fresh"})
        )
        store.save_oauth2_token("alice", "old-access", "old-refresh", 1)

        TokenRefresher(store, test_config).refresh("alice")

        credential = store.get_oauth2_token("alice")
        assert credential.access_token == "fresh"
        assert credential.refresh_token == "old-refresh"

    def test_refresh_without_username_uses_first_account(
        self, mock_x_api, store, test_config, token_response
    ):
        mock_x_api.post("/2/oauth2/token").mock(
            return_value=httpx.Response(200, json=token_response)
        )
        store.save_oauth2_token("bob", "b", "rb", 1)
        store.save_oauth2_token("alice", "a", "ra", 1)

        TokenRefresher(store, test_config).refresh()

        assert store.get_oauth2_token("alice").access_token == "new-access-token"
        assert store.get_oauth2_token("bob").access_token == "b"

    def test_unknown_username(self, store, test_config):
        with pytest.raises(AuthError, match="carol"):
            TokenRefresher(store, test_config).refresh("carol")

    def test_no_accounts(self, store, test_config):
        with pytest.raises(AuthError, match="No OAuth2 tokens"):
            TokenRefresher(store, test_config).refresh()

    def test_rejected_refresh_token(self, mock_x_api, store, test_config):
        mock_x_api.post("/2/oauth2/token").mock(
            return_value=httpx.Response(400, json={"error": "invalid_request"})
        )
        store.save_oauth2_token("alice", "old-access", "old-refresh", 1)

        with pytest.raises(AuthError, match="Token refresh failed"):
            TokenRefresher(store, test_config).refresh("alice")

        assert store.get_oauth2_token("alice").access_token == "old-access"

    def test_network_failure_is_auth_error(self, mock_x_api, store, test_config):
        mock_x_api.post("/2/oauth2/token").mock(side_effect=httpx.ConnectError("refused"))
        store.save_oauth2_token("alice", "old-access", "old-refresh", 1)

        with pytest.raises(AuthError):
            TokenRefresher(store, test_config).refresh("alice")
