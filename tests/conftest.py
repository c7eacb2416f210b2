"""Shared pytest configuration and fixtures for xurl tests."""

import pytest

from xurl.auth.storage import TokenStore
from xurl.core.config import Config

# Import HTTP mocking fixtures from fixtures module
pytest_plugins = ["tests.fixtures.mock_http"]

API_BASE_URL = "https://api.x.com"
TOKEN_URL = "https://api.x.com/2/oauth2/token"

# Variables read by Config.load(); cleared so a developer's shell or .env
# never leaks into a test
_CONFIG_ENV_VARS = (
    "CLIENT_ID",
    "CLIENT_SECRET",
    "REDIRECT_URI",
    "AUTH_URL",
    "TOKEN_URL",
    "API_BASE_URL",
    "INFO_URL",
    "XURL_TOKEN_STORE",
    "XURL_LEGACY_CREDENTIALS",
    "OAUTH_CALLBACK_TIMEOUT",
    "HTTP_TIMEOUT",
    "LOG_LEVEL",
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no external deps)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (several components together)"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their location."""
    for item in items:
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point every store path at tmp_path and drop inherited configuration."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("XURL_TOKEN_STORE", str(tmp_path / ".xurl"))
    monkeypatch.setenv("XURL_LEGACY_CREDENTIALS", str(tmp_path / ".twurlrc"))
    yield


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / ".xurl"


@pytest.fixture
def legacy_path(tmp_path):
    return tmp_path / ".twurlrc"


@pytest.fixture
def store(store_path):
    """Empty token store backed by a file under tmp_path."""
    return TokenStore(store_path)


@pytest.fixture
def test_config(store_path, legacy_path):
    """Configuration with a registered client and temporary store paths."""
    return Config(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:8080/callback",
        token_url=TOKEN_URL,
        api_base_url=API_BASE_URL,
        token_store_path=store_path,
        legacy_credentials_path=legacy_path,
        callback_timeout=5,
        http_timeout=5.0,
    )
