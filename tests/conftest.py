"""
Shared test fixtures for the Légifrance MCP server test suite.

Key fixtures:
- settings / make_settings: Settings built from fake credentials, never from
  the real environment or a .env file
- http_client: a real httpx.AsyncClient; its requests are intercepted by
  pytest-httpx's `httpx_mock` fixture in every test that requests it
- token_provider / dispatcher: the components wired the way serve() wires them
- add_token_response / add_search_response: register fake answers for the
  OAuth token endpoint and the search endpoint

Testing approach:
- test_config.py: environment loading and startup validation
- test_auth.py: TokenProvider in isolation (caching, request shape, failures)
- test_tools.py: ToolDispatcher list/call contract against mocked endpoints
- test_server.py: the FastMCP server through an in-memory MCP client, plus
  the health/readiness routes through httpx's ASGI transport
"""

import httpx
import pytest

from src.auth import TokenProvider
from src.config import Settings
from src.tools import ToolDispatcher

TOKEN_URL = "https://oauth.example.test/api/oauth/token"
API_URL = "https://api.example.test/dila/legifrance/lf-engine-app"
SEARCH_URL = f"{API_URL}/search"

CLIENT_ID = "test-client-id"
CLIENT_SECRET = "test-client-secret"
API_KEY = "test-api-key"
ACCESS_TOKEN = "test-access-token"

SEARCH_RESPONSE = {
    "executionTime": 42,
    "totalResultNumber": 1,
    "results": [
        {
            "titles": [{"id": "JURITEXT000000000001", "title": "Cour de cassation, chambre civile 1"}],
            "nature": "ARRET",
            "origin": "JURI",
        }
    ],
}

# Environment variables read by Settings; cleared so that the developer's
# own configuration never leaks into the tests.
ENV_VARS = [
    "LEGIFRANCE_CLIENT_ID",
    "LEGIFRANCE_CLIENT_SECRET",
    "OAUTH_TOKEN_URL",
    "LEGIFRANCE_OAUTH_TOKEN_URL",
    "LEGIFRANCE_API_URL",
    "LEGIFRANCE_API_KEY",
    "LEGIFRANCE_OAUTH_SECRET",
    "LEGIFRANCE_USER_AGENT",
    "LEGIFRANCE_HTTP_TIMEOUT",
    "LEGIFRANCE_AUTHENTICATE_ON_STARTUP",
    "MCP_TRANSPORT",
    "MCP_HOST",
    "MCP_PORT",
    "MCP_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Remove configuration env vars and run from a directory without a .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def make_settings():
    """
    Factory fixture returning Settings with fake credentials.

    Usage in tests:
        def test_something(make_settings):
            settings = make_settings(user_agent="custom/1.0")
    """

    def _make_settings(**overrides) -> Settings:
        values = {
            "client_id": CLIENT_ID,
            "client_secret": CLIENT_SECRET,
            "oauth_token_url": TOKEN_URL,
            "api_url": API_URL,
            "api_key": API_KEY,
            "oauth_secret": "test-oauth-secret",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make_settings


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def token_provider(settings, http_client) -> TokenProvider:
    return TokenProvider(settings, http_client)


@pytest.fixture
def dispatcher(settings, token_provider, http_client) -> ToolDispatcher:
    return ToolDispatcher(settings, token_provider, http_client)


@pytest.fixture
def add_token_response(httpx_mock):
    """Register one answer of the OAuth token endpoint (a token by default)."""

    def _add_token_response(json=None, status_code: int = 200, **kwargs):
        if json is None and "text" not in kwargs and "content" not in kwargs:
            json = {"access_token": ACCESS_TOKEN, "token_type": "Bearer", "expires_in": 3600}
        httpx_mock.add_response(
            method="POST", url=TOKEN_URL, json=json, status_code=status_code, **kwargs
        )

    return _add_token_response


@pytest.fixture
def add_search_response(httpx_mock):
    """Register one answer of the search endpoint (SEARCH_RESPONSE by default)."""

    def _add_search_response(json=None, status_code: int = 200, **kwargs):
        if json is None and "text" not in kwargs and "content" not in kwargs:
            json = SEARCH_RESPONSE
        httpx_mock.add_response(
            method="POST", url=SEARCH_URL, json=json, status_code=status_code, **kwargs
        )

    return _add_search_response
