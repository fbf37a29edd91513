"""
Shared fixtures for the order bridge test suite.

Scope
-----
- Settings built explicitly (no .env file) so tests never depend on the host.
- A throwaway SQLite database per test, created through the real init_db().
- httpx clients backed by MockTransport; no test talks to the network.
"""

# Standard libraries
from typing import Callable, List, Tuple

# Third-party libraries
import httpx
import pytest

# Local modules
from order_bridge.config.settings import Settings
from order_bridge.db import get_engine, get_session_factory, init_db

TOKEN_URL = "https://shop.example.com/oauth/v2/token"
AUTH_URL = "https://shop.example.com/panel/auth"
API_ROOT = "https://shop.example.com/admin-api"
GRAPH_MESSAGES_URL = "https://graph.facebook.com/v22.0/PHONE123/messages"


def make_settings(**overrides) -> Settings:
    """Fully configured settings; individual tests override what they exercise."""
    values = dict(
        whatsapp_token="wa-token",
        whatsapp_phone_number_id="PHONE123",
        whatsapp_verify_token="verify-me",
        whatsapp_app_secret="app-secret",
        allow_unsigned_webhooks=False,
        storefront_base_url="https://shop.example.com",
        storefront_api_prefix="/admin-api",
        storefront_auth_url=AUTH_URL,
        storefront_token_url=TOKEN_URL,
        storefront_client_id="client-id",
        storefront_client_secret="client-secret",
        storefront_redirect_uri="https://bridge.example.com/storefront/callback",
        public_base_url="https://bridge.example.com",
        order_number_format="alphanumeric",
        order_number_length=13,
        locale="en",
        glitchtip_dsn=None,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def app_settings() -> Settings:
    return make_settings()


@pytest.fixture
async def engine(tmp_path):
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def mock_http():
    """Factory returning (AsyncClient, RecordingTransport) for a request handler."""
    clients = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> Tuple[httpx.AsyncClient, RecordingTransport]:
        transport = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=transport)
        clients.append(client)
        return client, transport

    yield factory

    for client in clients:
        await client.aclose()
