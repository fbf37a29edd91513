"""
End-to-end tests of the HTTP surface.

The FastAPI app is driven through httpx.ASGITransport; every outbound call
(Graph API, storefront OAuth and admin API) is served by one MockTransport.
"""

# Standard libraries
import json
from urllib.parse import parse_qs, urlparse

# Third-party libraries
import httpx
import pytest
from sqlalchemy import select

# Local modules
from conftest import AUTH_URL, TOKEN_URL
from order_bridge.core.signature import compute_signature
from order_bridge.db import Customer, FlowStateRepository, Message, OAuthRepository
from order_bridge.models.flow import AwaitingIdentifierState
from order_bridge.models.oauth import OAuthCredential
from order_bridge.server.app import create_app
from order_bridge.server.dependencies import get_settings

FROM = "905551112233"
IDENTIFIER = "ABC1234567890"


class Upstream:
    """Fake Graph API + storefront, recording what the bridge sent."""

    def __init__(self):
        self.orders = {}
        self.sent = []
        self.token_requests = []
        self.token_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "graph.facebook.com":
            self.sent.append(json.loads(request.content))
            return httpx.Response(200, json={"messages": [{"id": "wamid.OUT"}]})

        if str(request.url) == TOKEN_URL:
            self.token_requests.append(request)
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "A1", "refresh_token": "R1", "expires_in": 3600})

        if request.url.path.startswith("/admin-api/orders/"):
            identifier = request.url.path.rsplit("/", 1)[1]
            if identifier in self.orders:
                return httpx.Response(200, json=self.orders[identifier])
            return httpx.Response(404)

        return httpx.Response(200, json=[])

    def replies(self):
        return [item["text"]["body"] for item in self.sent]


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
async def client(app_settings, session_factory, upstream, mock_http):
    upstream_client, _ = mock_http(upstream)

    app = create_app()
    app.dependency_overrides[get_settings] = lambda: app_settings
    # ASGITransport does not run startup events; wire resources directly
    app.state.session_factory = session_factory
    app.state.http_client = upstream_client

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


def text_event(text, message_id="wamid.IN1", name="Ayse"):
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "contacts": [{"wa_id": FROM, "profile": {"name": name}}],
                            "messages": [
                                {
                                    "from": FROM,
                                    "id": message_id,
                                    "timestamp": "1700000000",
                                    "type": "text",
                                    "text": {"body": text},
                                }
                            ],
                        },
                    }
                ],
            }
        ],
    }


async def post_signed(client, app_settings, payload):
    body = json.dumps(payload).encode("utf-8")
    return await client.post(
        "/webhook",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Hub-Signature-256": compute_signature(app_settings.whatsapp_app_secret, body),
        },
    )


async def stored_messages(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(Message).order_by(Message.id))).scalars().all()


async def connect_store(session_factory):
    async with session_factory() as session:
        await OAuthRepository(session).save_oauth_credential(
            "ideasoft",
            OAuthCredential(access_token="A1", refresh_token="R1"),
        )


# ----------------------------
# Basic endpoints
# ----------------------------


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["endpoints"]["webhook"] == "POST /webhook"


async def test_health_reports_storefront_status(client, session_factory):
    response = await client.get("/health")
    checks = response.json()["checks"]
    assert checks["database"] == "ok"
    assert checks["storefront"] == "not_connected"
    assert response.json()["status"] == "degraded"

    await connect_store(session_factory)
    response = await client.get("/health")
    assert response.json()["checks"]["storefront"] == "connected"
    assert response.json()["status"] == "healthy"


# ----------------------------
# Webhook verification handshake
# ----------------------------


async def test_verify_handshake_echoes_challenge(client):
    response = await client.get(
        "/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "12345"},
    )
    assert response.status_code == 200
    assert response.text == "12345"


async def test_verify_handshake_rejects_wrong_token(client):
    response = await client.get(
        "/webhook",
        params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "12345"},
    )
    assert response.status_code == 403


# ----------------------------
# Inbound messages
# ----------------------------


async def test_bad_signature_is_rejected_without_side_effects(client, session_factory, upstream):
    body = json.dumps(text_event("where is my order")).encode("utf-8")
    response = await client.post(
        "/webhook",
        content=body,
        headers={"X-Hub-Signature-256": "sha256=" + "0" * 64},
    )

    assert response.status_code == 401
    assert await stored_messages(session_factory) == []
    assert upstream.sent == []


async def test_missing_signature_is_rejected(client, upstream):
    response = await client.post("/webhook", json=text_event("hi"))

    assert response.status_code == 401
    assert upstream.sent == []


async def test_order_intent_prompts_and_records(client, app_settings, session_factory, upstream):
    response = await post_signed(client, app_settings, text_event("Where is my order?"))

    assert response.status_code == 200
    assert upstream.replies() == ["To track your order, please send your 13-character order number."]
    assert upstream.sent[0]["to"] == FROM

    messages = await stored_messages(session_factory)
    assert [(m.direction, m.text) for m in messages] == [
        ("in", "Where is my order?"),
        ("out", upstream.replies()[0]),
    ]
    assert messages[0].wa_message_id == "wamid.IN1"

    async with session_factory() as session:
        customer = (await session.execute(select(Customer).where(Customer.phone == FROM))).scalar_one()
        state = await FlowStateRepository(session).get_flow_state(customer.id)
    assert isinstance(state, AwaitingIdentifierState)


async def test_duplicate_delivery_is_answered_once(client, app_settings, upstream):
    payload = text_event("hello", message_id="wamid.DUP")

    first = await post_signed(client, app_settings, payload)
    second = await post_signed(client, app_settings, payload)

    assert first.status_code == second.status_code == 200
    assert len(upstream.sent) == 1


async def test_full_tracking_dialogue(client, app_settings, session_factory, upstream):
    await connect_store(session_factory)
    upstream.orders[IDENTIFIER] = {
        "code": IDENTIFIER,
        "status": "Shipped",
        "shipment": {"trackingNumber": "YK-555", "trackingUrl": "https://track.example.com/YK-555"},
    }

    await post_signed(client, app_settings, text_event("where is my order", message_id="wamid.1"))
    await post_signed(client, app_settings, text_event(f"#{IDENTIFIER}", message_id="wamid.2"))

    final = upstream.replies()[-1]
    assert f"Order no: {IDENTIFIER}" in final
    assert "Status: Shipped" in final
    assert "Tracking number: YK-555" in final
    assert "https://track.example.com/YK-555" in final


async def test_not_connected_reply_points_to_connect_url(client, app_settings, upstream):
    await post_signed(client, app_settings, text_event(IDENTIFIER))

    assert "https://bridge.example.com/storefront/connect" in upstream.replies()[0]


async def test_status_only_delivery_is_acknowledged(client, app_settings, upstream):
    payload = {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA", "changes": [{"field": "messages", "value": {"statuses": [{"id": "wamid.OUT"}]}}]}],
    }

    response = await post_signed(client, app_settings, payload)

    assert response.status_code == 200
    assert upstream.sent == []


async def test_unparseable_body_is_still_acknowledged(client, app_settings, upstream):
    body = b"{not json"
    response = await client.post(
        "/webhook",
        content=body,
        headers={"X-Hub-Signature-256": compute_signature(app_settings.whatsapp_app_secret, body)},
    )

    assert response.status_code == 200
    assert upstream.sent == []


# ----------------------------
# Storefront OAuth
# ----------------------------


async def test_connect_redirects_to_provider(client):
    response = await client.get("/storefront/connect")

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith(AUTH_URL)
    assert parse_qs(urlparse(location).query)["state"][0]


async def test_callback_completes_authorization(client, session_factory, upstream):
    location = (await client.get("/storefront/connect")).headers["location"]
    state = parse_qs(urlparse(location).query)["state"][0]

    response = await client.get("/storefront/callback", params={"code": "CODE-1", "state": state})

    assert response.status_code == 200
    assert len(upstream.token_requests) == 1
    async with session_factory() as session:
        credential = await OAuthRepository(session).get_oauth_credential("ideasoft")
    assert credential.access_token == "A1"

    # Replaying the same callback is rejected
    replay = await client.get("/storefront/callback", params={"code": "CODE-1", "state": state})
    assert replay.status_code == 400
    assert len(upstream.token_requests) == 1


async def test_callback_with_unknown_state_stores_nothing(client, session_factory, upstream):
    response = await client.get("/storefront/callback", params={"code": "CODE-1", "state": "forged"})

    assert response.status_code == 400
    assert upstream.token_requests == []
    async with session_factory() as session:
        assert await OAuthRepository(session).get_oauth_credential("ideasoft") is None


@pytest.mark.parametrize(
    "params",
    [
        {"state": "abc"},
        {"code": "CODE-1"},
        {"error": "access_denied", "state": "abc"},
    ],
)
async def test_callback_rejects_incomplete_requests(client, upstream, params):
    response = await client.get("/storefront/callback", params=params)

    assert response.status_code == 400
    assert upstream.token_requests == []


async def test_callback_exchange_failure_is_bad_gateway(client, upstream):
    upstream.token_status = 400
    location = (await client.get("/storefront/connect")).headers["location"]
    state = parse_qs(urlparse(location).query)["state"][0]

    response = await client.get("/storefront/callback", params={"code": "BAD", "state": state})

    assert response.status_code == 502
