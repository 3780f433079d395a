"""
WhatsApp Webhook Tests

Twilio form → signature → normalization → rate limit → Intent Router → TwiML.
The runtime is replaced with in-memory stores and a stub model backend.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from twilio.request_validator import RequestValidator

from agent import replies
from agent.intent_router import ALREADY_DELIVERED, Send
from main import SECURITY_HEADERS, app
from transport.whatsapp.rate_limit import RateLimiter
from transport.whatsapp.webhook import get_runtime

AUTH_TOKEN = "test-auth-token"
WEBHOOK_URL = "http://testserver/webhook/whatsapp"


@pytest.fixture
def runtime(router, messenger):
    return SimpleNamespace(
        config=SimpleNamespace(twilio_auth_token=AUTH_TOKEN, environment="development"),
        rate_limiter=RateLimiter(window_s=60, max_requests=20),
        intent_router=router,
        messenger=messenger,
    )


@pytest.fixture
def client(runtime):
    app.dependency_overrides[get_runtime] = lambda: runtime
    yield TestClient(app)
    app.dependency_overrides.clear()


def form(body="hello", sender="whatsapp:+919876543210", **extra):
    data = {"From": sender, "Body": body, "NumMedia": "0", "MessageSid": "SM1"}
    data.update(extra)
    return data


class TestWebhookStatus:

    def test_get(self, client):
        response = client.get("/webhook/whatsapp")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "message": "Webhook endpoint is active"}


class TestWebhookReplies:

    def test_new_user_gets_welcome_twiml(self, client):
        response = client.post("/webhook/whatsapp", data=form("What can you do?"))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/xml")
        assert "<Response><Message>" in response.text
        assert "Welcome to Mummy" in response.text

    def test_name_then_menu(self, client, users):
        client.post("/webhook/whatsapp", data=form("I'm Asha"))
        response = client.post("/webhook/whatsapp", data=form("/menu"))

        assert "MUMMY MENU" in response.text
        assert users.get_or_create("+919876543210").name == "Asha"

    def test_reply_is_xml_escaped(self, client, runtime):
        runtime.intent_router = SimpleNamespace(route=AsyncMock(return_value=Send("BP < 120 & HR > 60")))

        response = client.post("/webhook/whatsapp", data=form())

        assert "BP &lt; 120 &amp; HR &gt; 60" in response.text

    def test_already_delivered_is_empty_response(self, client, runtime):
        runtime.intent_router = SimpleNamespace(route=AsyncMock(return_value=ALREADY_DELIVERED))

        response = client.post("/webhook/whatsapp", data=form())

        assert response.status_code == 200
        assert "<Message>" not in response.text
        assert "<Response" in response.text

    def test_media_is_passed_to_router(self, client, runtime):
        route = AsyncMock(return_value=Send("ok"))
        runtime.intent_router = SimpleNamespace(route=route)

        client.post(
            "/webhook/whatsapp",
            data=form("", NumMedia="1", MediaUrl0="https://api.twilio.com/m/1", MediaContentType0="image/png"),
        )

        sender, body, media = route.await_args.args
        assert sender == "+919876543210"
        assert body == ""
        assert media.url == "https://api.twilio.com/m/1"
        assert media.mime_type == "image/png"

    def test_router_crash_gives_generic_reply(self, client, runtime):
        runtime.intent_router = SimpleNamespace(route=AsyncMock(side_effect=RuntimeError("boom")))

        response = client.post("/webhook/whatsapp", data=form())

        assert response.status_code == 200
        assert replies.GENERIC_ERROR_TEXT in response.text

    def test_security_headers(self, client):
        response = client.post("/webhook/whatsapp", data=form())

        for header, value in SECURITY_HEADERS.items():
            assert response.headers[header] == value


class TestWebhookRejections:

    def test_missing_from_is_400(self, client):
        response = client.post("/webhook/whatsapp", data={"Body": "hi"})

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid request:")

    def test_invalid_phone_is_400(self, client):
        response = client.post("/webhook/whatsapp", data=form(sender="whatsapp:not-a-number"))

        assert response.status_code == 400

    def test_rate_limit_is_429(self, client, runtime):
        runtime.rate_limiter = RateLimiter(max_requests=2)

        statuses = [client.post("/webhook/whatsapp", data=form()).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]


class TestSignature:

    @pytest.fixture(autouse=True)
    def production(self, runtime):
        runtime.config.environment = "production"

    def test_missing_signature_is_403(self, client):
        response = client.post("/webhook/whatsapp", data=form())

        assert response.status_code == 403
        assert response.json() == {"detail": "Forbidden"}

    def test_invalid_signature_is_403(self, client):
        response = client.post("/webhook/whatsapp", data=form(), headers={"X-Twilio-Signature": "bogus"})

        assert response.status_code == 403

    def test_valid_signature_is_accepted(self, client):
        data = form("What can you do?")
        signature = RequestValidator(AUTH_TOKEN).compute_signature(WEBHOOK_URL, data)

        response = client.post("/webhook/whatsapp", data=data, headers={"X-Twilio-Signature": signature})

        assert response.status_code == 200
        assert "Welcome to Mummy" in response.text

    def test_missing_auth_token_is_403(self, client, runtime):
        runtime.config.twilio_auth_token = ""

        response = client.post("/webhook/whatsapp", data=form(), headers={"X-Twilio-Signature": "x"})

        assert response.status_code == 403


class TestManualSend:

    def test_sends_through_messenger(self, client, messenger):
        response = client.post("/test/send", json={"to": "+919876543210", "message": "Hi"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "to": "+919876543210", "message": "Hi"}
        assert messenger.sent[0].body == "Hi"

    @pytest.mark.parametrize("payload", [{"to": "+919876543210"}, {"message": "Hi"}, {}])
    def test_missing_fields_are_400(self, client, payload):
        response = client.post("/test/send", json=payload)

        assert response.status_code == 400
        assert response.json() == {"detail": 'Missing "to" or "message" field'}


class TestAppRoutes:

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "healthy"
        assert "whatsapp_webhook" in body["endpoints"]

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}
