import asyncio
import base64
import json
import time

import pytest
import resend
from fastapi import HTTPException

from dentalpro import email_service
from dentalpro.email_templates import user_type_labels, welcome_email_template
from dentalpro.main import app
from dentalpro.routes import email as email_routes
from dentalpro.webhook_security import extract_signing_key, sign_standard_webhook

HOOK_SECRET = "v1,whsec_" + base64.b64encode(b"super-secret-signing-key").decode()


@pytest.fixture
def sent(monkeypatch):
    calls = []

    async def fake_send_welcome_email(to, first_name, confirmation_url, user_type=None):
        calls.append(
            {
                "to": to,
                "first_name": first_name,
                "confirmation_url": confirmation_url,
                "user_type": user_type,
            }
        )
        return {"id": "email-1"}

    monkeypatch.setattr(email_routes, "send_welcome_email", fake_send_welcome_email)
    return calls


def signed_headers(body: bytes, secret: str = HOOK_SECRET) -> dict:
    webhook_id = "msg_2abc"
    timestamp = str(int(time.time()))
    return {
        "Content-Type": "application/json",
        "webhook-id": webhook_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": sign_standard_webhook(secret, webhook_id, timestamp, body),
    }


def hook_payload(action="signup", metadata=None) -> bytes:
    return json.dumps(
        {
            "user": {"email": "layla@example.com", "user_metadata": metadata or {}},
            "email_data": {
                "token": "123456",
                "token_hash": "hash-xyz",
                "redirect_to": "https://app.dentalpro.test/welcome",
                "email_action_type": action,
                "site_url": "https://app.dentalpro.test",
            },
        }
    ).encode()


def test_signing_key_accepts_prefixed_secrets():
    key = b"super-secret-signing-key"
    encoded = base64.b64encode(key).decode()
    assert extract_signing_key(f"v1,whsec_{encoded}") == key
    assert extract_signing_key(f"whsec_{encoded}") == key


def test_direct_call_sends_welcome_email(client, sent):
    response = client.post(
        "/email/welcome",
        json={
            "email": "omar@example.com",
            "confirmationUrl": "https://project.supabase.test/auth/v1/verify?token=t1&type=signup",
            "userType": "supplier",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert sent == [
        {
            "to": "omar@example.com",
            "first_name": None,
            "confirmation_url": "https://project.supabase.test/auth/v1/verify?token=t1&type=signup",
            "user_type": "supplier",
        }
    ]


def test_direct_call_requires_email(client, sent):
    response = client.post("/email/welcome", json={"confirmationUrl": "https://x.test"})
    assert response.status_code == 422
    assert sent == []


@pytest.mark.parametrize(
    "url",
    [
        "https://evil.test/login",
        "https://project.supabase.test.evil.test/auth/v1/verify",
        "javascript:alert(1)",
        "//project.supabase.test/verify",
    ],
)
def test_direct_call_refuses_foreign_confirmation_link(client, sent, url):
    response = client.post(
        "/email/welcome", json={"email": "omar@example.com", "confirmationUrl": url}
    )

    assert response.status_code == 400
    assert sent == []


def test_direct_call_accepts_frontend_origin(client, sent, monkeypatch):
    monkeypatch.setattr(
        email_routes, "CONFIRMATION_ORIGINS", {"https://app.dentalpro.test"}
    )

    response = client.post(
        "/email/welcome",
        json={"email": "omar@example.com", "confirmationUrl": "https://App.DentalPro.test/confirm"},
    )

    assert response.status_code == 200
    assert sent[0]["confirmation_url"] == "https://App.DentalPro.test/confirm"


@pytest.fixture
def throttled(client, monkeypatch):
    hits = []

    async def over_limit(request):
        hits.append(request.url.path)
        raise HTTPException(status_code=429, detail="Too many requests")

    app.dependency_overrides.pop(email_routes.limit_direct_calls, None)
    monkeypatch.setattr(email_routes, "rate_limit_welcome_email", over_limit)
    return hits


def test_direct_calls_are_rate_limited(client, sent, throttled):
    response = client.post(
        "/email/welcome",
        json={
            "email": "omar@example.com",
            "confirmationUrl": "https://project.supabase.test/auth/v1/verify",
        },
    )

    assert response.status_code == 429
    assert throttled == ["/email/welcome"]
    assert sent == []


def test_signed_hook_calls_skip_the_rate_limit(client, sent, throttled, monkeypatch):
    monkeypatch.setattr(email_routes, "SEND_EMAIL_HOOK_SECRET", HOOK_SECRET)
    body = hook_payload()

    response = client.post("/email/welcome", content=body, headers=signed_headers(body))

    assert response.status_code == 200
    assert throttled == []
    assert sent[0]["to"] == "layla@example.com"


def test_hook_signup_builds_confirmation_url(client, sent, monkeypatch):
    monkeypatch.setattr(email_routes, "SEND_EMAIL_HOOK_SECRET", HOOK_SECRET)
    body = hook_payload(metadata={"first_name": "Layla", "role": "assistant"})

    response = client.post("/email/welcome", content=body, headers=signed_headers(body))

    assert response.status_code == 200
    assert sent[0]["to"] == "layla@example.com"
    assert sent[0]["first_name"] == "Layla"
    assert sent[0]["user_type"] == "assistant"
    assert sent[0]["confirmation_url"] == (
        "https://project.supabase.test/auth/v1/verify?token=hash-xyz&type=signup"
        "&redirect_to=https://app.dentalpro.test/welcome"
    )


def test_hook_skips_other_email_types(client, sent, monkeypatch):
    monkeypatch.setattr(email_routes, "SEND_EMAIL_HOOK_SECRET", HOOK_SECRET)
    body = hook_payload(action="recovery")

    response = client.post("/email/welcome", content=body, headers=signed_headers(body))

    assert response.status_code == 200
    assert response.json() == {"message": "Not a signup confirmation"}
    assert sent == []


def test_hook_rejects_bad_signature(client, sent, monkeypatch):
    monkeypatch.setattr(email_routes, "SEND_EMAIL_HOOK_SECRET", HOOK_SECRET)
    body = hook_payload()
    other_secret = "whsec_" + base64.b64encode(b"not-the-right-key").decode()

    response = client.post(
        "/email/welcome", content=body, headers=signed_headers(body, other_secret)
    )

    assert response.status_code == 401
    assert sent == []


def test_hook_rejects_stale_timestamp(client, sent, monkeypatch):
    monkeypatch.setattr(email_routes, "SEND_EMAIL_HOOK_SECRET", HOOK_SECRET)
    body = hook_payload()
    stale = str(int(time.time()) - 3600)
    headers = {
        "Content-Type": "application/json",
        "webhook-id": "msg_old",
        "webhook-timestamp": stale,
        "webhook-signature": sign_standard_webhook(HOOK_SECRET, "msg_old", stale, body),
    }

    response = client.post("/email/welcome", content=body, headers=headers)

    assert response.status_code == 401


def test_welcome_template_is_bilingual():
    mjml = welcome_email_template("Omar <b>", "supplier", "https://x.test/confirm?a=1&b=2")

    assert "Omar &lt;b&gt;" in mjml
    assert "Welcome to Dental Pro" in mjml
    assert "مرحباً بك في دنتال برو" in mjml
    assert "Manage products and inventory" in mjml
    assert "https://x.test/confirm?a=1&amp;b=2" in mjml


def test_user_type_labels_default():
    assert user_type_labels("dentist") == ("طبيب أسنان", "Dentist")
    assert user_type_labels("patient") == ("مستخدم", "User")


def test_send_welcome_email_uses_resend(monkeypatch):
    captured = {}

    def fake_send(params):
        captured.update(params)
        return {"id": "re_123"}

    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(resend.Emails, "send", fake_send)

    result = asyncio.run(
        email_service.send_welcome_email(
            to="sara@example.com",
            first_name=None,
            confirmation_url="https://app.dentalpro.test/confirm",
        )
    )

    assert result == {"id": "re_123"}
    assert captured["to"] == ["sara@example.com"]
    assert captured["subject"] == "مرحباً بك في دنتال برو - Welcome to Dental Pro"
    assert captured["from"] == "دنتال برو - Dental Pro <welcome@dentalpro.com>"
    assert "sara" in captured["html"]
    assert "Dentist" in captured["html"]


def test_send_email_without_api_key(monkeypatch):
    monkeypatch.setattr(email_service, "RESEND_API_KEY", None)
    with pytest.raises(email_service.EmailDeliveryError):
        asyncio.run(email_service.send_email("a@example.com", "Hi", "<mjml></mjml>"))
