# tests/test_api_routes.py
"""Tests for the webhook, admin and health routes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from onboard_bot.api.deps import get_inbound_service, get_session_store
from onboard_bot.api.routes import api_router
from onboard_bot.core.config import settings
from onboard_bot.domain.models.session import Channel
from onboard_bot.domain.services import audit_service
from onboard_bot.domain.services.inbound_service import InitiateResult
from onboard_bot.domain.session_store import InMemorySessionStore

ADMIN = {"X-Admin-Token": "s3cret"}


@pytest.fixture
def service():
    svc = MagicMock()
    svc.handle_inbound_message = AsyncMock()
    svc.initiate_onboarding = AsyncMock()
    return svc


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def client(service, store, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", "s3cret")
    monkeypatch.setattr(settings, "WHATSAPP_VERIFY_TOKEN", "verify-me")
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "")

    app = FastAPI()
    app.include_router(api_router)
    app.dependency_overrides[get_inbound_service] = lambda: service
    app.dependency_overrides[get_session_store] = lambda: store
    return TestClient(app)


def _wa_text(sender, body):
    return {
        "entry": [{"changes": [{"value": {"messages": [
            {"from": sender, "type": "text", "text": {"body": body}}
        ]}}]}]
    }


# ── health ──────────────────────────────────────────────────────


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── WhatsApp ────────────────────────────────────────────────────


def test_whatsapp_verification_echoes_challenge(client):
    resp = client.get(
        "/webhook/whatsapp",
        params={"hub.mode": "subscribe", "hub.challenge": "12345", "hub.verify_token": "verify-me"},
    )
    assert resp.status_code == 200
    assert resp.text == "12345"


def test_whatsapp_verification_rejects_bad_token(client):
    resp = client.get(
        "/webhook/whatsapp",
        params={"hub.mode": "subscribe", "hub.challenge": "12345", "hub.verify_token": "nope"},
    )
    assert resp.status_code == 403


def test_whatsapp_text_message_is_handled(client, service):
    resp = client.post("/webhook/whatsapp", json=_wa_text("14155550123", "John"))

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    service.handle_inbound_message.assert_awaited_once_with("14155550123", "John", Channel.WHATSAPP)


def test_whatsapp_status_callback_is_ignored(client, service):
    body = {"entry": [{"changes": [{"value": {"statuses": [{"status": "read"}]}}]}]}
    resp = client.post("/webhook/whatsapp", json=body)

    assert resp.json() == {"status": "ignored"}
    service.handle_inbound_message.assert_not_awaited()


def test_whatsapp_non_text_message_is_ignored(client, service):
    body = {"entry": [{"changes": [{"value": {"messages": [{"from": "1", "type": "image"}]}}]}]}
    resp = client.post("/webhook/whatsapp", json=body)

    assert resp.json() == {"status": "ignored"}
    service.handle_inbound_message.assert_not_awaited()


# ── Telegram ────────────────────────────────────────────────────


def test_telegram_message_is_handled_with_language(client, service):
    body = {"message": {"chat": {"id": 777}, "from": {"language_code": "pt-BR"}, "text": "Oi"}}
    resp = client.post("/webhook/telegram", json=body)

    assert resp.status_code == 200
    service.handle_inbound_message.assert_awaited_once_with("777", "Oi", Channel.TELEGRAM, language="pt")


def test_telegram_start_command_initiates_onboarding(client, service):
    body = {"message": {"chat": {"id": 777}, "text": "/start"}}
    client.post("/webhook/telegram", json=body)

    service.initiate_onboarding.assert_awaited_once_with("777", Channel.TELEGRAM, language=None)
    service.handle_inbound_message.assert_not_awaited()


def test_telegram_secret_is_enforced(client, service, monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_WEBHOOK_SECRET", "tg-secret")
    body = {"message": {"chat": {"id": 777}, "text": "Oi"}}

    assert client.post("/webhook/telegram", json=body).status_code == 403
    resp = client.post(
        "/webhook/telegram", json=body, headers={"X-Telegram-Bot-Api-Secret-Token": "tg-secret"}
    )
    assert resp.status_code == 200


# ── admin ───────────────────────────────────────────────────────


def test_admin_requires_token(client):
    assert client.get("/admin/audit").status_code == 401
    assert client.get("/admin/audit", headers={"X-Admin-Token": "wrong"}).status_code == 401


def test_admin_unconfigured_token_is_server_error(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", "")
    assert client.get("/admin/audit", headers=ADMIN).status_code == 500


def test_start_onboarding(client, service, store, event_loop):
    session = event_loop.run_until_complete(
        store.create_session("14155550123", Channel.WHATSAPP, current_step="confirm_details",
                             answers={"name": "John", "business_name": "Acme"})
    )
    service.initiate_onboarding.return_value = InitiateResult(session, created=True, welcome="Hi John!")

    resp = client.post(
        "/admin/onboarding",
        headers=ADMIN,
        json={"subject_key": "14155550123", "plan": "medium", "prefill": {"name": "John", "business_name": "Acme"}},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["created"] is True
    assert data["welcome"] == "Hi John!"
    assert data["session"]["current_step"] == "confirm_details"
    assert data["session"]["status"] == "in_progress"
    service.initiate_onboarding.assert_awaited_once_with(
        "14155550123",
        Channel.WHATSAPP,
        language=None,
        prefill={"name": "John", "business_name": "Acme"},
        plan="medium",
    )


def test_start_onboarding_rejects_unknown_plan(client):
    resp = client.post("/admin/onboarding", headers=ADMIN, json={"subject_key": "14155550123", "plan": "gold"})
    assert resp.status_code == 422


def test_get_session_by_subject(client, store, event_loop):
    event_loop.run_until_complete(store.create_session("555", Channel.TELEGRAM))

    resp = client.get("/admin/onboarding/555", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["channel"] == "telegram"

    assert client.get("/admin/onboarding/999", headers=ADMIN).status_code == 404


def test_stale_sessions(client, store, event_loop):
    event_loop.run_until_complete(store.create_session("555", Channel.WHATSAPP))

    resp = client.get("/admin/onboarding/stale", headers=ADMIN, params={"hours": 1})

    assert resp.status_code == 200
    assert resp.json()["idle_hours"] == 1
    assert resp.json()["count"] == 0


def test_audit_entries(client):
    audit_service.clear_buffer()
    audit_service.log_client_onboarded("555", {"name": "John"}, ["Client record created"], [], "success")

    resp = client.get("/admin/audit", headers=ADMIN, params={"result": "success"})

    assert resp.status_code == 200
    assert resp.json()["entries"][0]["subject_key"] == "555"
    audit_service.clear_buffer()
