# onboard_bot/api/routes/webhooks.py
"""Inbound messaging webhooks (WhatsApp Cloud API, Telegram Bot API)."""

import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from onboard_bot.api.deps import get_inbound_service
from onboard_bot.core.config import settings
from onboard_bot.domain.models.session import Channel
from onboard_bot.domain.services.inbound_service import InboundService

logger = logging.getLogger("api.webhooks")

router = APIRouter(prefix="/webhook")


def _first(items):
    return items[0] if items else {}


@router.get("/whatsapp", response_class=PlainTextResponse)
async def verify_whatsapp(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
):
    if (
        hub_mode == "subscribe"
        and settings.WHATSAPP_VERIFY_TOKEN
        and hub_verify_token
        and hmac.compare_digest(hub_verify_token, settings.WHATSAPP_VERIFY_TOKEN)
    ):
        return hub_challenge or ""
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")


@router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    service: InboundService = Depends(get_inbound_service),
):
    body = await request.json()
    entry = _first(body.get("entry") or [])
    change = _first(entry.get("changes") or [])
    value = change.get("value") or {}
    message = _first(value.get("messages") or [])

    if not message:
        # Delivery/read status callbacks
        return {"status": "ignored"}
    if message.get("type") != "text":
        logger.info("Ignoring WhatsApp %s message from %s", message.get("type"), message.get("from"))
        return {"status": "ignored"}

    sender = message.get("from")
    text = (message.get("text") or {}).get("body") or ""
    await service.handle_inbound_message(sender, text, Channel.WHATSAPP)
    return {"status": "ok"}


@router.post("/telegram")
async def telegram_webhook(
    request: Request,
    service: InboundService = Depends(get_inbound_service),
    x_telegram_secret: str = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
):
    if settings.TELEGRAM_WEBHOOK_SECRET and not (
        x_telegram_secret and hmac.compare_digest(x_telegram_secret, settings.TELEGRAM_WEBHOOK_SECRET)
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid webhook secret")

    body = await request.json()
    message = body.get("message") or {}
    chat_id = (message.get("chat") or {}).get("id")
    text = message.get("text") or ""
    if chat_id is None or not text:
        return {"status": "ignored"}

    subject_key = str(chat_id)
    language = ((message.get("from") or {}).get("language_code") or "")[:2] or None

    if text.strip().startswith("/start"):
        await service.initiate_onboarding(subject_key, Channel.TELEGRAM, language=language)
    else:
        await service.handle_inbound_message(subject_key, text, Channel.TELEGRAM, language=language)
    return {"status": "ok"}
