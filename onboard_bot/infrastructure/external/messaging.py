# onboard_bot/infrastructure/external/messaging.py
"""Low-level WhatsApp Cloud API and Telegram Bot API senders."""

import httpx
from loguru import logger

from onboard_bot.core.config import settings

WHATSAPP_API_BASE = "https://graph.facebook.com/v20.0"
TELEGRAM_API_BASE = "https://api.telegram.org"

# WhatsApp rejects bodies above 4096 chars; Telegram likewise
MAX_TEXT_LENGTH = 4096


class MessagingError(Exception):
    def __init__(self, message: str, status_code: int = 0, channel: str = "whatsapp"):
        super().__init__(message)
        self.status_code = status_code
        self.channel = channel


def split_text(text: str, limit: int = MAX_TEXT_LENGTH) -> list[str]:
    """Split on paragraph boundaries so each chunk fits the transport limit."""
    if len(text) <= limit:
        return [text]
    chunks: list[str] = []
    current = ""
    for para in text.split("\n\n"):
        candidate = f"{current}\n\n{para}" if current else para
        if len(candidate) <= limit:
            current = candidate
            continue
        if current:
            chunks.append(current)
        while len(para) > limit:
            chunks.append(para[:limit])
            para = para[limit:]
        current = para
    if current:
        chunks.append(current)
    return chunks


async def send_whatsapp_text(to_number: str, text: str) -> None:
    url = f"{WHATSAPP_API_BASE}/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages"

    headers = {
        "Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}",
        "Content-Type": "application/json",
    }

    logger.info("WA HTTP → Sending message to {}: {!r}", to_number, text[:120])

    async with httpx.AsyncClient(timeout=10) as client:
        for chunk in split_text(text):
            payload = {
                "messaging_product": "whatsapp",
                "to": to_number,
                "text": {"body": chunk},
            }
            resp = await client.post(url, json=payload, headers=headers)
            if resp.status_code >= 400:
                logger.error("WA HTTP error {}: {}", resp.status_code, resp.text)
                raise MessagingError(
                    f"WhatsApp API error: {resp.status_code}", resp.status_code, "whatsapp"
                )

    logger.success("WA HTTP → Message sent successfully to {}", to_number)


async def send_telegram_text(chat_id: str, text: str) -> None:
    url = f"{TELEGRAM_API_BASE}/bot{settings.TELEGRAM_BOT_TOKEN}/sendMessage"

    logger.info("TG HTTP → Sending message to {}: {!r}", chat_id, text[:120])

    async with httpx.AsyncClient(timeout=10) as client:
        for chunk in split_text(text):
            resp = await client.post(
                url,
                json={"chat_id": chat_id, "text": chunk, "parse_mode": "HTML"},
            )
            if resp.status_code >= 400:
                logger.error("TG HTTP error {}: {}", resp.status_code, resp.text)
                raise MessagingError(
                    f"Telegram API error: {resp.status_code}", resp.status_code, "telegram"
                )

    logger.success("TG HTTP → Message sent successfully to {}", chat_id)


async def send_text(text: str, recipient: str, channel: str = "whatsapp") -> None:
    if channel == "telegram":
        await send_telegram_text(recipient, text)
    else:
        await send_whatsapp_text(recipient, text)
