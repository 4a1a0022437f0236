# onboard_bot/infrastructure/external/messenger.py
"""Messenger / OperatorNotifier implementations over the messaging transports."""

from __future__ import annotations

import asyncio

from loguru import logger

from onboard_bot.core.config import settings
from onboard_bot.infrastructure.external.messaging import send_text
from onboard_bot.infrastructure.queue.outbound_queue import enqueue_outbound_message


class DirectMessenger:
    """Sends inline, inside the request that produced the reply."""

    async def send(self, text: str, recipient: str, channel: str = "whatsapp") -> None:
        await send_text(text, recipient, channel)


class QueuedMessenger:
    """Hands each segment to the arq worker, which retries and dead-letters."""

    async def send(self, text: str, recipient: str, channel: str = "whatsapp") -> None:
        await enqueue_outbound_message(recipient, text, channel)


def get_messenger() -> DirectMessenger | QueuedMessenger:
    return QueuedMessenger() if settings.OUTBOUND_VIA_QUEUE else DirectMessenger()


class OperatorNotifier:
    """Delivers operator digests to every configured operator channel in parallel.

    A failing channel is logged and does not affect the others.
    """

    def __init__(
        self,
        messenger=None,
        whatsapp_number: str | None = None,
        telegram_chat_id: str | None = None,
    ):
        self.messenger = messenger or DirectMessenger()
        self.targets: list[tuple[str, str]] = []
        number = settings.OPERATOR_WHATSAPP_NUMBER if whatsapp_number is None else whatsapp_number
        chat_id = settings.OPERATOR_TELEGRAM_CHAT_ID if telegram_chat_id is None else telegram_chat_id
        if number:
            self.targets.append(("whatsapp", number))
        if chat_id:
            self.targets.append(("telegram", chat_id))

    async def notify(self, text: str) -> None:
        if not self.targets:
            logger.warning("No operator channel configured; digest not delivered")
            return
        results = await asyncio.gather(
            *(self.messenger.send(text, recipient, channel) for channel, recipient in self.targets),
            return_exceptions=True,
        )
        for (channel, recipient), outcome in zip(self.targets, results):
            if isinstance(outcome, Exception):
                logger.warning("Operator digest via {} to {} failed: {}", channel, recipient, outcome)
