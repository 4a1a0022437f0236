# onboard_bot/infrastructure/external/llm_client.py

import logging
from typing import Sequence

from openai import APIError, AsyncOpenAI

from onboard_bot.core.config import settings
from onboard_bot.domain.collaborators import ExtractionGatewayError

logger = logging.getLogger("llm_client")

# ---------------------------------------------------------------------------
# Singleton client (lazy init)
# ---------------------------------------------------------------------------
_client: AsyncOpenAI | None = None


def _get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        _client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT,
            max_retries=settings.OPENAI_MAX_RETRIES,
        )
    return _client


def build_messages(
    system_prompt: str, history: Sequence[dict[str, str]], message: str
) -> list[dict[str, str]]:
    """System prompt, then prior turns (user/assistant), then the inbound message."""
    messages = [{"role": "system", "content": system_prompt}]
    for item in history:
        role = "user" if item.get("role") == "user" else "assistant"
        text = item.get("text") or ""
        if text:
            messages.append({"role": role, "content": text})
    messages.append({"role": "user", "content": message})
    return messages


# ---------------------------------------------------------------------------
# Slot extraction
# ---------------------------------------------------------------------------
class OpenAIExtractionGateway:
    """Sends one onboarding turn to the chat model and returns its raw text."""

    def __init__(self, model: str | None = None, client: AsyncOpenAI | None = None):
        self.model = model or settings.OPENAI_MODEL
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        return self._client or _get_client()

    async def extract(
        self, system_prompt: str, history: Sequence[dict[str, str]], message: str
    ) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=build_messages(system_prompt, history, message),
                response_format={"type": "json_object"},
                temperature=0.3,
            )
        except APIError as exc:
            logger.exception("Extraction call failed")
            raise ExtractionGatewayError(str(exc), getattr(exc, "status_code", None)) from exc

        if not response.choices:
            raise ExtractionGatewayError("Extraction model returned no choices")
        content = response.choices[0].message.content
        return content or ""
