# onboard_bot/domain/formatting.py
"""Channel formatting rules. Affect text only, never dialogue logic."""

from __future__ import annotations

from dataclasses import dataclass

from onboard_bot.domain.models.session import Channel


@dataclass(frozen=True)
class ChannelFormat:
    display_name: str
    bold_open: str
    bold_close: str
    prompt_hint: str

    def bold(self, text: str) -> str:
        return f"{self.bold_open}{text}{self.bold_close}"


CHANNEL_FORMATS: dict[Channel, ChannelFormat] = {
    Channel.WHATSAPP: ChannelFormat(
        display_name="WhatsApp",
        bold_open="*",
        bold_close="*",
        prompt_hint="Use WhatsApp formatting: *bold*, _italic_",
    ),
    Channel.TELEGRAM: ChannelFormat(
        display_name="Telegram",
        bold_open="<b>",
        bold_close="</b>",
        prompt_hint="Use Telegram HTML formatting: <b>bold</b>, <i>italic</i>",
    ),
}


def channel_format(channel: Channel | str | None) -> ChannelFormat:
    try:
        return CHANNEL_FORMATS[Channel(channel)]
    except ValueError:
        return CHANNEL_FORMATS[Channel.WHATSAPP]


def bold(text: str, channel: Channel | str | None) -> str:
    return channel_format(channel).bold(text)
