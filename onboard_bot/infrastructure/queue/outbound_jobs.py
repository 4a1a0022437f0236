# onboard_bot/infrastructure/queue/outbound_jobs.py

from datetime import datetime, timezone

from arq.connections import ArqRedis
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from onboard_bot.core.db import AsyncSessionLocal
from onboard_bot.infrastructure.db.models import OutboundDeadLetter
from onboard_bot.infrastructure.external.messaging import MessagingError, send_text

MAX_SEND_ATTEMPTS = 3


async def send_message_job(
    ctx: dict, recipient: str, text: str, channel: str = "whatsapp", attempt: int = 1
) -> None:
    """
    Arq job: deliver one reply segment with retries + dead-letter logging.
    This is executed by the Arq worker, NOT by FastAPI directly.
    """
    logger.info(
        "Arq job send_message_job: to={} channel={} attempt={} text={!r}",
        recipient,
        channel,
        attempt,
        text[:120],
    )

    try:
        await send_text(text, recipient, channel)
        return
    except MessagingError as e:
        failure_reason, error_message = "api_error", str(e)
        logger.warning(
            "Send failed to {} on attempt {}: {}", recipient, attempt, error_message
        )
    except Exception as e:
        failure_reason, error_message = "exception", str(e)
        logger.exception(
            "Exception in send_message_job for {} attempt {}: {}", recipient, attempt, e
        )

    if attempt < MAX_SEND_ATTEMPTS:
        redis: ArqRedis = ctx["redis"]
        await redis.enqueue_job(
            "send_message_job",
            recipient,
            text,
            channel,
            attempt + 1,
        )
        logger.info("Re-enqueued message for {} attempt {}", recipient, attempt + 1)
        return

    async with AsyncSessionLocal() as db:  # type: AsyncSession
        await _write_dead_letter(
            db,
            recipient=recipient,
            channel=channel,
            text=text,
            failure_reason=failure_reason,
            last_error=error_message,
            retry_count=attempt,
        )
        await db.commit()
    logger.error(
        "Message moved to dead-letter after {} attempts for {}", attempt, recipient
    )


async def _write_dead_letter(
    db: AsyncSession,
    recipient: str,
    channel: str,
    text: str,
    failure_reason: str,
    last_error: str | None,
    retry_count: int,
) -> None:
    dl = OutboundDeadLetter(
        recipient=recipient,
        channel=channel,
        body=text,
        failure_reason=failure_reason,
        last_error=last_error,
        retry_count=retry_count,
        created_at=datetime.now(timezone.utc),
    )
    db.add(dl)
