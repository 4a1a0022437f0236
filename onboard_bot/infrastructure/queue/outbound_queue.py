# onboard_bot/infrastructure/queue/outbound_queue.py

from arq.connections import ArqRedis, RedisSettings, create_pool
from loguru import logger

from onboard_bot.core.config import settings

_redis_pool: ArqRedis | None = None


async def get_redis_pool() -> ArqRedis:
    """
    Creates (once) and returns an Arq Redis pool.
    """
    global _redis_pool
    if _redis_pool is None:
        logger.info("Creating ARQ Redis pool: {}", settings.REDIS_URL)
        _redis_pool = await create_pool(RedisSettings.from_dsn(settings.REDIS_URL))
        logger.success("ARQ Redis pool ready")

    return _redis_pool


async def enqueue_outbound_message(recipient: str, text: str, channel: str = "whatsapp") -> None:
    """
    Enqueue a background job to deliver a message.
    Runs quickly inside FastAPI; the worker does the HTTP call and retries.
    """
    redis = await get_redis_pool()
    await redis.enqueue_job(
        "send_message_job",  # ← job name in WorkerSettings.functions
        recipient,
        text,
        channel,
    )
    logger.info("ARQ → Enqueued {} message to {}", channel, recipient)
