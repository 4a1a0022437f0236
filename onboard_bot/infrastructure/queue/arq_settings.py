# onboard_bot/infrastructure/queue/arq_settings.py

from arq.connections import RedisSettings
from loguru import logger

from onboard_bot.core.config import settings
from onboard_bot.core.logging_config import setup_logging
from onboard_bot.infrastructure.queue.outbound_jobs import send_message_job


class WorkerSettings:
    """
    Used by:
        arq onboard_bot.infrastructure.queue.arq_settings.WorkerSettings
    """

    # Redis connection
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)

    # Jobs this worker can execute
    functions = [send_message_job]

    max_jobs = 100
    allow_abort_jobs = True

    @staticmethod
    async def on_startup(ctx):
        setup_logging()
        logger.info("ARQ worker starting up, Redis DSN={}", settings.REDIS_URL)

    @staticmethod
    async def on_shutdown(ctx):
        logger.info("ARQ worker shutting down")
