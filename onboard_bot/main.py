from fastapi import FastAPI

from onboard_bot.api.routes import api_router
from onboard_bot.core.config import settings
from onboard_bot.core.db import engine
from onboard_bot.core.logging_config import setup_logging
from onboard_bot.infrastructure.cache.redis_client import close_redis_client
from onboard_bot.infrastructure.db.base import Base
from onboard_bot.infrastructure.db import models  # noqa: F401  (register tables)

setup_logging()

app = FastAPI(title=settings.APP_NAME)


@app.on_event("startup")
async def startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.on_event("shutdown")
async def shutdown():
    await close_redis_client()
    await engine.dispose()


app.include_router(api_router)
