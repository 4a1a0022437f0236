from fastapi import APIRouter

from onboard_bot.api.routes.admin import router as admin_router
from onboard_bot.api.routes.health import router as health_router
from onboard_bot.api.routes.webhooks import router as webhooks_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(webhooks_router, tags=["webhooks"])
api_router.include_router(admin_router, tags=["admin"])
