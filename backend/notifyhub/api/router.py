from fastapi import APIRouter

from notifyhub.api.v1 import health, notifications


api_router = APIRouter()
api_router.include_router(health.router, prefix="", tags=["health"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
