from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from notifyhub.core.config import settings
from notifyhub.db import get_engine

router = APIRouter()


@router.get("/health", summary="Health check", tags=["health"])
def read_health(request: Request):
    """Report service status and database connectivity."""
    try:
        with get_engine(request).connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "success": False,
                "message": "Database unavailable",
                "database": "disconnected",
                "error": str(e) if settings.ENVIRONMENT != "production" else "Database connection failed",
            },
        )

    return {
        "success": True,
        "message": "Push Notification Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
        "database": "connected",
    }


@router.get("/vapid-public-key", summary="VAPID public key", tags=["push"])
def get_vapid_public_key() -> dict:
    """Public key the browser needs to create a push subscription."""
    return {"success": True, "publicKey": settings.VAPID_PUBLIC_KEY}
