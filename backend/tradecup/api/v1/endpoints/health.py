from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tradecup.core.config import settings
from tradecup.db.session import get_db

router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check - service is up"""
    return {
        "status": "healthy",
        "service": "tradecup",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/detailed")
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """Health check including the database"""
    health_status = {
        "status": "healthy",
        "service": "tradecup",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {},
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy"}
    except Exception as e:
        health_status["status"] = "degraded"
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}

    return health_status
