"""
Scheduler trigger for the ranking cycle.

POST /cron/ranking with ``Authorization: Bearer <CRON_SECRET>``.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from loguru import logger

from tradecup.api.deps import get_ranking_engine
from tradecup.core.config import settings
from tradecup.services.ranking.engine import RankingEngine

router = APIRouter()


async def development_only() -> None:
    if settings.ENVIRONMENT != "development":
        raise HTTPException(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, detail="Not allowed")


async def _run(engine: RankingEngine):
    try:
        result = await engine.run_cycle()
    except Exception as e:
        logger.error(f"Cron ranking error: {e}")
        return JSONResponse(status_code=500, content={"error": "Batch processing failed"})

    if not result.results:
        return {"message": "No active cups"}
    return result.to_dict()


@router.post("/ranking")
async def trigger_ranking(engine: RankingEngine = Depends(get_ranking_engine)):
    """Run one ranking cycle over all active cups."""
    return await _run(engine)


@router.get("/ranking", dependencies=[Depends(development_only)])
async def trigger_ranking_manual(engine: RankingEngine = Depends(get_ranking_engine)):
    """Manual trigger, available in development only."""
    return await _run(engine)
