"""
Ranking Background Jobs

Celery entry point for the periodic cup ranking cycle.
"""

import asyncio
from typing import Any, Dict

from celery import shared_task
from celery.signals import worker_process_init
from loguru import logger

from tradecup.core.logging import setup_logging
from tradecup.db.session import dispose_engine
from tradecup.services.lbank.client import get_lbank_client
from tradecup.services.ranking.engine import get_ranking_engine


@worker_process_init.connect
def init_worker_logging(**kwargs):
    setup_logging()


async def run_ranking_cycle() -> Dict[str, Any]:
    """Build the engine, run one cycle and release the HTTP client."""
    try:
        async with get_lbank_client() as lbank:
            engine = get_ranking_engine(exchange=lbank)
            result = await engine.run_cycle()
    finally:
        # Each task runs in a fresh event loop
        await dispose_engine()

    if not result.results:
        return {"message": "No active cups"}
    return result.to_dict()


@shared_task(name="ranking.run_cycle")
def run_cycle_task() -> Dict[str, Any]:
    """
    Recompute rankings for every active cup.

    Runs every RANKING_INTERVAL_SECONDS via Celery beat.
    """
    logger.info("Starting ranking cycle")

    try:
        report = asyncio.run(run_ranking_cycle())
    except Exception as e:
        logger.error(f"Ranking cycle failed: {e}")
        raise

    logger.info(f"Ranking cycle complete: {report}")
    return report
