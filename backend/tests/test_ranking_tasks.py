"""
Tests for the Celery ranking task.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tradecup.schemas.ranking import CupCycleSummary, CycleResult
from tradecup.services.lbank.client import LBankClient
from tradecup.workers.celery_app import celery_app
from tradecup.workers.tasks import ranking_tasks


def offline_client():
    return LBankClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))


def engine_returning(result):
    engine = MagicMock()
    engine.run_cycle = AsyncMock(return_value=result)
    return engine


class TestRankingTask:

    def test_beat_schedule(self):
        entry = celery_app.conf.beat_schedule["run-ranking-cycle"]

        assert entry["task"] == "ranking.run_cycle"
        assert entry["options"]["expires"] < entry["schedule"]

    def test_reports_cycle_result(self):
        result = CycleResult(results=[CupCycleSummary(cup_id="cup-1", updated=3)])

        with patch.object(ranking_tasks, "get_lbank_client", offline_client), \
                patch.object(ranking_tasks, "get_ranking_engine", return_value=engine_returning(result)):
            report = ranking_tasks.run_cycle_task()

        assert report == {"success": True, "results": [{"cup_id": "cup-1", "updated": 3}]}

    def test_no_active_cups(self):
        with patch.object(ranking_tasks, "get_lbank_client", offline_client), \
                patch.object(ranking_tasks, "get_ranking_engine", return_value=engine_returning(CycleResult())):
            report = ranking_tasks.run_cycle_task()

        assert report == {"message": "No active cups"}

    def test_listing_failure_propagates(self):
        engine = MagicMock()
        engine.run_cycle = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with patch.object(ranking_tasks, "get_lbank_client", offline_client), \
                patch.object(ranking_tasks, "get_ranking_engine", return_value=engine):
            with pytest.raises(RuntimeError, match="database unavailable"):
                ranking_tasks.run_cycle_task()
