"""
Ranking Services Package

Cup ranking recomputation: P&L arithmetic, persistence interface and the
cycle orchestrator.
"""

from tradecup.services.ranking.engine import (
    RankingConfig,
    RankingEngine,
    get_ranking_engine,
)
from tradecup.services.ranking.pnl import (
    assign_ranks,
    calculate_pnl,
    calculate_stats,
    is_eligible,
)
from tradecup.services.ranking.repository import (
    RankingRepository,
    SQLAlchemyRankingRepository,
)

__all__ = [
    'RankingConfig',
    'RankingEngine',
    'get_ranking_engine',
    'assign_ranks',
    'calculate_pnl',
    'calculate_stats',
    'is_eligible',
    'RankingRepository',
    'SQLAlchemyRankingRepository',
]
