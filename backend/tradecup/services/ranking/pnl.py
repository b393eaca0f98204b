"""
P&L, eligibility and rank arithmetic for the ranking cycle.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from tradecup.schemas.ranking import ParticipantOutcome, ParticipantStats

DEFAULT_MIN_VOLUME_USDT = 100.0

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def calculate_pnl(
    current_balance: float,
    start_balance: Optional[float]
) -> Tuple[float, float]:
    """
    Absolute and percentage P&L against the starting balance.

    A participant with no recorded starting balance is measured against
    the current balance (pnl = 0). A non-positive starting balance yields
    0% rather than a division error.

    Returns:
        Tuple of (pnl, pnl_pct)
    """
    base = current_balance if start_balance is None else start_balance
    pnl = current_balance - base
    pnl_pct = (pnl / base) * 100 if base > 0 else 0.0
    return pnl, pnl_pct


def is_eligible(
    volume_since_start: float,
    min_volume_usdt: Optional[float],
    default_min_volume_usdt: float = DEFAULT_MIN_VOLUME_USDT,
) -> bool:
    threshold = default_min_volume_usdt if min_volume_usdt is None else min_volume_usdt
    return volume_since_start >= threshold


def calculate_stats(
    current_balance: float,
    start_balance: Optional[float],
    volume_since_start: float,
    min_volume_usdt: Optional[float],
    default_min_volume_usdt: float = DEFAULT_MIN_VOLUME_USDT,
) -> ParticipantStats:
    pnl, pnl_pct = calculate_pnl(current_balance, start_balance)
    return ParticipantStats(
        pnl=pnl,
        pnl_pct=pnl_pct,
        total_volume_usdt=volume_since_start,
        is_eligible=is_eligible(volume_since_start, min_volume_usdt, default_min_volume_usdt),
    )


def _rank_key(outcome: ParticipantOutcome):
    # Ties on pnl_pct go to the earlier registration, then user id
    return (
        -outcome.stats.pnl_pct,
        outcome.registered_at or _EPOCH,
        outcome.user_id,
    )


def assign_ranks(outcomes: List[ParticipantOutcome]) -> Dict[str, int]:
    """
    Rank the participants updated this cycle.

    Args:
        outcomes: Outcomes of kind ``updated`` (others are ignored)

    Returns:
        Mapping of user_id to 1-based rank, contiguous 1..N
    """
    scored = [o for o in outcomes if o.stats is not None]
    ordered = sorted(scored, key=_rank_key)
    return {outcome.user_id: position for position, outcome in enumerate(ordered, start=1)}
