"""
Tests for P&L, eligibility and ranking arithmetic.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tradecup.schemas.ranking import OutcomeKind, ParticipantOutcome, ParticipantStats
from tradecup.services.ranking.pnl import (
    assign_ranks,
    calculate_pnl,
    calculate_stats,
    is_eligible,
)

T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)


def outcome(user_id, pnl_pct, registered_at=T0):
    return ParticipantOutcome(
        kind=OutcomeKind.UPDATED,
        participant_id=f"p-{user_id}",
        user_id=user_id,
        registered_at=registered_at,
        stats=ParticipantStats(pnl=0.0, pnl_pct=pnl_pct, total_volume_usdt=0.0, is_eligible=True),
    )


class TestCalculatePnl:

    def test_gain(self):
        pnl, pnl_pct = calculate_pnl(1150.0, 1000.0)

        assert pnl == pytest.approx(150.0)
        assert pnl_pct == pytest.approx(15.0)

    def test_loss(self):
        pnl, pnl_pct = calculate_pnl(800.0, 1000.0)

        assert pnl == pytest.approx(-200.0)
        assert pnl_pct == pytest.approx(-20.0)

    def test_missing_start_balance_measures_against_current(self):
        assert calculate_pnl(500.0, None) == (0.0, 0.0)

    @pytest.mark.parametrize("start", [0.0, -10.0])
    def test_non_positive_start_gives_zero_pct(self, start):
        pnl, pnl_pct = calculate_pnl(100.0, start)

        assert pnl == pytest.approx(100.0 - start)
        assert pnl_pct == 0.0


class TestEligibility:

    def test_threshold_is_inclusive(self):
        assert is_eligible(100.0, 100.0)
        assert not is_eligible(99.99, 100.0)

    def test_default_threshold(self):
        assert is_eligible(100.0, None)
        assert not is_eligible(50.0, None)

    def test_zero_threshold(self):
        assert is_eligible(0.0, 0.0)

    def test_calculate_stats(self):
        stats = calculate_stats(
            current_balance=1150.0,
            start_balance=1000.0,
            volume_since_start=250.0,
            min_volume_usdt=100.0,
        )

        assert stats.pnl == pytest.approx(150.0)
        assert stats.pnl_pct == pytest.approx(15.0)
        assert stats.total_volume_usdt == 250.0
        assert stats.is_eligible is True


class TestAssignRanks:

    def test_highest_pnl_pct_first(self):
        ranks = assign_ranks([outcome("a", 5.0), outcome("b", 15.0), outcome("c", -2.0)])

        assert ranks == {"b": 1, "a": 2, "c": 3}

    def test_ranks_are_contiguous(self):
        ranks = assign_ranks([outcome(str(i), float(i % 3)) for i in range(7)])

        assert sorted(ranks.values()) == list(range(1, 8))

    def test_tie_goes_to_earlier_registration(self):
        ranks = assign_ranks([
            outcome("late", 10.0, T0 + timedelta(hours=1)),
            outcome("early", 10.0, T0),
        ])

        assert ranks == {"early": 1, "late": 2}

    def test_full_tie_falls_back_to_user_id(self):
        ranks = assign_ranks([outcome("zed", 1.0), outcome("amy", 1.0)])

        assert ranks == {"amy": 1, "zed": 2}

    def test_outcomes_without_stats_are_ignored(self):
        skipped = ParticipantOutcome(
            kind=OutcomeKind.SKIPPED, participant_id="p-x", user_id="x", error="bad key"
        )

        assert assign_ranks([skipped, outcome("a", 1.0)]) == {"a": 1}

    def test_empty(self):
        assert assign_ranks([]) == {}
