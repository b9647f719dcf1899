"""
Tests for the pure ladder rules - match outcome, streaks, rank steps and win rate.
"""
import pytest
from rowing_backend.services import ladder_service
from rowing_backend.database.models import MatchOutcome, StreakKind


def test_determine_match_result():
    """More sets won than lost is a win, fewer is a loss, equal is a draw."""
    assert ladder_service.determine_match_result(3, 2) == MatchOutcome.MATCH_WIN
    assert ladder_service.determine_match_result(1, 3) == MatchOutcome.MATCH_LOSS
    assert ladder_service.determine_match_result(2, 2) == MatchOutcome.MATCH_DRAW
    # All sets drawn
    assert ladder_service.determine_match_result(0, 0) == MatchOutcome.MATCH_DRAW


def test_outcomes_from_both_sides_are_mirrored():
    """Side B's outcome, computed from the complement, mirrors side A's."""
    for wins, losses in [(3, 1), (0, 4), (2, 2)]:
        a = ladder_service.determine_match_result(wins, losses)
        b = ladder_service.determine_match_result(losses, wins)
        if a == MatchOutcome.MATCH_WIN:
            assert b == MatchOutcome.MATCH_LOSS
        elif a == MatchOutcome.MATCH_LOSS:
            assert b == MatchOutcome.MATCH_WIN
        else:
            assert b == MatchOutcome.MATCH_DRAW


class TestStreak:
    def test_first_match_starts_streak(self):
        assert ladder_service.calculate_streak(StreakKind.NONE, 0, MatchOutcome.MATCH_WIN) == (
            StreakKind.WIN,
            1,
        )

    def test_same_kind_extends(self):
        assert ladder_service.calculate_streak(StreakKind.WIN, 3, MatchOutcome.MATCH_WIN) == (
            StreakKind.WIN,
            4,
        )
        assert ladder_service.calculate_streak(StreakKind.DRAW, 1, MatchOutcome.MATCH_DRAW) == (
            StreakKind.DRAW,
            2,
        )

    def test_different_kind_resets_to_one(self):
        assert ladder_service.calculate_streak(StreakKind.WIN, 5, MatchOutcome.MATCH_LOSS) == (
            StreakKind.LOSS,
            1,
        )
        assert ladder_service.calculate_streak(StreakKind.LOSS, 2, MatchOutcome.MATCH_DRAW) == (
            StreakKind.DRAW,
            1,
        )


class TestNewRank:
    def test_win_moves_up_one(self):
        assert ladder_service.calculate_new_rank(3, MatchOutcome.MATCH_WIN, 5) == 2

    def test_win_at_top_stays(self):
        assert ladder_service.calculate_new_rank(1, MatchOutcome.MATCH_WIN, 5) == 1

    def test_loss_moves_down_one(self):
        assert ladder_service.calculate_new_rank(3, MatchOutcome.MATCH_LOSS, 5) == 4

    def test_loss_at_bottom_stays(self):
        assert ladder_service.calculate_new_rank(5, MatchOutcome.MATCH_LOSS, 5) == 5

    def test_draw_never_moves(self):
        assert ladder_service.calculate_new_rank(1, MatchOutcome.MATCH_DRAW, 5) == 1
        assert ladder_service.calculate_new_rank(3, MatchOutcome.MATCH_DRAW, 5) == 3
        assert ladder_service.calculate_new_rank(5, MatchOutcome.MATCH_DRAW, 5) == 5


@pytest.mark.parametrize(
    "wins,total,expected",
    [
        (0, 0, 0.0),
        (1, 1, 100.0),
        (1, 2, 50.0),
        (1, 3, 100 / 3),
        (0, 4, 0.0),
    ],
)
def test_calculate_win_rate(wins, total, expected):
    assert ladder_service.calculate_win_rate(wins, total) == pytest.approx(expected)
