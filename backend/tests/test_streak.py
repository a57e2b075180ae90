from datetime import date, timedelta
from levelsys.engine.streak import advance_streak

TODAY = date(2026, 2, 27)
YESTERDAY = TODAY - timedelta(days=1)
TWO_DAYS_AGO = TODAY - timedelta(days=2)


class TestAdvanceStreak:
    def test_first_completion_ever_starts_streak_at_1(self):
        new_streak, broken = advance_streak(None, 0, TODAY)
        assert new_streak == 1
        assert broken is False

    def test_consecutive_day_increments_streak(self):
        new_streak, broken = advance_streak(YESTERDAY, 5, TODAY)
        assert new_streak == 6
        assert broken is False

    def test_same_day_keeps_streak(self):
        new_streak, broken = advance_streak(TODAY, 5, TODAY)
        assert new_streak == 5
        assert broken is False

    def test_gap_resets_to_1_and_reports_break(self):
        new_streak, broken = advance_streak(TWO_DAYS_AGO, 10, TODAY)
        assert new_streak == 1
        assert broken is True

    def test_month_boundary_counts_as_consecutive(self):
        new_streak, _ = advance_streak(date(2026, 2, 28), 2, date(2026, 3, 1))
        assert new_streak == 3
