"""
Streak tracking — pure functions, no DB access.
"""
from datetime import date, timedelta


def advance_streak(
    last_completion_date: date | None,
    current_streak: int,
    today: date,
) -> tuple[int, bool]:
    """
    Returns (new_streak_value, broken).
    broken is True only when an existing streak lapsed and restarted at 1;
    the caller clears claimed streak rewards in that case.
    """
    if last_completion_date == today:
        return current_streak, False

    if last_completion_date is None:
        return 1, False

    yesterday = today - timedelta(days=1)
    if last_completion_date == yesterday:
        return current_streak + 1, False

    return 1, True
