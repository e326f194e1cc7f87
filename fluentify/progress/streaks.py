from datetime import date, timedelta


def next_streak(last_activity: date | None, current_streak: int, today: date) -> int:
    """
    Streak after one more completion on *today*.

    yesterday -> +1, today -> unchanged, anything else (gap or no history) -> 1
    """
    if last_activity == today - timedelta(days=1):
        return current_streak + 1
    if last_activity == today:
        return current_streak
    return 1
