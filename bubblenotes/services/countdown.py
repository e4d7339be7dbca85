"""
Countdown formatting for countdown notes.
"""

from datetime import datetime, timezone
from typing import Optional

FINISHED_TEXT = "0:0 minutes"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def countdown_remaining(target: datetime, now: Optional[datetime] = None) -> int:
    """Whole seconds left until target, never below zero"""
    now = _aware(now or datetime.now(timezone.utc))
    return max(0, int((_aware(target) - now).total_seconds()))


def format_countdown(target: datetime, now: Optional[datetime] = None) -> str:
    """
    Coarse human text for the time left until target.

    Args:
        target: deadline
        now: current time (defaults to the clock)

    Returns:
        e.g. "2 weeks", "3:5 hours", "1:30 minutes"; "0:0 minutes" once reached
    """
    seconds = countdown_remaining(target, now)
    if seconds <= 0:
        return FINISHED_TEXT

    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days >= 365:
        return _plural(days // 365, "year")
    if days >= 30:
        return _plural(days // 30, "month")
    if days >= 7:
        return _plural(days // 7, "week")
    if days >= 1:
        return _plural(days, "day")
    if hours >= 1:
        return f"{hours}:{minutes % 60} hours"
    return f"{minutes}:{seconds % 60} minutes"
