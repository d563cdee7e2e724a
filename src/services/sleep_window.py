"""
Sleep window evaluation — is "now" inside the nightly quiet range?
"""

from __future__ import annotations

from datetime import datetime

from src.data.models import SleepWindow

MINUTES_PER_DAY = 24 * 60


def is_inside(now: datetime, window: SleepWindow) -> bool:
    """
    True when now falls in [start, end) of an enabled window.

    start < end is an ordinary same-day range; start >= end wraps past
    midnight. start == end on the wrapping branch covers the whole day,
    so that case is routed to the same-day branch instead and matches
    nothing.
    """
    if not window.enabled:
        return False

    current = now.hour * 60 + now.minute
    start = window.start_total_minutes
    end = window.end_total_minutes

    if start <= end:
        return start <= current < end
    return current >= start or current < end


def minutes_until_wake(now: datetime, window: SleepWindow) -> int:
    """Minutes from now until the window's end time, wrapping past midnight."""
    current = now.hour * 60 + now.minute
    wake = window.end_total_minutes
    if wake > current:
        return wake - current
    return MINUTES_PER_DAY - current + wake


def format_time_until_wake(now: datetime, window: SleepWindow) -> str:
    minutes = minutes_until_wake(now, window)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours} hours and {minutes} minutes remaining"
    return f"{minutes} minutes remaining"
