"""
Weekly schedule gate — are breaks running today?

Weekdays use calendar numbering: Sunday=1 ... Saturday=7.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict

from src.data.models import WeeklySchedule

WEEKDAY_FIELDS: Dict[int, str] = {
    1: "sunday_enabled",
    2: "monday_enabled",
    3: "tuesday_enabled",
    4: "wednesday_enabled",
    5: "thursday_enabled",
    6: "friday_enabled",
    7: "saturday_enabled",
}


def calendar_weekday(now: datetime) -> int:
    # isoweekday(): Monday=1 ... Sunday=7
    return now.isoweekday() % 7 + 1


def is_weekday_allowed(weekday: int, schedule: WeeklySchedule) -> bool:
    if not schedule.enabled:
        return True
    attr = WEEKDAY_FIELDS.get(weekday)
    if attr is None:
        return True  # unknown day: fail open
    return getattr(schedule, attr)


def is_today_allowed(now: datetime, schedule: WeeklySchedule) -> bool:
    return is_weekday_allowed(calendar_weekday(now), schedule)
