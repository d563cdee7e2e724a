"""
Repository — the single place where SQL lives.

Implements the key/value settings store the scheduler persists to, plus
grouped load/save helpers. Missing or invalid values never raise; they fall
back to the documented defaults.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional

from .models import (
    NotificationPlan,
    SchedulerSettings,
    SleepWindow,
    TimerSettings,
    WeeklySchedule,
)

logger = logging.getLogger(__name__)

# Persisted keys
WORK_INTERVAL = "workInterval"
BREAK_DURATION = "breakDuration"
LOCK_DURATION = "settingsLockDuration"
FOCUS_DURATION = "focusDuration"
NOTIFICATIONS_ENABLED = "notificationsEnabled"
USE_SYSTEM_NOTIFICATIONS = "useSystemNotifications"
NOTIFICATION_TIMING = "notificationTiming"
SLEEP_ENABLED = "sleepModeEnabled"
SLEEP_START_HOUR = "sleepStartHour"
SLEEP_START_MINUTE = "sleepStartMinute"
SLEEP_END_HOUR = "sleepEndHour"
SLEEP_END_MINUTE = "sleepEndMinute"
SCHEDULE_ENABLED = "scheduleEnabled"

# WeeklySchedule field -> persisted key
DAY_KEYS: Dict[str, str] = {
    "monday_enabled": "mondayEnabled",
    "tuesday_enabled": "tuesdayEnabled",
    "wednesday_enabled": "wednesdayEnabled",
    "thursday_enabled": "thursdayEnabled",
    "friday_enabled": "fridayEnabled",
    "saturday_enabled": "saturdayEnabled",
    "sunday_enabled": "sundayEnabled",
}


class Repository:
    """Data-access layer wrapping a sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ── Key/value contract ──────────────────────────────────────────────────

    def load(self, key: str) -> Optional[Any]:
        """Return the stored value for key, or None when absent/unreadable."""
        row = self.conn.execute(
            "SELECT value FROM settings WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt value for setting %r", key)
            return None

    def save(self, key: str, value: Any) -> None:
        self.conn.execute(
            """INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value, updated_at = excluded.updated_at""",
            (key, json.dumps(value), datetime.now().isoformat()),
        )
        self.conn.commit()

    def save_many(self, values: Dict[str, Any]) -> None:
        """Write several keys in one transaction."""
        now = datetime.now().isoformat()
        with self.conn:
            self.conn.executemany(
                """INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value, updated_at = excluded.updated_at""",
                [(k, json.dumps(v), now) for k, v in values.items()],
            )

    # ── Grouped saves ───────────────────────────────────────────────────────

    def save_timer_settings(self, timers: TimerSettings) -> None:
        self.save_many({
            WORK_INTERVAL: timers.work_interval,
            BREAK_DURATION: timers.break_duration,
            LOCK_DURATION: timers.lock_duration,
            FOCUS_DURATION: timers.focus_duration,
        })

    def save_notification_settings(self, plan: NotificationPlan) -> None:
        self.save_many({
            NOTIFICATIONS_ENABLED: plan.enabled,
            USE_SYSTEM_NOTIFICATIONS: plan.use_system_channel,
            NOTIFICATION_TIMING: list(plan.thresholds),
        })

    def save_sleep_settings(self, window: SleepWindow) -> None:
        self.save_many({
            SLEEP_ENABLED: window.enabled,
            SLEEP_START_HOUR: window.start_hour,
            SLEEP_START_MINUTE: window.start_minute,
            SLEEP_END_HOUR: window.end_hour,
            SLEEP_END_MINUTE: window.end_minute,
        })

    def save_schedule_settings(self, schedule: WeeklySchedule) -> None:
        values: Dict[str, Any] = {SCHEDULE_ENABLED: schedule.enabled}
        for attr, key in DAY_KEYS.items():
            values[key] = getattr(schedule, attr)
        self.save_many(values)

    # ── Grouped load ────────────────────────────────────────────────────────

    def load_settings(self) -> SchedulerSettings:
        """Build a SchedulerSettings, substituting defaults for anything missing."""
        settings = SchedulerSettings()

        t = settings.timers
        t.work_interval = self._positive_int(WORK_INTERVAL, t.work_interval)
        t.break_duration = self._positive_int(BREAK_DURATION, t.break_duration)
        t.lock_duration = self._positive_int(LOCK_DURATION, t.lock_duration)
        t.focus_duration = self._positive_int(FOCUS_DURATION, t.focus_duration)

        n = settings.notifications
        n.enabled = self._bool(NOTIFICATIONS_ENABLED, n.enabled)
        n.use_system_channel = self._bool(USE_SYSTEM_NOTIFICATIONS, n.use_system_channel)
        timing = self.load(NOTIFICATION_TIMING)
        if (
            isinstance(timing, list)
            and timing
            and all(isinstance(m, int) and not isinstance(m, bool) and m > 0 for m in timing)
        ):
            n.thresholds = list(timing)

        s = settings.sleep
        s.enabled = self._bool(SLEEP_ENABLED, s.enabled)
        # Times are only trusted as a group, and only once one has been saved
        if self.load(SLEEP_START_HOUR) is not None:
            s.start_hour = self._ranged_int(SLEEP_START_HOUR, s.start_hour, 23)
            s.start_minute = self._ranged_int(SLEEP_START_MINUTE, s.start_minute, 59)
            s.end_hour = self._ranged_int(SLEEP_END_HOUR, s.end_hour, 23)
            s.end_minute = self._ranged_int(SLEEP_END_MINUTE, s.end_minute, 59)

        w = settings.schedule
        w.enabled = self._bool(SCHEDULE_ENABLED, w.enabled)
        if self.load(DAY_KEYS["monday_enabled"]) is not None:
            for attr, key in DAY_KEYS.items():
                setattr(w, attr, self._bool(key, getattr(w, attr)))

        return settings

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _positive_int(self, key: str, default: int) -> int:
        value = self.load(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        seconds = int(value)
        return seconds if seconds > 0 else default

    def _ranged_int(self, key: str, default: int, upper: int) -> int:
        value = self.load(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return default
        return value if 0 <= value <= upper else default

    def _bool(self, key: str, default: bool) -> bool:
        value = self.load(key)
        return value if isinstance(value, bool) else default


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Wraps every SQL statement the app runs. The scheduler itself never sees
#   SQL; it gets a SchedulerSettings object and hands one back on save.
#
# Key design decisions:
#   - load()/save() are the narrow key/value contract; grouped helpers map
#     dataclasses onto keys so callers can't misspell a key.
#   - Validation on load, not on save: whatever is on disk (old versions,
#     hand edits) is coerced into something safe to run with.
#   - UPSERT (ON CONFLICT DO UPDATE) keeps one row per key.
#
# Interviewer-friendly talking points:
#   1. isinstance(value, bool) is checked before int because bool is a
#      subclass of int in Python — True would otherwise pass as "1 second".
#   2. save_many() uses the connection as a context manager so a group of
#      related keys commits atomically.
