"""
Data models for EyeBreak.

Plain dataclasses for the countdown sessions the scheduler owns and for the
configuration it reads. They carry data only; the timing rules live in
src/services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


DEFAULT_WORK_INTERVAL = 20 * 60
DEFAULT_BREAK_DURATION = 20
DEFAULT_LOCK_DURATION = 5 * 60
DEFAULT_FOCUS_DURATION = 60 * 60
DEFAULT_NOTIFICATION_TIMING = [5, 2, 1]


class SchedulerState(Enum):
    IDLE = "idle"
    WORKING = "working"
    ON_BREAK = "on_break"


class EventKind(Enum):
    """Everything the scheduler can tell the presentation layer."""
    BREAK_START = "break_start"
    BREAK_END = "break_end"
    TIME_UPDATE = "time_update"
    FOCUS_UPDATE = "focus_update"
    SLEEP_MODE_CHANGE = "sleep_mode_change"
    BREAK_WARNING = "break_warning"
    BREAK_COUNTDOWN = "break_countdown"
    SETTINGS_CHANGE = "settings_change"


class NotificationKind(Enum):
    ADVANCE_WARNING = "advance_warning"
    IN_APP_INDICATOR = "in_app_indicator"


@dataclass(frozen=True)
class SchedulerEvent:
    kind: EventKind
    value: Optional[object] = None


# ── Countdown sessions ──────────────────────────────────────────────────────

@dataclass
class WorkSession:
    """One work interval counting down to the next break."""
    interval_seconds: int = DEFAULT_WORK_INTERVAL
    remaining_seconds: int = DEFAULT_WORK_INTERVAL
    generation: int = 0


@dataclass
class BreakSession:
    duration_seconds: int = DEFAULT_BREAK_DURATION
    remaining_seconds: int = DEFAULT_BREAK_DURATION
    generation: int = 0


@dataclass
class FocusSession:
    duration_seconds: int = DEFAULT_FOCUS_DURATION
    remaining_seconds: int = DEFAULT_FOCUS_DURATION
    generation: int = 0


# ── Configuration ───────────────────────────────────────────────────────────

@dataclass
class SleepWindow:
    """
    Daily time-of-day range [start, end).

    When start >= end the window wraps past midnight (e.g. 22:00 to 07:00).
    """
    enabled: bool = False
    start_hour: int = 22
    start_minute: int = 0
    end_hour: int = 7
    end_minute: int = 0

    @property
    def start_total_minutes(self) -> int:
        return self.start_hour * 60 + self.start_minute

    @property
    def end_total_minutes(self) -> int:
        return self.end_hour * 60 + self.end_minute


@dataclass
class WeeklySchedule:
    """Per-weekday enable flags. Ignored entirely while ``enabled`` is False."""
    enabled: bool = False
    sunday_enabled: bool = False
    monday_enabled: bool = True
    tuesday_enabled: bool = True
    wednesday_enabled: bool = True
    thursday_enabled: bool = True
    friday_enabled: bool = True
    saturday_enabled: bool = False


@dataclass
class NotificationPlan:
    enabled: bool = True
    thresholds: List[int] = field(default_factory=lambda: list(DEFAULT_NOTIFICATION_TIMING))
    use_system_channel: bool = True
    fired_this_interval: set = field(default_factory=set)


@dataclass
class LockState:
    locked_until: Optional[datetime] = None


@dataclass
class TimerSettings:
    """The four durations edited together (all in seconds)."""
    work_interval: int = DEFAULT_WORK_INTERVAL
    break_duration: int = DEFAULT_BREAK_DURATION
    lock_duration: int = DEFAULT_LOCK_DURATION
    focus_duration: int = DEFAULT_FOCUS_DURATION


@dataclass
class SchedulerSettings:
    """Everything the settings store knows about."""
    timers: TimerSettings = field(default_factory=TimerSettings)
    notifications: NotificationPlan = field(default_factory=NotificationPlan)
    sleep: SleepWindow = field(default_factory=SleepWindow)
    schedule: WeeklySchedule = field(default_factory=WeeklySchedule)


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Defines the "shape" of every object the break scheduler works with.
#   Sessions are the mutable countdowns; everything else is configuration.
#
# Key classes and why they exist:
#   - WorkSession / BreakSession / FocusSession: one countdown each. The
#     generation number identifies "which" countdown it is, so a deferred
#     restart scheduled for an old interval can recognise it is stale.
#   - SleepWindow: a half-open [start, end) range in minutes-of-day that may
#     wrap midnight.
#   - WeeklySchedule: seven day flags plus a master switch.
#   - NotificationPlan: thresholds in minutes and the set already fired in
#     the current work interval.
#   - SchedulerEvent: what the engine emits instead of calling UI code
#     directly.
#
# Data flow:
#   Repository.load_settings() → SchedulerSettings → WorkBreakScheduler
#   Tick → sessions mutate → SchedulerEvent(s) → presentation layer
#
# Interviewer-friendly talking points:
#   1. Enums for state and event kinds: typos become AttributeErrors at
#      import time instead of silent string mismatches.
#   2. Frozen event dataclass: once emitted, an event can't be mutated by a
#      listener and then observed differently by the next one.
#   3. Defaults live next to the fields they describe, so the repository
#      and the engine agree on them without a separate constants module.
