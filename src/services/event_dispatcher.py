"""
Event Dispatcher — routes SchedulerEvents to named callbacks.

For callers that prefer one callback per event (on_break_start, ...)
over a single event stream.
"""

from __future__ import annotations

from typing import Callable, Optional

from src.data.models import EventKind, SchedulerEvent


class EventDispatcher:
    """Callable event sink; unset callbacks are skipped."""

    def __init__(
        self,
        on_break_start: Optional[Callable[[], None]] = None,
        on_break_end: Optional[Callable[[], None]] = None,
        on_time_update: Optional[Callable[[int], None]] = None,
        on_focus_update: Optional[Callable[[int], None]] = None,
        on_sleep_mode_change: Optional[Callable[[bool], None]] = None,
        on_break_warning: Optional[Callable[[int], None]] = None,
        on_break_countdown: Optional[Callable[[int], None]] = None,
        on_settings_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.on_break_start = on_break_start
        self.on_break_end = on_break_end
        self.on_time_update = on_time_update
        self.on_focus_update = on_focus_update
        self.on_sleep_mode_change = on_sleep_mode_change
        self.on_break_warning = on_break_warning
        self.on_break_countdown = on_break_countdown
        self.on_settings_change = on_settings_change

    def __call__(self, event: SchedulerEvent) -> None:
        callback = getattr(self, "on_" + event.kind.value)
        if callback is None:
            return
        if event.kind in (EventKind.BREAK_START, EventKind.BREAK_END, EventKind.SETTINGS_CHANGE):
            callback()
        else:
            callback(event.value)
