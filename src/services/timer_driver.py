"""
Timer Driver — feeds wall-clock time into the WorkBreakScheduler.

Owns the QTimers: a 1 Hz heartbeat that mutates scheduler state and a
100 ms display timer that only reads the remaining break time. Scheduler
events are re-emitted as a Qt signal over a queued connection, so
listeners run on the next pass of the event loop, in emission order.
"""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QObject, Qt, QTimer, Signal, Slot

from src.data.models import NotificationKind, SchedulerEvent
from src.services.break_scheduler import WorkBreakScheduler

logger = logging.getLogger(__name__)

HEARTBEAT_MS = 1000
DISPLAY_MS = 100


class TimerDriver(QObject):
    """
    Qt side of the scheduler.

    Uses QTimers so every tick runs on the Qt event loop thread, which is
    the single writer for scheduler state.
    """

    event = Signal(object)              # SchedulerEvent, delivered queued
    notification = Signal(object, int)  # NotificationKind, minutes; same queue
    display_tick = Signal(int)          # remaining break seconds, while on break
    _relay = Signal(object)

    def __init__(self, scheduler: WorkBreakScheduler, parent: QObject = None) -> None:
        super().__init__(parent)
        self.scheduler = scheduler

        # Events leave the scheduler synchronously; hop through the loop
        self._relay.connect(self._forward, Qt.ConnectionType.QueuedConnection)
        scheduler.on_event = self._relay.emit
        scheduler.notifier = self
        scheduler.call_later = self.call_later

        self._heartbeat = QTimer(self)
        self._heartbeat.setInterval(HEARTBEAT_MS)
        self._heartbeat.timeout.connect(self._on_heartbeat)

        self._display = QTimer(self)
        self._display.setInterval(DISPLAY_MS)
        self._display.timeout.connect(self._on_display)

    # ── Public API ──────────────────────────────────────────────────────────

    def start(self) -> None:
        """Evaluate the sleep window right away, then begin ticking."""
        self.scheduler.check_sleep()
        self.scheduler.start()
        self._heartbeat.start()
        self._display.start()
        logger.info("Timer driver started.")

    def stop(self) -> None:
        self._heartbeat.stop()
        self._display.stop()
        logger.info("Timer driver stopped.")

    @property
    def running(self) -> bool:
        return self._heartbeat.isActive()

    @staticmethod
    def call_later(delay_seconds: float, fn: Callable[[], None]) -> None:
        QTimer.singleShot(int(delay_seconds * 1000), fn)

    # ── Timer callbacks ─────────────────────────────────────────────────────

    @Slot()
    def _on_heartbeat(self) -> None:
        self.scheduler.heartbeat()

    def deliver(self, kind: NotificationKind, value: int) -> None:
        self._relay.emit((kind, value))

    @Slot(object)
    def _forward(self, item) -> None:
        if isinstance(item, SchedulerEvent):
            self.event.emit(item)
        else:
            self.notification.emit(*item)

    @Slot()
    def _on_display(self) -> None:
        if self.scheduler.on_break:
            self.display_tick.emit(self.scheduler.remaining_break_time())


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Connects the pure scheduler to real time. The scheduler has no idea what
#   a QTimer is; this class is the only place that does.
#
# Key design decisions:
#   - One heartbeat for all state changes: sleep check, work/break tick and
#     focus tick run back-to-back in one call, so there's never a question
#     of which timer fired first.
#   - The 10 Hz display timer is read-only. It exists so a break overlay can
#     animate smoothly without speeding up the real countdown.
#   - Queued connection: scheduler events are emitted from inside a tick but
#     delivered on the next event-loop pass, keeping UI work out of the tick.
#
# Data flow:
#   QTimer → _on_heartbeat() → scheduler.heartbeat() → on_event →
#   _relay (queued) → event / notification signal → TrayApp / overlays
#
# Interviewer-friendly talking points:
#   1. QTimer vs threading.Timer: QTimer callbacks run on the main thread,
#      so they can touch widgets safely and never race each other.
#   2. QTimer.singleShot is what turns "restart work in half a second" into
#      an event-loop callback; the scheduler guards it with a generation
#      token so a stale one is harmless.
