"""
Tray App — the presentation layer for the break scheduler.

A system tray icon whose tooltip shows the current countdown and whose
menu offers "break now" and focus mode. It shows the scheduler's warnings
(system notifications via QSystemTrayIcon.showMessage) and consumes
SchedulerEvents, both relayed in order by the TimerDriver.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Slot
from PySide6.QtGui import QColor, QIcon, QPixmap
from PySide6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from src.data.models import NotificationKind, SchedulerEvent
from src.services.break_scheduler import WorkBreakScheduler
from src.services.event_dispatcher import EventDispatcher
from src.services.sleep_window import format_time_until_wake
from src.services.timer_driver import TimerDriver
from src.ui.sound_manager import SoundManager

logger = logging.getLogger(__name__)

APP_NAME = "EyeBreak"
MESSAGE_MS = 5000


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


class TrayApp(QObject):
    """Tray icon, menu, notifications and sounds."""

    def __init__(
        self,
        scheduler: WorkBreakScheduler,
        driver: TimerDriver,
        sound: Optional[SoundManager] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.scheduler = scheduler
        self.driver = driver
        self.sound = sound or SoundManager()

        self.dispatcher = EventDispatcher(
            on_break_start=self._on_break_start,
            on_break_end=self._on_break_end,
            on_time_update=self._on_time_update,
            on_focus_update=self._on_focus_update,
            on_sleep_mode_change=self._on_sleep_mode_change,
            on_break_warning=self._on_break_warning,
            on_break_countdown=self._on_break_countdown,
            on_settings_change=self._refresh_menu,
        )
        driver.event.connect(self._on_event)
        driver.notification.connect(self.deliver)
        driver.display_tick.connect(self._on_display_tick)

        self._setup_tray()

    # ── UI Construction ─────────────────────────────────────────────────

    def _setup_tray(self) -> None:
        pixmap = QPixmap(32, 32)
        pixmap.fill(QColor("#a6e3a1"))
        self.tray = QSystemTrayIcon(QIcon(pixmap), self)
        self.tray.setToolTip(APP_NAME)

        menu = QMenu()
        self.status_action = menu.addAction("Starting...")
        self.status_action.setEnabled(False)
        menu.addSeparator()
        self.break_action = menu.addAction("Take a break now")
        self.break_action.triggered.connect(self._on_break_now)
        self.focus_action = menu.addAction("Start focus mode")
        self.focus_action.triggered.connect(self._on_toggle_focus)
        menu.addSeparator()
        quit_action = menu.addAction("Quit")
        quit_action.triggered.connect(self._quit_app)
        self._menu = menu

        self.tray.setContextMenu(menu)
        self.tray.show()
        self._refresh_menu()

    # ── Notification delivery ───────────────────────────────────────────

    def deliver(self, kind: NotificationKind, value: int) -> None:
        """Receives every warning the scheduler delivers, via the driver."""
        if kind is NotificationKind.ADVANCE_WARNING:
            plural = "" if value == 1 else "s"
            self.tray.showMessage(
                "Break Coming Soon",
                f"Your eye break will start in {value} minute{plural}",
                QSystemTrayIcon.MessageIcon.Information,
                MESSAGE_MS,
            )
        self.sound.play("break_warning")

    # ── Event handlers ──────────────────────────────────────────────────

    @Slot(object)
    def _on_event(self, event: SchedulerEvent) -> None:
        self.dispatcher(event)

    def _on_break_start(self) -> None:
        self.sound.play("break_start")
        self._set_status(f"On break ({format_clock(self.scheduler.remaining_break_time())})")
        self._refresh_menu()

    def _on_break_end(self) -> None:
        self.sound.play("break_end")
        self._set_status("Back to work")
        self._refresh_menu()

    def _on_time_update(self, remaining: int) -> None:
        if self.scheduler.is_currently_in_sleep_time():
            self._set_status("Sleep time")
        elif self.scheduler.focus_active:
            self._set_status(f"Focus mode ({format_clock(self.scheduler.remaining_focus_time())})")
        elif not self.scheduler.is_today_enabled():
            self._set_status("Breaks off today")
        else:
            self._set_status(f"Next break in {format_clock(remaining)}")
        self._refresh_menu()

    def _on_focus_update(self, remaining: int) -> None:
        if remaining <= 0:
            self._refresh_menu()

    def _on_sleep_mode_change(self, in_sleep: bool) -> None:
        if in_sleep:
            wake = format_time_until_wake(self.scheduler.now(), self.scheduler.sleep)
            self.tray.showMessage(APP_NAME, f"Time to sleep ({wake})",
                                  QSystemTrayIcon.MessageIcon.Information, MESSAGE_MS)
        self._refresh_menu()

    def _on_break_warning(self, minutes: int) -> None:
        plural = "" if minutes == 1 else "s"
        self._set_status(f"Break in {minutes} minute{plural}")

    def _on_break_countdown(self, seconds: int) -> None:
        self._set_status(f"Break in {seconds} s")

    @Slot(int)
    def _on_display_tick(self, remaining: int) -> None:
        self._set_status(f"On break ({format_clock(remaining)})")

    # ── Menu actions ────────────────────────────────────────────────────

    @Slot()
    def _on_break_now(self) -> None:
        if not self.scheduler.trigger_break_now():
            self.tray.showMessage(APP_NAME, "Breaks are paused right now.",
                                  QSystemTrayIcon.MessageIcon.Information, MESSAGE_MS)

    @Slot()
    def _on_toggle_focus(self) -> None:
        if self.scheduler.focus_active:
            self.scheduler.end_focus_mode()
        else:
            self.scheduler.start_focus_mode()

    def _refresh_menu(self) -> None:
        s = self.scheduler
        self.focus_action.setText("End focus mode" if s.focus_active else "Start focus mode")
        self.break_action.setEnabled(s.can_break_now())

    def _set_status(self, text: str) -> None:
        self.status_action.setText(text)
        self.tray.setToolTip(f"{APP_NAME}: {text}")

    def _quit_app(self) -> None:
        self.driver.stop()
        self.tray.hide()
        QApplication.quit()


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Everything the user sees of the scheduler: a tray icon, a status line,
#   two actions and pop-up notifications.
#
# Key design decisions:
#   - The tray app is a consumer: it never changes a countdown itself, it
#     only calls public scheduler commands and reacts to events.
#   - EventDispatcher turns the single event stream into named handlers, so
#     this class reads like a list of "when X happens, do Y".
#   - Warnings reach deliver() through the driver's queue, after the events
#     emitted before them; the scheduler doesn't import anything from Qt.
#
# Data flow:
#   TimerDriver.event → _on_event → dispatcher → _on_break_start etc.
#   Menu click → scheduler.trigger_break_now() → BREAK_START event → sound
