"""
Settings Lock — an advisory cool-down after settings are saved.

The lock never rejects anything itself; the settings editor asks
is_locked() and decides whether to let the user in.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from src.data.models import LockState

logger = logging.getLogger(__name__)


class SettingsLock:
    """Tracks a single expiry timestamp."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self.state = LockState()

    def lock(self, duration_seconds: float) -> None:
        if duration_seconds <= 0:
            logger.debug("Lock duration %s ignored; settings stay unlocked.", duration_seconds)
            return
        self.state.locked_until = self._clock() + timedelta(seconds=duration_seconds)
        logger.info(
            "Settings locked until %s (%d min)",
            self.state.locked_until.isoformat(timespec="seconds"),
            int(duration_seconds // 60),
        )

    def unlock(self) -> None:
        self.state.locked_until = None

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        if self.state.locked_until is None:
            return False
        return (now or self._clock()) < self.state.locked_until

    def remaining(self, now: Optional[datetime] = None) -> float:
        """Seconds until the lock expires (0 when unlocked)."""
        if self.state.locked_until is None:
            return 0.0
        delta = (self.state.locked_until - (now or self._clock())).total_seconds()
        return max(0.0, delta)
