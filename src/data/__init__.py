from .database import Database
from .models import (
    EventKind, NotificationKind, SchedulerEvent, SchedulerSettings, SchedulerState,
)
from .repository import Repository

__all__ = [
    "Database", "EventKind", "NotificationKind", "SchedulerEvent",
    "SchedulerSettings", "SchedulerState", "Repository",
]
