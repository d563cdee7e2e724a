"""Unit tests for the WorkBreakScheduler state machine."""

import sqlite3
import pytest
from datetime import datetime
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.data.database import SCHEMA_SQL
from src.data.models import (
    EventKind, NotificationKind, SchedulerEvent, SchedulerSettings, SchedulerState,
)
from src.data.repository import Repository
from src.services.break_scheduler import RESTART_DELAY_SECONDS, WorkBreakScheduler
from src.services.event_dispatcher import EventDispatcher


class RecordingNotifier:
    def __init__(self):
        self.delivered = []

    def deliver(self, kind, value):
        self.delivered.append((kind, value))


@pytest.fixture
def repo():
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    return Repository(conn)


@pytest.fixture
def events():
    return []


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_scheduler(clock, events, notifier):
    def _make(work=1500, brk=20, focus=3600, **kwargs):
        settings = SchedulerSettings()
        settings.timers.work_interval = work
        settings.timers.break_duration = brk
        settings.timers.focus_duration = focus
        kwargs.setdefault("settings", settings)
        return WorkBreakScheduler(
            notifier=notifier, on_event=events.append, clock=clock, **kwargs
        )
    return _make


@pytest.fixture
def sched(make_scheduler):
    s = make_scheduler()
    s.start()
    return s


def _kinds(events, kind):
    return [e for e in events if e.kind is kind]


def _ticks(scheduler, n):
    for _ in range(n):
        scheduler.tick()


class TestWorkBreakCycle:
    def test_idle_until_started(self, make_scheduler, events):
        s = make_scheduler()
        assert s.state is SchedulerState.IDLE
        _ticks(s, 5)
        assert events == []
        assert s.remaining_work_time == 1500

    def test_full_cycle(self, sched, events):
        _ticks(sched, 1499)
        assert _kinds(events, EventKind.BREAK_START) == []
        assert sched.remaining_work_time == 1

        sched.tick()
        assert len(_kinds(events, EventKind.BREAK_START)) == 1
        assert sched.state is SchedulerState.ON_BREAK
        assert sched.remaining_break_time() == 20
        assert sched.break_progress() == 1.0

        _ticks(sched, 19)
        assert _kinds(events, EventKind.BREAK_END) == []
        assert sched.remaining_break_time() == 1

        sched.tick()
        assert len(_kinds(events, EventKind.BREAK_END)) == 1
        assert len(_kinds(events, EventKind.BREAK_START)) == 1
        assert sched.state is SchedulerState.WORKING
        assert sched.remaining_work_time == 1500
        assert sched.remaining_break_time() == 0

    def test_time_update_every_working_tick(self, sched, events):
        _ticks(sched, 3)
        updates = [e.value for e in _kinds(events, EventKind.TIME_UPDATE)]
        assert updates == [1499, 1498, 1497]

    def test_break_start_follows_final_time_update(self, make_scheduler, events):
        s = make_scheduler(work=2)
        s.start()
        _ticks(s, 2)
        assert events[-2:] == [
            SchedulerEvent(EventKind.TIME_UPDATE, 0),
            SchedulerEvent(EventKind.BREAK_START),
        ]

    def test_no_break_time_update_during_break(self, make_scheduler, events):
        s = make_scheduler(work=1, brk=5)
        s.start()
        s.tick()
        events.clear()
        _ticks(s, 3)
        assert _kinds(events, EventKind.TIME_UPDATE) == []


class TestNotifications:
    def test_system_warnings_fire_once_each(self, sched, notifier, events):
        _ticks(sched, 1500)
        assert notifier.delivered == [
            (NotificationKind.ADVANCE_WARNING, 5),
            (NotificationKind.ADVANCE_WARNING, 2),
            (NotificationKind.ADVANCE_WARNING, 1),
        ]
        assert _kinds(events, EventKind.BREAK_WARNING) == []
        assert _kinds(events, EventKind.BREAK_COUNTDOWN) == []

    def test_warning_timing(self, sched, notifier):
        fired_at = {}
        for _ in range(1500):
            before = len(notifier.delivered)
            sched.tick()
            if len(notifier.delivered) > before:
                fired_at[notifier.delivered[-1][1]] = sched.remaining_work_time
        assert fired_at == {5: 301, 2: 121, 1: 61}

    def test_warnings_rearm_next_interval(self, sched, notifier):
        _ticks(sched, 1500 + 20 + 1500)
        assert [v for _, v in notifier.delivered] == [5, 2, 1, 5, 2, 1]

    def test_in_app_channel(self, sched, notifier, events):
        sched.update_notification_settings(use_system=False)
        events.clear()
        _ticks(sched, 1500)
        assert notifier.delivered == [
            (NotificationKind.IN_APP_INDICATOR, 5),
            (NotificationKind.IN_APP_INDICATOR, 2),
            (NotificationKind.IN_APP_INDICATOR, 1),
        ]
        assert [e.value for e in _kinds(events, EventKind.BREAK_WARNING)] == [5, 2, 1]
        countdown = [e.value for e in _kinds(events, EventKind.BREAK_COUNTDOWN)]
        assert countdown == list(range(60, 0, -1))

    def test_notifications_disabled(self, sched, notifier):
        sched.update_notification_settings(enabled=False)
        _ticks(sched, 1500)
        assert notifier.delivered == []

    def test_threshold_update_is_normalised(self, sched, events):
        sched.update_notification_settings(thresholds=[1, 3, 3, 0])
        assert sched.plan.thresholds == [3, 1]
        sched.update_notification_settings(thresholds=[0, -1])
        assert sched.plan.thresholds == [3, 1]
        assert len(_kinds(events, EventKind.SETTINGS_CHANGE)) == 2


class TestSuppression:
    def test_focus_freezes_work(self, sched, events):
        _ticks(sched, 10)
        sched.start_focus_mode()
        events.clear()
        _ticks(sched, 50)
        updates = [e.value for e in _kinds(events, EventKind.TIME_UPDATE)]
        assert updates == [1490] * 50
        assert sched.remaining_work_time == 1490

    def test_sleep_freezes_work(self, sched, events, clock):
        sched.update_sleep_settings(True, 11, 0, 13, 0)
        assert sched.in_sleep_time
        assert sched.is_currently_in_sleep_time()
        events.clear()
        _ticks(sched, 20)
        assert [e.value for e in _kinds(events, EventKind.TIME_UPDATE)] == [1500] * 20

    def test_disabled_day_freezes_work(self, sched, events):
        # Clock is on a Monday
        sched.update_schedule_settings(enabled=True, days={2: False})
        assert not sched.is_today_enabled()
        events.clear()
        _ticks(sched, 20)
        assert [e.value for e in _kinds(events, EventKind.TIME_UPDATE)] == [1500] * 20

    def test_unfreezes_after_focus_ends(self, sched):
        sched.start_focus_mode()
        _ticks(sched, 5)
        sched.end_focus_mode()
        _ticks(sched, 5)
        assert sched.remaining_work_time == 1495

    def test_break_runs_through_sleep(self, make_scheduler, events, clock):
        s = make_scheduler(work=1, brk=10)
        s.start()
        s.tick()
        assert s.on_break
        s.update_sleep_settings(True, 11, 0, 13, 0)
        s.start_focus_mode()
        _ticks(s, 10)
        assert len(_kinds(events, EventKind.BREAK_END)) == 1


class TestSleepEdges:
    def test_edge_fires_once_per_transition(self, sched, events, clock):
        sched.update_sleep_settings(True, 22, 0, 7, 0)
        assert _kinds(events, EventKind.SLEEP_MODE_CHANGE) == []

        clock.set(22, 0)
        sched.check_sleep()
        sched.check_sleep()
        clock.set(23, 30)
        sched.heartbeat()
        clock.set(7, 0)
        sched.force_sleep_check()
        sched.check_sleep()

        changes = [e.value for e in _kinds(events, EventKind.SLEEP_MODE_CHANGE)]
        assert changes == [True, False]

    def test_disabling_sleep_inside_window_clears_it(self, sched, events, clock):
        clock.set(23, 0)
        sched.update_sleep_settings(True, 22, 0, 7, 0)
        sched.update_sleep_settings(False, 22, 0, 7, 0)
        changes = [e.value for e in _kinds(events, EventKind.SLEEP_MODE_CHANGE)]
        assert changes == [True, False]
        assert not sched.in_sleep_time

    def test_out_of_range_times_are_kept(self, sched):
        sched.update_sleep_settings(True, 25, 0, 6, 61)
        assert (sched.sleep.start_hour, sched.sleep.start_minute) == (22, 0)
        assert (sched.sleep.end_hour, sched.sleep.end_minute) == (6, 0)


class TestManualBreak:
    def test_trigger_is_idempotent(self, sched, events):
        assert sched.can_break_now()
        assert sched.trigger_break_now() is True
        assert not sched.can_break_now()
        assert sched.trigger_break_now() is False
        assert len(_kinds(events, EventKind.BREAK_START)) == 1

    @pytest.mark.parametrize("blocker", ["focus", "sleep", "day"])
    def test_blocked_while_suppressed(self, sched, events, blocker):
        if blocker == "focus":
            sched.start_focus_mode()
        elif blocker == "sleep":
            sched.update_sleep_settings(True, 11, 0, 13, 0)
        else:
            sched.update_schedule_settings(enabled=True, days={2: False})
        assert not sched.can_break_now()
        assert sched.trigger_break_now() is False
        assert _kinds(events, EventKind.BREAK_START) == []
        assert sched.state is SchedulerState.WORKING

    def test_trigger_resets_warnings(self, sched, notifier):
        _ticks(sched, 1500 - 300)
        assert [v for _, v in notifier.delivered] == [5]
        sched.trigger_break_now()
        _ticks(sched, 20 + 1500)
        assert [v for _, v in notifier.delivered] == [5, 5, 2, 1]


class TestFocusMode:
    def test_focus_countdown_and_auto_end(self, make_scheduler, events):
        s = make_scheduler(focus=3)
        s.start()
        s.start_focus_mode()
        assert s.focus_active
        assert s.remaining_focus_time() == 3
        for _ in range(3):
            s.tick_focus()
        assert not s.focus_active
        assert s.remaining_focus_time() == 0
        tail = [e for e in events if e.kind in (EventKind.FOCUS_UPDATE, EventKind.SETTINGS_CHANGE)]
        assert tail == [
            SchedulerEvent(EventKind.SETTINGS_CHANGE),
            SchedulerEvent(EventKind.FOCUS_UPDATE, 2),
            SchedulerEvent(EventKind.FOCUS_UPDATE, 1),
            SchedulerEvent(EventKind.FOCUS_UPDATE, 0),
            SchedulerEvent(EventKind.SETTINGS_CHANGE),
        ]

    def test_focus_ticks_during_sleep(self, make_scheduler, clock):
        s = make_scheduler(focus=100)
        s.start()
        s.update_sleep_settings(True, 11, 0, 13, 0)
        s.start_focus_mode()
        for _ in range(10):
            s.heartbeat()
        assert s.remaining_focus_time() == 90

    def test_manual_end(self, sched, events):
        sched.start_focus_mode()
        events.clear()
        sched.end_focus_mode()
        assert events == [
            SchedulerEvent(EventKind.FOCUS_UPDATE, 0),
            SchedulerEvent(EventKind.SETTINGS_CHANGE),
        ]
        events.clear()
        sched.end_focus_mode()
        assert events == []

    def test_restart_resets_duration(self, make_scheduler):
        s = make_scheduler(focus=10)
        s.start_focus_mode()
        for _ in range(4):
            s.tick_focus()
        s.start_focus_mode()
        assert s.remaining_focus_time() == 10


class TestSettingsUpdate:
    def test_restarts_work_with_new_interval(self, sched, events):
        _ticks(sched, 100)
        sched.update_settings(work=600, break_time=30, lock_time=120, focus_time=900)
        assert sched.state is SchedulerState.WORKING
        assert sched.remaining_work_time == 600
        assert sched.timers.break_duration == 30
        assert sched.timers.focus_duration == 900
        assert len(_kinds(events, EventKind.SETTINGS_CHANGE)) == 1

    def test_non_positive_values_keep_previous(self, sched):
        sched.update_settings(work=0, break_time=-5, lock_time=0, focus_time=None)
        t = sched.timers
        assert (t.work_interval, t.break_duration, t.lock_duration, t.focus_duration) == (
            1500, 20, 300, 3600,
        )

    def test_sub_second_values_keep_previous(self, sched, events):
        sched.update_settings(work=0.5, break_time=0.4, lock_time=0.9, focus_time=0.2)
        t = sched.timers
        assert (t.work_interval, t.break_duration, t.lock_duration, t.focus_duration) == (
            1500, 20, 300, 3600,
        )
        assert not sched.is_settings_locked()
        sched.tick()
        assert sched.state is SchedulerState.WORKING
        assert sched.remaining_work_time == 1499
        assert _kinds(events, EventKind.BREAK_START) == []

    def test_fractional_values_truncate(self, sched):
        sched.update_settings(work=600.7, break_time=30.2)
        assert sched.timers.work_interval == 600
        assert sched.timers.break_duration == 30

    def test_lock_engaged(self, sched, clock):
        sched.update_settings(work=600, break_time=20, lock_time=300, focus_time=3600)
        assert sched.is_settings_locked()
        assert sched.remaining_lock_time() == pytest.approx(300)
        clock.advance(300)
        assert not sched.is_settings_locked()

    def test_zero_lock_does_not_lock(self, sched):
        sched.update_settings(work=600, break_time=20, lock_time=0, focus_time=3600)
        assert not sched.is_settings_locked()
        assert sched.remaining_lock_time() == 0

    def test_update_during_break_leaves_break_alone(self, make_scheduler):
        s = make_scheduler(work=1, brk=5)
        s.start()
        s.tick()
        s.update_settings(work=100, break_time=50)
        assert s.on_break
        assert s.remaining_break_time() == 5
        _ticks(s, 5)
        assert s.state is SchedulerState.WORKING
        assert s.remaining_work_time == 100

    def test_persists_to_store(self, make_scheduler, repo):
        s = make_scheduler(store=repo)
        s.update_settings(work=900, break_time=40, lock_time=60, focus_time=1200)
        s.update_sleep_settings(True, 23, 15, 6, 45)
        s.update_schedule_settings(enabled=True, days={1: True, 9: False})
        s.update_notification_settings(use_system=False, thresholds=[10, 1])

        loaded = WorkBreakScheduler(store=repo)
        assert loaded.timers.work_interval == 900
        assert loaded.remaining_work_time == 900
        assert loaded.timers.lock_duration == 60
        assert (loaded.sleep.start_hour, loaded.sleep.end_minute) == (23, 45)
        assert loaded.schedule.enabled and loaded.schedule.sunday_enabled
        assert loaded.plan.use_system_channel is False
        assert loaded.plan.thresholds == [10, 1]


class TestDeferredRestart:
    @pytest.fixture
    def deferred(self):
        return []

    @pytest.fixture
    def dsched(self, make_scheduler, deferred):
        s = make_scheduler(work=2, brk=2, call_later=lambda d, fn: deferred.append((d, fn)))
        s.start()
        _ticks(s, 4)
        return s

    def test_restart_waits_for_callback(self, dsched, deferred):
        assert dsched.state is SchedulerState.IDLE
        assert len(deferred) == 1
        delay, restart = deferred[0]
        assert delay == RESTART_DELAY_SECONDS

        dsched.tick()
        assert dsched.state is SchedulerState.IDLE

        restart()
        assert dsched.state is SchedulerState.WORKING
        assert dsched.remaining_work_time == 2

    def test_stale_restart_after_manual_break(self, dsched, deferred, events):
        assert dsched.trigger_break_now()
        deferred[0][1]()
        assert dsched.state is SchedulerState.ON_BREAK
        assert len(_kinds(events, EventKind.BREAK_START)) == 2

    def test_stale_restart_after_settings_update(self, dsched, deferred):
        dsched.update_settings(work=50)
        generation = dsched.work.generation
        deferred[0][1]()
        assert dsched.work.generation == generation
        assert dsched.remaining_work_time == 50

    def test_restart_runs_once(self, dsched, deferred):
        restart = deferred[0][1]
        restart()
        generation = dsched.work.generation
        dsched.tick()
        restart()
        assert dsched.work.generation == generation
        assert dsched.remaining_work_time == 1


class TestEventDispatch:
    def test_reentrant_listener(self, make_scheduler):
        calls = []

        def listener(event):
            calls.append(event.kind)
            if event.kind is EventKind.BREAK_START:
                calls.append(s.trigger_break_now())

        s = make_scheduler(work=1)
        s.on_event = listener
        s.start()
        s.tick()
        assert calls == [EventKind.TIME_UPDATE, EventKind.BREAK_START, False]

    def test_dispatcher_routes_named_callbacks(self, make_scheduler):
        seen = []
        dispatcher = EventDispatcher(
            on_break_start=lambda: seen.append("start"),
            on_time_update=lambda v: seen.append(("time", v)),
            on_break_end=lambda: seen.append("end"),
        )
        s = make_scheduler(work=1, brk=1)
        s.on_event = dispatcher
        s.start()
        s.tick()
        s.tick()
        assert seen == [("time", 0), "start", "end"]

    def test_listener_errors_propagate(self, make_scheduler):
        def boom(event):
            raise RuntimeError("listener failed")

        s = make_scheduler(work=1)
        s.on_event = boom
        s.start()
        with pytest.raises(RuntimeError, match="listener failed"):
            s.tick()
        # Dispatch recovers on the next operation
        s.on_event = None
        s.tick()
