"""
Notification Scheduler — decides when "break coming soon" warnings fire.

The work countdown is polled once per second, so a threshold like "5 min"
is matched against a short window at the top of the minute rather than an
exact second. Each threshold fires at most once per work interval.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from src.data.models import NotificationPlan

# Seconds past a minute boundary still accepted as "on" the boundary
DEBOUNCE_SECONDS = 1
COUNTDOWN_WINDOW_SECONDS = 60


@dataclass
class NotificationDecision:
    fire: List[int] = field(default_factory=list)
    countdown_seconds: Optional[int] = None


class NotificationScheduler:
    """Stateless evaluator; the fired-set lives on the NotificationPlan."""

    def evaluate(
        self,
        remaining_seconds: int,
        interval_seconds: int,
        plan: NotificationPlan,
    ) -> NotificationDecision:
        decision = NotificationDecision()
        if not plan.enabled:
            return decision

        minutes_remaining, seconds_into_minute = divmod(remaining_seconds, 60)

        if seconds_into_minute <= DEBOUNCE_SECONDS:
            for minutes in plan.thresholds:
                if minutes == minutes_remaining and minutes not in plan.fired_this_interval:
                    plan.fired_this_interval.add(minutes)
                    decision.fire.append(minutes)

        # Live indicator for the in-app channel, every tick
        if not plan.use_system_channel and 0 < remaining_seconds <= COUNTDOWN_WINDOW_SECONDS:
            decision.countdown_seconds = remaining_seconds

        if remaining_seconds == interval_seconds:
            self.reset(plan)

        return decision

    @staticmethod
    def reset(plan: NotificationPlan) -> None:
        plan.fired_this_interval.clear()


def normalize_thresholds(thresholds) -> List[int]:
    """Drop non-positive/duplicate entries; largest first."""
    cleaned = {
        int(m) for m in thresholds
        if isinstance(m, (int, float)) and not isinstance(m, bool) and int(m) > 0
    }
    return sorted(cleaned, reverse=True)


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Given "how many seconds are left in this work interval", answers two
#   questions: which advance warnings are due now, and should the live
#   last-minute countdown show a number.
#
# Key design decisions:
#   - Debounce window: with a 1 Hz tick, "exactly 300 s left" can be missed
#     if a tick is late. Accepting seconds 0-1 of the minute gives two
#     chances; the fired-set makes sure only the first one counts.
#   - Decisions, not deliveries: this class never touches a notifier. The
#     scheduler decides which channel to use, which keeps this testable with
#     plain integers.
#
# Data flow:
#   Work tick → evaluate(remaining, interval, plan) → NotificationDecision →
#   WorkBreakScheduler delivers warnings / emits countdown events.
#
# Interviewer-friendly talking points:
#   1. divmod() gives minutes and seconds-into-minute in one call.
#   2. State lives on the plan object, so resetting a work interval is just
#      clearing a set — no hidden state in this class.
