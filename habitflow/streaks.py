"""
Streak and freeze calculations for a single habit's completion history.

Every calendar day counts the same here; the weekly schedule is only
consulted by achievements and freeze eligibility.
"""
import logging
from dataclasses import dataclass, field

from habitflow import config
from habitflow.data_manager import completion_date_keys
from habitflow.utils import (
    add_days,
    is_scheduled_on,
    normalize_date_keys,
    today_key,
)

logger = logging.getLogger(__name__)

# Reasons a freeze cannot be used today
ALREADY_COMPLETED = "already_completed"
NOT_SCHEDULED = "not_scheduled"
ALREADY_FROZEN = "already_frozen"
NONE_AVAILABLE = "none_available"


@dataclass
class StreakOptions:
    today: object
    sick_mode_enabled: bool = False
    used_freeze_dates: list = field(default_factory=list)
    max_freezes: int = config.MAX_FREEZES
    days_per_freeze: int = config.DAYS_PER_FREEZE

    @property
    def today_key(self):
        return today_key(self.today)


@dataclass
class StreakSummary:
    current_streak: int
    longest_streak: int

    def to_dict(self):
        return {"current_streak": self.current_streak, "longest_streak": self.longest_streak}


@dataclass
class FreezeSummary:
    available: int
    earned: int
    used: int
    used_dates: list

    def to_dict(self):
        return {
            "available": self.available,
            "earned": self.earned,
            "used": self.used,
            "used_dates": list(self.used_dates),
        }


@dataclass
class FreezeEligibility:
    allowed: bool
    reason: str = None


def _as_int(value, default, minimum):
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        logger.debug("Non-integer option %r, using %d", value, default)
        number = default
    return max(minimum, number)


def _freeze_dates(options):
    if options is None:
        return []
    return normalize_date_keys(options.used_freeze_dates)


def combined_date_keys(completed, options):
    """Completed date keys plus the freeze dates from options."""
    return set(completed) | set(_freeze_dates(options))


def longest_run(date_keys):
    """Length of the longest run of consecutive date keys."""
    sorted_keys = sorted(date_keys)
    if not sorted_keys:
        return 0

    longest = 1
    running = 1
    for previous_day, current_day in zip(sorted_keys, sorted_keys[1:]):
        if add_days(previous_day, 1) == current_day:
            running += 1
            longest = max(longest, running)
        else:
            running = 1
    return longest


def _current_run(date_keys, options):
    if not date_keys or options is None:
        return 0

    today = options.today_key
    if today is None:
        logger.debug("No usable reference date, current streak is 0")
        return 0

    if today in date_keys:
        cursor = today
    elif options.sick_mode_enabled:
        cursor = max(date_keys)
    else:
        cursor = add_days(today, -1)

    streak = 0
    while cursor in date_keys:
        streak += 1
        cursor = add_days(cursor, -1)
    return streak


def calculate_current_streak(logs, options):
    """
    Consecutive days (completions or freezes) ending today, or yesterday if
    today is still open. With sick mode on, an open today holds the streak at
    the most recent logged day instead. Without options there is no today, so 0.
    """
    return _current_run(combined_date_keys(completion_date_keys(logs), options), options)


def calculate_longest_streak(logs, options=None):
    """Longest run of consecutive days (completions or freezes) ever recorded."""
    return longest_run(combined_date_keys(completion_date_keys(logs), options))


def calculate_streaks(logs, options):
    """Current and longest streak in one call."""
    date_keys = combined_date_keys(completion_date_keys(logs), options)
    return StreakSummary(
        current_streak=_current_run(date_keys, options),
        longest_streak=longest_run(date_keys),
    )


def _summarize_freezes(completed, options):
    days_per_freeze = getattr(options, "days_per_freeze", config.DAYS_PER_FREEZE)
    max_freezes = getattr(options, "max_freezes", config.MAX_FREEZES)
    days_per_freeze = _as_int(days_per_freeze, config.DAYS_PER_FREEZE, 1)
    max_freezes = _as_int(max_freezes, config.MAX_FREEZES, 0)

    earned = len(completed) // days_per_freeze
    used_dates = [date_key for date_key in _freeze_dates(options) if date_key not in completed]
    available = min(max(earned - len(used_dates), 0), max_freezes)

    return FreezeSummary(
        available=available,
        earned=earned,
        used=len(used_dates),
        used_dates=used_dates,
    )


def calculate_freeze_summary(logs, options=None):
    """
    Freezes earned from completed days, minus freezes spent, capped at max_freezes.
    A freeze on a day that was also completed is not counted as spent.
    """
    return _summarize_freezes(completion_date_keys(logs), options)


def check_freeze_eligibility(logs, options, frequency_days=None):
    """Whether a freeze may be spent on options.today for this habit."""
    completed = completion_date_keys(logs)
    today = options.today_key if options is not None else None
    if today is not None and today in completed:
        return FreezeEligibility(False, ALREADY_COMPLETED)

    if today is None or not is_scheduled_on(frequency_days, today):
        return FreezeEligibility(False, NOT_SCHEDULED)

    summary = _summarize_freezes(completed, options)
    if today in summary.used_dates:
        return FreezeEligibility(False, ALREADY_FROZEN)

    if summary.available <= 0:
        return FreezeEligibility(False, NONE_AVAILABLE)

    return FreezeEligibility(True)
