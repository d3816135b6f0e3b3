import enum
import logging
from dataclasses import dataclass

import pandas as pd

from habitflow.data_manager import coerce_habit_id, load_logs
from habitflow.streaks import StreakOptions, combined_date_keys, longest_run
from habitflow.utils import (
    SATURDAY,
    SUNDAY,
    add_days,
    normalize_frequency_days,
    today_key,
    weekday_index,
)

logger = logging.getLogger(__name__)


class AchievementKey(str, enum.Enum):
    FIRST_STEP = "first_step"
    THIRTY_DAY_CLUB = "thirty_day_club"
    WEEKEND_WARRIOR = "weekend_warrior"


@dataclass(frozen=True)
class AchievementDefinition:
    key: AchievementKey
    title: str
    description: str

    def to_dict(self):
        return {"key": self.key.value, "title": self.title, "description": self.description}


@dataclass
class AchievementCheckResult:
    unlocked_keys: list
    newly_unlocked_keys: list
    unlocked_badges: list
    newly_unlocked_badges: list

    def to_dict(self):
        return {
            "unlocked_keys": [key.value for key in self.unlocked_keys],
            "newly_unlocked_keys": [key.value for key in self.newly_unlocked_keys],
            "unlocked_badges": [badge.to_dict() for badge in self.unlocked_badges],
            "newly_unlocked_badges": [badge.to_dict() for badge in self.newly_unlocked_badges],
        }


ACHIEVEMENTS = [
    AchievementDefinition(AchievementKey.FIRST_STEP, "First Step", "Complete your first habit."),
    AchievementDefinition(AchievementKey.THIRTY_DAY_CLUB, "The 30-Day Club", "Reach a 30-day streak."),
    AchievementDefinition(
        AchievementKey.WEEKEND_WARRIOR,
        "Weekend Warrior",
        "Complete all weekend habits for the current weekend.",
    ),
]

ACHIEVEMENT_BY_KEY = {achievement.key: achievement for achievement in ACHIEVEMENTS}

THIRTY_DAY_STREAK = 30


def parse_achievement_key(value):
    """AchievementKey for a key or its string value, None for anything unknown."""
    try:
        return AchievementKey(getattr(value, "value", value))
    except ValueError:
        logger.debug("Ignoring unknown achievement key %r", value)
        return None


def weekend_for(today):
    """Date keys of the latest Saturday on/before today and the Sunday after it."""
    weekday = weekday_index(today)
    saturday = add_days(today, -((weekday + 1) % 7))
    return saturday, add_days(saturday, 1)


def has_first_step(logs):
    return not logs.empty


def has_thirty_day_club(logs, streak_options):
    date_keys = combined_date_keys(logs['completed_date'], streak_options)
    return longest_run(date_keys) >= THIRTY_DAY_STREAK


def has_weekend_warrior(habits, logs, today):
    """
    Every habit scheduled on Saturday/Sunday has been completed this weekend.
    Sunday is only checked once it is not in the future. Users without any
    weekend habit never earn it.
    """
    completions = set(zip(logs['habit_id'], logs['completed_date']))
    saturday, sunday = weekend_for(today)

    if isinstance(habits, pd.DataFrame):
        habits = habits.to_dict("records")

    checks = 0
    for habit in habits:
        if not isinstance(habit, dict):
            continue
        habit_id = coerce_habit_id(habit.get('id'))
        frequency_days = normalize_frequency_days(habit.get('frequency_days'))

        if SATURDAY in frequency_days:
            checks += 1
            if (habit_id, saturday) not in completions:
                return False

        if SUNDAY in frequency_days and sunday <= today:
            checks += 1
            if (habit_id, sunday) not in completions:
                return False

    return checks > 0


def check_and_unlock_achievements(habits, logs, today, earned_badge_keys=(), streak_options=None):
    """
    Evaluate all badges against the current data.

    habits: list of {'id', 'frequency_days'} dicts, or a DataFrame with those columns.
    logs are normalized once and shared by every check.
    earned_badge_keys: keys unlocked before; they stay unlocked.
    Returns the full unlocked set plus the ones unlocked by this call.
    """
    logs = load_logs(logs)
    reference = today_key(today)

    earned = []
    for value in earned_badge_keys or ():
        key = parse_achievement_key(value)
        if key is not None and key not in earned:
            earned.append(key)

    satisfied = set()
    if has_first_step(logs):
        satisfied.add(AchievementKey.FIRST_STEP)

    if reference is not None:
        options = streak_options if streak_options is not None else StreakOptions(today=reference)
        if has_thirty_day_club(logs, options):
            satisfied.add(AchievementKey.THIRTY_DAY_CLUB)
        if has_weekend_warrior(habits if habits is not None else [], logs, reference):
            satisfied.add(AchievementKey.WEEKEND_WARRIOR)
    else:
        logger.debug("No usable reference date, skipping date based achievements")

    newly_unlocked = [a.key for a in ACHIEVEMENTS if a.key in satisfied and a.key not in earned]
    unlocked = earned + newly_unlocked

    return AchievementCheckResult(
        unlocked_keys=unlocked,
        newly_unlocked_keys=newly_unlocked,
        unlocked_badges=[ACHIEVEMENT_BY_KEY[key] for key in unlocked],
        newly_unlocked_badges=[ACHIEVEMENT_BY_KEY[key] for key in newly_unlocked],
    )
