import copy
import datetime
import logging
import math
import numbers
from dataclasses import dataclass, field, replace

import pandas as pd

from habitflow.utils import is_valid_date_key, normalize_date_keys, today_key

logger = logging.getLogger(__name__)

LOG_COLUMNS = ['id', 'habit_id', 'completed_date', 'created_at', 'mood_score', 'note']


# --- COMPLETION LOGS ---

def _coerce_date_key(value):
    if value is None:
        return None
    if isinstance(value, str):
        return value if is_valid_date_key(value) else None
    if isinstance(value, (datetime.date, pd.Timestamp)):
        if pd.isna(value):
            return None
        return today_key(value)
    return None


def coerce_habit_id(value):
    """Habit ids compare as strings; whole-number floats lose their '.0' first."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    # Integer id columns with gaps come back from pandas as float64
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def empty_logs():
    """Empty log table with the expected columns."""
    return pd.DataFrame(columns=LOG_COLUMNS)


def load_logs(records=None):
    """
    Normalize raw completion records into a log table.

    records: a DataFrame, an iterable of dicts, or None.
    Rows without a valid YYYY-MM-DD completed_date are dropped, and only the
    first row per (habit_id, completed_date) is kept. Sorted newest first.
    """
    if records is None:
        return empty_logs()

    if isinstance(records, pd.DataFrame):
        df = records.copy()
    else:
        try:
            rows = [row for row in records if isinstance(row, dict)]
        except TypeError:
            logger.debug("Ignoring non-iterable log records: %r", type(records))
            return empty_logs()
        df = pd.DataFrame(rows)

    if df.empty:
        return empty_logs()

    # Older exports call the column 'date'
    if 'completed_date' not in df.columns and 'date' in df.columns:
        df = df.rename(columns={'date': 'completed_date'})

    df = df.reindex(columns=LOG_COLUMNS).astype(object)
    df['completed_date'] = df['completed_date'].map(_coerce_date_key)
    df['habit_id'] = df['habit_id'].map(coerce_habit_id)

    invalid = df['completed_date'].isna()
    if invalid.any():
        logger.debug("Dropping %d log(s) with malformed completed_date", int(invalid.sum()))
        df = df[~invalid]

    before = len(df)
    df = df.drop_duplicates(subset=['habit_id', 'completed_date'], keep='first')
    if len(df) < before:
        logger.debug("Dropped %d duplicate log(s)", before - len(df))

    df = df.sort_values('completed_date', ascending=False, kind='stable')
    return df.reset_index(drop=True)


def logs_for_habit(logs, habit_id):
    """Logs belonging to one habit."""
    df = load_logs(logs)
    return df[df['habit_id'] == coerce_habit_id(habit_id)].reset_index(drop=True)


def completion_date_keys(logs):
    """Set of distinct completion dates in a log table."""
    df = load_logs(logs)
    return set(df['completed_date'])


# --- USER PROGRESS ---

@dataclass
class UserProgress:
    """Typed view of the per-user metadata blob kept by the auth backend."""
    sick_mode_enabled: bool = False
    total_xp: int = 0
    habit_freezes: dict = field(default_factory=dict)
    habit_order: list = field(default_factory=list)
    earned_badges: list = field(default_factory=list)

    def to_dict(self):
        return {
            "sick_mode_enabled": self.sick_mode_enabled,
            "total_xp": self.total_xp,
            "habit_freezes": {
                habit_id: {"used_dates": list(dates)}
                for habit_id, dates in self.habit_freezes.items()
            },
            "habit_order": list(self.habit_order),
            "earned_badges": list(self.earned_badges),
        }


def _coerce_xp(value):
    if isinstance(value, bool):
        return 0
    if isinstance(value, numbers.Integral):
        return max(0, int(value))
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, math.floor(number))


def _freeze_dates_from_entry(entry):
    if not isinstance(entry, dict):
        return []
    raw = entry.get("used_dates")
    if not isinstance(raw, list):
        return []
    return normalize_date_keys(value for value in raw if isinstance(value, str))


def parse_user_progress(metadata):
    """Build a UserProgress from untyped metadata, falling back to defaults field by field."""
    if not isinstance(metadata, dict):
        return UserProgress()

    raw_freezes = metadata.get("habit_freezes")
    habit_freezes = {}
    if isinstance(raw_freezes, dict):
        for habit_id, entry in raw_freezes.items():
            dates = _freeze_dates_from_entry(entry)
            if dates:
                habit_freezes[str(habit_id)] = dates

    raw_order = metadata.get("habit_order")
    habit_order = []
    if isinstance(raw_order, list):
        for habit_id in raw_order:
            if habit_id is not None and str(habit_id) not in habit_order:
                habit_order.append(str(habit_id))

    raw_badges = metadata.get("earned_badges")
    earned_badges = []
    if isinstance(raw_badges, list):
        for key in raw_badges:
            if isinstance(key, str) and key not in earned_badges:
                earned_badges.append(key)

    return UserProgress(
        sick_mode_enabled=bool(metadata.get("sick_mode_enabled")),
        total_xp=_coerce_xp(metadata.get("total_xp")),
        habit_freezes=habit_freezes,
        habit_order=habit_order,
        earned_badges=earned_badges,
    )


def read_habit_freeze_dates(metadata, habit_id):
    """Used freeze dates for a habit, from a metadata dict or a UserProgress."""
    if isinstance(metadata, UserProgress):
        return list(metadata.habit_freezes.get(str(habit_id), []))
    if not isinstance(metadata, dict):
        return []
    freezes = metadata.get("habit_freezes")
    if not isinstance(freezes, dict):
        return []
    return _freeze_dates_from_entry(freezes.get(str(habit_id), freezes.get(habit_id)))


def record_freeze(metadata, habit_id, date_key):
    """
    Return a copy of the metadata with date_key added to the habit's used freezes.
    The caller is responsible for writing it back.
    """
    updated = copy.deepcopy(metadata) if isinstance(metadata, dict) else {}
    if not is_valid_date_key(date_key):
        logger.debug("Not recording freeze with malformed date %r", date_key)
        return updated

    habit_freezes = updated.get("habit_freezes")
    if not isinstance(habit_freezes, dict):
        habit_freezes = {}
    entry = habit_freezes.get(str(habit_id))
    entry = dict(entry) if isinstance(entry, dict) else {}

    existing = read_habit_freeze_dates(updated, habit_id)
    entry["used_dates"] = normalize_date_keys(existing + [date_key])
    habit_freezes[str(habit_id)] = entry
    updated["habit_freezes"] = habit_freezes
    return updated


def apply_completion_reward(progress, xp_gained, new_badges=None):
    """Add XP and merge newly earned badges. Returns a new UserProgress."""
    if not isinstance(progress, UserProgress):
        progress = parse_user_progress(progress)

    badges = list(progress.earned_badges)
    for badge in new_badges or []:
        key = getattr(badge, "value", badge)
        if isinstance(key, str) and key not in badges:
            badges.append(key)

    total_xp = max(0, progress.total_xp + _coerce_xp(xp_gained))
    return replace(progress, total_xp=total_xp, earned_badges=badges)
