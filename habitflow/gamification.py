import logging
import math
import numbers
from dataclasses import dataclass

from habitflow.data_manager import load_logs

logger = logging.getLogger(__name__)

# --- CONFIGURATION ---
BASE_XP = 20
NUMERIC_BONUS_XP = 5
TIMER_BONUS_XP = 8
STREAK_MILESTONE_XP = 15
STREAK_MILESTONE_DAYS = 7
ALL_DAILY_HABITS_XP = 25
MILESTONE_XP = 50

FIRST_LEVEL_XP = 100
LEVEL_XP_STEP = 25

HABIT_TYPE_BONUS = {
    "boolean": 0,
    "numeric": NUMERIC_BONUS_XP,
    "timer": TIMER_BONUS_XP,
}


@dataclass
class CompletionXp:
    total: int
    breakdown: dict

    def to_dict(self):
        return {"total": self.total, "breakdown": dict(self.breakdown)}


@dataclass
class LevelInfo:
    level: int
    total_xp: int
    xp_in_current_level: int
    xp_for_next_level: int
    xp_to_next_level: int
    progress_percent: int

    def to_dict(self):
        return {
            "level": self.level,
            "total_xp": self.total_xp,
            "xp_in_current_level": self.xp_in_current_level,
            "xp_for_next_level": self.xp_for_next_level,
            "xp_to_next_level": self.xp_to_next_level,
            "progress_percent": self.progress_percent,
        }


# --- PURE LOGIC ---

def xp_needed_for_next_level(level):
    """XP it takes to clear the given level."""
    return FIRST_LEVEL_XP + (level - 1) * LEVEL_XP_STEP


def xp_to_reach_level(level):
    """Cumulative XP at which the given level starts."""
    cleared = level - 1
    return FIRST_LEVEL_XP * cleared + LEVEL_XP_STEP * cleared * (cleared - 1) // 2


def _safe_number(value):
    if isinstance(value, bool):
        return 0
    # Whole numbers stay exact, however large
    if isinstance(value, numbers.Integral):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return number if math.isfinite(number) else 0


def calculate_completion_xp(habit_type="boolean", current_streak=0, completed_all_today=False,
                            milestone_reached=False):
    """
    Calculate XP earned for a completion.
    current_streak is the streak after this completion, so the weekly bonus
    lands on the completion that reaches day 7, 14, ...
    """
    habit_type_bonus = HABIT_TYPE_BONUS.get(habit_type, 0) if isinstance(habit_type, str) else 0

    streak = _safe_number(current_streak)
    if isinstance(streak, float):
        streak = int(streak) if streak.is_integer() else 0
    streak_bonus = 0
    if streak > 0 and streak % STREAK_MILESTONE_DAYS == 0:
        streak_bonus = STREAK_MILESTONE_XP

    all_habits_bonus = ALL_DAILY_HABITS_XP if completed_all_today else 0
    milestone_bonus = MILESTONE_XP if milestone_reached else 0

    breakdown = {
        "base": BASE_XP,
        "habit_type_bonus": habit_type_bonus,
        "streak_bonus": streak_bonus,
        "all_habits_bonus": all_habits_bonus,
        "milestone_bonus": milestone_bonus,
    }
    return CompletionXp(total=sum(breakdown.values()), breakdown=breakdown)


def calculate_total_xp_from_logs(logs, average_xp_per_completion=BASE_XP):
    """Rough XP total for users without a stored total: completions times an average."""
    completions = len(load_logs(logs))
    average = _safe_number(average_xp_per_completion)
    if isinstance(average, float):
        # Round half up
        average = math.floor(average + 0.5)
    per_completion = max(1, average)
    return completions * per_completion


def get_level_from_xp(total_xp):
    """
    Return level and progress for a cumulative XP total.
    Level thresholds form an arithmetic series, so the level comes from the
    quadratic formula rather than subtracting one level at a time.
    """
    safe_total_xp = max(0, math.floor(_safe_number(total_xp)))

    # Largest k with xp_to_reach_level(k + 1) <= total:
    # LEVEL_XP_STEP * k^2 + b * k <= 2 * total
    b = 2 * FIRST_LEVEL_XP - LEVEL_XP_STEP
    root = math.isqrt(b * b + 8 * LEVEL_XP_STEP * safe_total_xp)
    cleared = max(0, (root - b) // (2 * LEVEL_XP_STEP))
    while xp_to_reach_level(cleared + 2) <= safe_total_xp:
        cleared += 1
    while cleared > 0 and xp_to_reach_level(cleared + 1) > safe_total_xp:
        cleared -= 1

    level = cleared + 1
    xp_in_current_level = safe_total_xp - xp_to_reach_level(level)
    xp_for_next_level = xp_needed_for_next_level(level)

    return LevelInfo(
        level=level,
        total_xp=safe_total_xp,
        xp_in_current_level=xp_in_current_level,
        xp_for_next_level=xp_for_next_level,
        xp_to_next_level=xp_for_next_level - xp_in_current_level,
        # Round half up
        progress_percent=(xp_in_current_level * 200 + xp_for_next_level) // (2 * xp_for_next_level),
    )
