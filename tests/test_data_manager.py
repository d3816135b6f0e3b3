"""Tests for log normalization and the user progress record."""

import datetime

import pandas as pd
import pytest

from habitflow.data_manager import (
    LOG_COLUMNS,
    UserProgress,
    apply_completion_reward,
    coerce_habit_id,
    completion_date_keys,
    load_logs,
    logs_for_habit,
    parse_user_progress,
    read_habit_freeze_dates,
    record_freeze,
)

pytestmark = pytest.mark.unit


class TestLoadLogs:
    """Raw records into a clean log table."""

    def test_none_gives_empty_table(self):
        df = load_logs(None)
        assert df.empty
        assert list(df.columns) == LOG_COLUMNS

    def test_sorted_newest_first(self, make_logs):
        df = load_logs(make_logs(["2024-01-01", "2024-01-03", "2024-01-02"]))
        assert list(df['completed_date']) == ["2024-01-03", "2024-01-02", "2024-01-01"]

    def test_duplicates_dropped(self, make_logs):
        records = make_logs(["2024-01-01", "2024-01-01"]) + make_logs(["2024-01-01"], habit_id="h2")
        df = load_logs(records)
        assert len(df) == 2
        assert set(df['habit_id']) == {"h1", "h2"}

    def test_malformed_dates_dropped(self):
        records = [
            {"habit_id": "h1", "completed_date": "2024-01-01"},
            {"habit_id": "h1", "completed_date": "01/02/2024"},
            {"habit_id": "h1", "completed_date": None},
            {"habit_id": "h1"},
        ]
        assert list(load_logs(records)['completed_date']) == ["2024-01-01"]

    def test_accepts_dataframe_with_date_column(self):
        frame = pd.DataFrame({
            "habit_id": [1, 1],
            "date": [datetime.date(2024, 1, 2), pd.Timestamp("2024-01-03")],
        })
        df = load_logs(frame)
        assert list(df['completed_date']) == ["2024-01-03", "2024-01-02"]
        assert list(df['habit_id']) == ["1", "1"]

    def test_carries_mood_and_note(self):
        df = load_logs([{"habit_id": "h1", "completed_date": "2024-01-01", "mood_score": 4, "note": "ok"}])
        assert df.loc[0, 'mood_score'] == 4
        assert df.loc[0, 'note'] == "ok"

    def test_non_dict_rows_ignored(self):
        assert load_logs(["2024-01-01", 5]).empty

    def test_logs_for_habit(self, make_logs):
        records = make_logs(["2024-01-01"]) + make_logs(["2024-01-02"], habit_id="h2")
        df = logs_for_habit(records, "h2")
        assert list(df['completed_date']) == ["2024-01-02"]

    def test_completion_date_keys(self, make_logs):
        records = make_logs(["2024-01-01"]) + make_logs(["2024-01-01", "2024-01-02"], habit_id="h2")
        assert completion_date_keys(records) == {"2024-01-01", "2024-01-02"}


class TestUserProgress:
    """Typed access to the metadata blob."""

    def test_defaults_for_missing_metadata(self):
        assert parse_user_progress(None) == UserProgress()

    def test_parse_full_metadata(self):
        progress = parse_user_progress({
            "sick_mode_enabled": True,
            "total_xp": "250.7",
            "habit_freezes": {"h1": {"used_dates": ["2024-01-03", "bad", "2024-01-01", 3]}},
            "habit_order": ["h2", "h1", "h2"],
            "earned_badges": ["first_step", "first_step", 7],
        })
        assert progress.sick_mode_enabled is True
        assert progress.total_xp == 250
        assert progress.habit_freezes == {"h1": ["2024-01-01", "2024-01-03"]}
        assert progress.habit_order == ["h2", "h1"]
        assert progress.earned_badges == ["first_step"]

    def test_malformed_fields_fall_back(self):
        progress = parse_user_progress({
            "total_xp": -40,
            "habit_freezes": ["2024-01-01"],
            "habit_order": "h1",
        })
        assert progress.total_xp == 0
        assert progress.habit_freezes == {}
        assert progress.habit_order == []

    def test_read_habit_freeze_dates(self):
        metadata = {"habit_freezes": {"h1": {"used_dates": ["2024-01-02", "2024-01-01"]}}}
        assert read_habit_freeze_dates(metadata, "h1") == ["2024-01-01", "2024-01-02"]
        assert read_habit_freeze_dates(metadata, "h2") == []
        assert read_habit_freeze_dates(parse_user_progress(metadata), "h1") == ["2024-01-01", "2024-01-02"]

    def test_record_freeze_does_not_mutate_input(self):
        metadata = {"total_xp": 10, "habit_freezes": {"h1": {"used_dates": ["2024-01-01"]}}}
        updated = record_freeze(metadata, "h1", "2024-01-05")
        assert updated["habit_freezes"]["h1"]["used_dates"] == ["2024-01-01", "2024-01-05"]
        assert metadata["habit_freezes"]["h1"]["used_dates"] == ["2024-01-01"]
        assert updated["total_xp"] == 10

    def test_record_freeze_ignores_bad_date(self):
        assert record_freeze({}, "h1", "soon") == {}

    def test_apply_completion_reward(self):
        progress = UserProgress(total_xp=90, earned_badges=["first_step"])
        updated = apply_completion_reward(progress, 68, ["first_step", "weekend_warrior"])
        assert updated.total_xp == 158
        assert updated.earned_badges == ["first_step", "weekend_warrior"]
        assert progress.total_xp == 90

    def test_to_dict_round_trips_through_parse(self):
        progress = UserProgress(total_xp=5, habit_freezes={"h1": ["2024-01-01"]}, habit_order=["h1"])
        assert parse_user_progress(progress.to_dict()) == progress


def test_dropped_rows_are_logged(caplog):
    with caplog.at_level("DEBUG", logger="habitflow.data_manager"):
        load_logs([{"habit_id": "h1", "completed_date": "someday"}])
    assert "malformed completed_date" in caplog.text


def test_float_upcast_ids_keep_integer_form():
    frame = pd.DataFrame({"habit_id": [1, None, 2], "completed_date": ["2024-01-03", "2024-01-02", "2024-01-01"]})
    df = load_logs(frame)
    assert df["habit_id"][0] == "1"
    assert pd.isna(df["habit_id"][1])
    assert df["habit_id"][2] == "2"
    assert list(logs_for_habit(frame, 1)['completed_date']) == ["2024-01-03"]


def test_non_integral_float_ids_kept():
    assert coerce_habit_id(1.5) == "1.5"
    assert coerce_habit_id(float("nan")) is None


def test_huge_total_xp_is_kept_exact():
    assert parse_user_progress({"total_xp": 10**400}).total_xp == 10**400
    assert parse_user_progress({"total_xp": "1e400"}).total_xp == 0
