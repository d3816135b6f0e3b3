import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from habitflow.utils import add_days


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")


@pytest.fixture
def make_logs():
    """Build raw completion records the way the storage backend returns them."""

    def _make(dates, habit_id="h1"):
        return [
            {
                "id": f"{habit_id}-{index}",
                "habit_id": habit_id,
                "completed_date": date_key,
                "created_at": f"{date_key}T08:00:00Z",
            }
            for index, date_key in enumerate(dates)
        ]

    return _make


@pytest.fixture
def date_range():
    """Consecutive date keys from start, inclusive, count days long."""

    def _range(start, count):
        return [add_days(start, offset) for offset in range(count)]

    return _range
