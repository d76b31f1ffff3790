"""Shared test fixtures for swarm-learning."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from learning.models import FeedbackEvent, MaturityFeedback  # noqa: E402
from learning.storage import InMemoryStorage, SQLiteStorage  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time so decay math is deterministic."""
    return NOW


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


@pytest.fixture(name="days_ago")
def days_ago_fixture():
    """Timestamp ``days`` before NOW."""
    return days_ago


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def sqlite_storage(tmp_path):
    return SQLiteStorage(tmp_path / "learning.db")


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Run a test against both backends."""
    if request.param == "memory":
        return InMemoryStorage()
    return SQLiteStorage(tmp_path / "learning.db")


@pytest.fixture
def make_feedback():
    """Factory for feedback events aged relative to NOW."""
    counter = {"n": 0}

    def _make(criterion="type_safe", type="helpful", age_days=0.0, raw_value=1.0, task_id="task-1", context=None):
        counter["n"] += 1
        return FeedbackEvent(
            id=f"fb-{counter['n']}",
            criterion=criterion,
            type=type,
            timestamp=days_ago(age_days),
            raw_value=raw_value,
            task_id=task_id,
            context=context,
        )

    return _make


@pytest.fixture
def make_maturity_feedback():
    def _make(pattern_id="pattern-1", type="helpful", age_days=0.0, weight=1.0):
        return MaturityFeedback(
            pattern_id=pattern_id,
            type=type,
            timestamp=days_ago(age_days),
            weight=weight,
        )

    return _make
