"""Shared fixtures for task board tests."""
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from taskboard.engine import BoardEngine
from taskboard.store import SnapshotStore

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class TickingClock:
    """Returns START, then one second later on every call."""

    def __init__(self, start=START):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"task-{next(counter)}"


@pytest.fixture
def engine(clock, ids):
    return BoardEngine(clock=clock, id_factory=ids)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "taskboard.db")


@pytest.fixture
def store(db_path):
    return SnapshotStore(db_path)
