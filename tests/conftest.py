"""Shared test fixtures for the task board tests."""

import sys
from pathlib import Path

import pytest

# Ensure the taskboard package is importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskboard.controller import BoardController
from taskboard.sources import StaticSource, SEED_TASKS
from taskboard.storage import MemoryStorage
from taskboard.store import TaskStore, IdGenerator


class CountingStorage(MemoryStorage):
    """MemoryStorage that records every write."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes = []

    def set_item(self, key, value):
        self.writes.append((key, value))
        super().set_item(key, value)


def fixed_clock(start=1_700_000_000.0):
    return lambda: start


@pytest.fixture
def storage():
    return CountingStorage()


@pytest.fixture
def store(storage):
    """A store seeded with one task per column (ids 1, 2, 3)."""
    s = TaskStore(
        storage,
        [StaticSource(SEED_TASKS)],
        id_generator=IdGenerator(clock=fixed_clock()),
    )
    s.load()
    return s


@pytest.fixture
def controller(storage):
    s = TaskStore(
        storage,
        [StaticSource(SEED_TASKS)],
        id_generator=IdGenerator(clock=fixed_clock()),
    )
    c = BoardController(s)
    s.load()
    return c
