"""Shared fixtures for restinflux tests."""

from datetime import datetime, timezone

import pytest

FIXED_TIME = datetime(2024, 1, 15, 8, 23, 45, tzinfo=timezone.utc)


class RecordingSink:
    """In-memory sink that remembers what was written and flushed."""

    def __init__(self):
        self.pending = []
        self.flushed = []
        self.flush_calls = 0

    def write(self, point):
        self.pending.append(point)

    def flush(self):
        self.flush_calls += 1
        self.flushed.extend(self.pending)
        self.pending = []


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME
