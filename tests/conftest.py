"""
Shared fixtures.

Service modules read their settings at import time, so a MongoDB URI is
placed in the environment before any of them is imported. Neither
``MongoClient`` nor ``redis.Redis`` connects until first use; tests swap
the module-level collections for mongomock ones.
"""

import os
from datetime import datetime

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "indie_film_test")

import mongomock
import pytest

from api.common.cache import MemoryCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def db():
    return mongomock.MongoClient()["indie_film_test"]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    return MemoryCache(600, clock=clock)


@pytest.fixture
def base_time():
    return datetime(2024, 5, 1, 12, 0, 0)