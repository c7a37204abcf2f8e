import os

import numpy as np
import pytest

# The app modules build their engine at import; keep tests off Postgres.
os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("SQLITE_PATH", "test_musicquiz.sqlite3")

from tests.doubles import FakeBufferQueue, FakeNotifier, FakeStore, InMemoryCatalog


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def catalog():
    return InMemoryCatalog(seed=7)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def buffer_queue():
    return FakeBufferQueue()
