"""Shared test fixtures."""
import os

# Never reach for a real Redis from the test suite
os.environ.setdefault("STORAGE_BACKEND", "memory")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import pastebox.store  # noqa: E402
from pastebox.clock import FixedClock  # noqa: E402
from pastebox.config import settings  # noqa: E402
from pastebox.database import InMemoryBackend  # noqa: E402
from pastebox.store import PasteStore  # noqa: E402


@pytest.fixture
def t0():
    return datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(t0):
    return FixedClock(t0)


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend, clock):
    return PasteStore(backend, clock=clock)


@pytest.fixture
def client(store, monkeypatch):
    """App client wired to the in-memory store, with TEST_MODE off."""
    from pastebox.main import app

    monkeypatch.setattr(pastebox.store, "_store", store)
    monkeypatch.setattr(settings, "TEST_MODE", False)
    monkeypatch.setattr(settings, "APP_DOMAIN", "https://paste.example")
    with TestClient(app) as test_client:
        yield test_client
