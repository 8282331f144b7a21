"""Shared fixtures for all test modules."""
import os
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("API_KEY", "TEST-KEY-2026")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("TERMINAL_IDS", "TERM-001,TERM-002")

from app.main import app
from app.repository.store import store
from app.services.runtime import gateway, registry
from seed_data import load_seed_data


@pytest.fixture(autouse=True)
def reset_state():
    """Reset the store, the simulated gateway and every terminal flow before each test."""
    store.reset()
    load_seed_data()
    gateway.ready = True
    gateway.readiness_message = "Ready for transactions"
    gateway.start_failure = None
    gateway.confirm_failure = None
    gateway.require_surcharge_confirmation = True
    gateway.decline_above_cents = 1_000_000
    gateway.event_delay = 0.0
    gateway.calls.clear()
    registry.reset()
    yield


@pytest.fixture
def client():
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"X-API-Key": "TEST-KEY-2026"}
