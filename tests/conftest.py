"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module,
so the global Settings instance sees them.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_ADMIN_PASSWORD", "correct-horse-battery")
os.environ.setdefault("APP_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "json")
os.environ.setdefault("LOG_LEVEL", "WARNING")
# Keep tests off any real Supabase project configured in the shell
os.environ["SUPABASE_URL"] = ""

from typing import Any, Callable, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from portfolio_api.adapters.kv.in_memory import InMemoryKeyValueStore
from portfolio_api.core.app_factory import create_app
from portfolio_api.core.config import AppSettings, Settings

ADMIN_PASSWORD = "correct-horse-battery"
TEST_PEER = "testclient"


class FakeClock:
    """Deterministic clock; call it like time.time."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build Settings with AppSettings fields overridden.

    The TestClient peer ("testclient") is a trusted proxy by default so tests
    can pick a client IP through X-Forwarded-For.
    """

    def _make(**app_overrides: Any) -> Settings:
        base = Settings()
        defaults = {"admin_password": ADMIN_PASSWORD, "trusted_proxies": TEST_PEER}
        app_settings = AppSettings(**{**defaults, **app_overrides})
        return base.model_copy(update={"app": app_settings})

    return _make


@pytest.fixture
def app(make_settings, kv_store: InMemoryKeyValueStore, clock: FakeClock) -> FastAPI:
    return create_app(make_settings(), kv_store=kv_store, clock=clock)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
