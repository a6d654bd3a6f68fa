"""Process-wide service wiring.

Limiters, the session manager and the key-value store are constructed once
by the application factory and attached to ``app.state.services``; request
handlers reach them through dependencies instead of module globals.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from fastapi import Request

from portfolio_api.adapters.kv.base import AbstractKeyValueStore
from portfolio_api.adapters.kv.factory import create_kv_store
from portfolio_api.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    InMemoryLoginAttemptLimiter,
)
from portfolio_api.adapters.rate_limit.striped import StripedLockMap
from portfolio_api.adapters.storage.base import AbstractObjectStorage
from portfolio_api.adapters.storage.factory import create_object_storage
from portfolio_api.core.config import Settings
from portfolio_api.core.context import TrustedProxies
from portfolio_api.services.auth_service import AdminAuthService
from portfolio_api.services.session_service import SessionManager


@dataclass
class ServiceContainer:
    settings: Settings
    kv_store: AbstractKeyValueStore
    login_limiter: InMemoryLoginAttemptLimiter
    api_limiter: InMemoryFixedWindowRateLimiter
    sessions: SessionManager
    auth: AdminAuthService
    storage: AbstractObjectStorage | None = None
    trusted_proxies: TrustedProxies = field(default_factory=TrustedProxies)

    async def aclose(self) -> None:
        await self.kv_store.aclose()
        if self.storage is not None:
            await self.storage.aclose()


def build_services(
    settings: Settings,
    *,
    kv_store: AbstractKeyValueStore | None = None,
    storage: AbstractObjectStorage | None = None,
    clock: Callable[[], float] = time.time,
) -> ServiceContainer:
    """Construct every stateful service from configuration.

    Args:
        settings: Resolved application settings.
        kv_store: Store to use instead of the configured backend.
        storage: Object storage to use instead of the configured one.
        clock: Time source shared by limiters and sessions.
    """
    cfg = settings.app
    store = kv_store if kv_store is not None else create_kv_store(settings)

    login_limiter = InMemoryLoginAttemptLimiter(
        max_attempts=cfg.login_max_attempts,
        attempt_window_seconds=cfg.login_attempt_window_seconds,
        lockout_seconds=cfg.login_lockout_seconds,
        clock=clock,
        state=StripedLockMap(shards=cfg.lock_shards),
    )
    api_limiter = InMemoryFixedWindowRateLimiter(
        limit=cfg.api_rate_limit_requests,
        window_seconds=cfg.api_rate_limit_window_seconds,
        clock=clock,
        state=StripedLockMap(shards=cfg.lock_shards),
    )
    sessions = SessionManager(store, ttl_seconds=cfg.session_ttl_seconds, clock=clock)
    auth = AdminAuthService(
        store=store,
        sessions=sessions,
        login_limiter=login_limiter,
        api_limiter=api_limiter,
        admin_password=cfg.admin_password,
        admin_header=cfg.admin_token_header,
        clock=clock,
    )

    return ServiceContainer(
        settings=settings,
        kv_store=store,
        login_limiter=login_limiter,
        api_limiter=api_limiter,
        sessions=sessions,
        auth=auth,
        storage=storage if storage is not None else create_object_storage(settings),
        trusted_proxies=TrustedProxies.parse(cfg.trusted_proxies),
    )


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the app's ServiceContainer."""
    return request.app.state.services


def get_auth_service(request: Request) -> AdminAuthService:
    return get_services(request).auth
