from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (settings, services, middleware, handlers,
routers) so tests can build isolated apps with their own store and clock.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from portfolio_api.adapters.kv.base import AbstractKeyValueStore
from portfolio_api.adapters.storage.base import AbstractObjectStorage
from portfolio_api.api.routes import admin_auth_router, health_router
from portfolio_api.core.config import Settings, settings as default_settings
from portfolio_api.core.container import build_services
from portfolio_api.core.errors import UpstreamAppError
from portfolio_api.core.exception_handlers import setup_exception_handlers
from portfolio_api.core.logging import configure_logging
from portfolio_api.core.middleware import request_id_middleware, security_headers_middleware
from portfolio_api.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    kv_store: AbstractKeyValueStore | None = None,
    storage: AbstractObjectStorage | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to use; defaults to the environment-loaded ones.
        kv_store: Key-value store overriding the configured backend.
        storage: Object storage overriding the configured one.
        clock: Time source for limiters and sessions.

    Returns:
        Configured FastAPI app with services, middleware, handlers and routers.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    if not cfg.app.admin_password:
        logger.critical(
            "config.admin_password_missing",
            extra={"hint": "Set APP_ADMIN_PASSWORD; every login will fail until it is set"},
        )

    services = build_services(cfg, kv_store=kv_store, storage=storage, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services.storage is not None:
            bucket = cfg.supabase.storage_bucket
            try:
                await services.storage.ensure_bucket(bucket)
            except UpstreamAppError:
                # Uploads fail until the bucket exists; auth keeps working
                logger.error("storage.bucket_bootstrap_failed", extra={"bucket": bucket})
        yield
        await services.aclose()

    app = FastAPI(
        title="Portfolio Admin API",
        description=(
            "Backend for the portfolio CMS. Authenticates the administrator "
            "with per-IP login lockout, issues 24-hour opaque session tokens "
            "stored in the key-value store and rate limits admin requests."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    app.state.services = services

    # Middleware (last added runs first)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(admin_auth_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app, token_header=cfg.app.admin_token_header)

    return app
