from __future__ import annotations

from portfolio_api.api.routes.admin_auth import router as admin_auth_router
from portfolio_api.api.routes.health import router as health_router

__all__ = ["admin_auth_router", "health_router"]
