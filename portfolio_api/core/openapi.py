"""OpenAPI customization.

Documents the admin session header as an apiKey security scheme and
attaches it only to operations that actually depend on
``require_admin_session``, so login and health show up as public.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator

from fastapi import FastAPI
from fastapi.dependencies.models import Dependant
from fastapi.routing import APIRoute

from portfolio_api.core.auth import require_admin_session

SECURITY_SCHEME_NAME = "AdminTokenAuth"

_TAGS = [
    {"name": "Admin", "description": "Administrator login, logout and session checks."},
    {"name": "Health", "description": "Liveness checks."},
]


def _calls(dependant: Dependant) -> Iterator[Callable[..., Any]]:
    for sub in dependant.dependencies:
        if sub.call is not None:
            yield sub.call
        yield from _calls(sub)


def _protected_operations(app: FastAPI, guard: Callable[..., Any]) -> set[tuple[str, str]]:
    protected: set[tuple[str, str]] = set()
    for route in app.routes:
        if isinstance(route, APIRoute) and guard in set(_calls(route.dependant)):
            protected.update((route.path_format, method.lower()) for method in route.methods)
    return protected


def apply_openapi_customizations(app: FastAPI, *, token_header: str = "X-Admin-Token") -> None:
    """Wrap ``app.openapi`` so the schema documents admin session auth."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        schemes[SECURITY_SCHEME_NAME] = {
            "type": "apiKey",
            "in": "header",
            "name": token_header,
            "description": "Session token returned by POST /v1/admin/login.",
        }

        tags = schema.setdefault("tags", [])
        known = {tag.get("name") for tag in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in known)

        protected = _protected_operations(app, require_admin_session)
        for path, operations in schema.get("paths", {}).items():
            for method, operation in operations.items():
                if (path, method) in protected and isinstance(operation, dict):
                    operation["security"] = [{SECURITY_SCHEME_NAME: []}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[method-assign]
