"""Factory pattern for creating key-value store instances."""

from portfolio_api.adapters.kv.base import AbstractKeyValueStore
from portfolio_api.adapters.kv.in_memory import InMemoryKeyValueStore
from portfolio_api.adapters.kv.supabase import SupabaseKeyValueStore
from portfolio_api.core.config import Settings, settings as default_settings
from portfolio_api.core.errors import MisconfiguredAppError


def create_kv_store(settings: Settings | None = None) -> AbstractKeyValueStore:
    """Instantiate the key-value store selected by ``APP_STORE_BACKEND``.

    Returns:
        AbstractKeyValueStore: Configured store.

    Raises:
        MisconfiguredAppError: If the Supabase backend lacks URL or key.
    """
    cfg = settings or default_settings
    backend = cfg.app.store_backend

    if backend == "memory":
        return InMemoryKeyValueStore()

    if backend == "supabase":
        if not cfg.supabase.url or not cfg.supabase.service_role_key:
            raise MisconfiguredAppError(
                code="supabase_not_configured",
                message="Supabase store requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY",
            )
        return SupabaseKeyValueStore(
            url=cfg.supabase.url,
            service_role_key=cfg.supabase.service_role_key,
            table=cfg.supabase.kv_table,
            timeout_seconds=cfg.supabase.timeout_seconds,
        )

    raise MisconfiguredAppError(
        code="unknown_store_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: memory, supabase",
    )
