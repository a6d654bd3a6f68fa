"""Factory for the object storage adapter."""

from portfolio_api.adapters.storage.base import AbstractObjectStorage
from portfolio_api.adapters.storage.supabase import SupabaseObjectStorage
from portfolio_api.core.config import Settings, settings as default_settings


def create_object_storage(settings: Settings | None = None) -> AbstractObjectStorage | None:
    """Return Supabase Storage when credentials are configured, else None.

    Object storage has no in-memory stand-in; deployments without Supabase
    credentials simply run without upload support.
    """
    cfg = settings or default_settings
    if not cfg.supabase.url or not cfg.supabase.service_role_key:
        return None
    return SupabaseObjectStorage(
        url=cfg.supabase.url,
        service_role_key=cfg.supabase.service_role_key,
        timeout_seconds=cfg.supabase.timeout_seconds,
    )
