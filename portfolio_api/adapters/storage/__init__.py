"""Object storage adapters for uploaded images and signed URLs."""

from portfolio_api.adapters.storage.base import AbstractObjectStorage, Bucket
from portfolio_api.adapters.storage.factory import create_object_storage
from portfolio_api.adapters.storage.supabase import SupabaseObjectStorage

__all__ = [
    "AbstractObjectStorage",
    "Bucket",
    "SupabaseObjectStorage",
    "create_object_storage",
]
