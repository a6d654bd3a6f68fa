"""Key-value store adapters - abstracts over the content/session store."""

from portfolio_api.adapters.kv.base import AbstractKeyValueStore, KVEntry
from portfolio_api.adapters.kv.factory import create_kv_store
from portfolio_api.adapters.kv.in_memory import InMemoryKeyValueStore
from portfolio_api.adapters.kv.supabase import SupabaseKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "InMemoryKeyValueStore",
    "KVEntry",
    "SupabaseKeyValueStore",
    "create_kv_store",
]
