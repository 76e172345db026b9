"""
Persisted watcher state re-exports.
"""
from core.state.store import (
    FREE_SLOTS_KEY,
    HEADERS_KEY,
    STORE_ID_KEY,
    StateStore,
    load_free_keys,
    load_headers_blob,
    load_store_ids,
    save_free_keys,
    save_headers_blob,
    save_store_ids,
)

__all__ = [
    "FREE_SLOTS_KEY",
    "HEADERS_KEY",
    "STORE_ID_KEY",
    "StateStore",
    "load_free_keys",
    "load_headers_blob",
    "load_store_ids",
    "save_free_keys",
    "save_headers_blob",
    "save_store_ids",
]
