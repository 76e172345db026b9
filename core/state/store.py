"""
Key-value state for the watcher, kept in a single JSON file.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

log = logging.getLogger("state")

STORE_ID_KEY = "fs_store_id"
HEADERS_KEY = "fs_auth_headers"
FREE_SLOTS_KEY = "fs_prev_free_slots"


class StateStore:
    """
    Small persistent dict. Every write goes straight to disk; a missing or
    unreadable file reads as empty.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable state file", extra={"path": str(self.path), "error": str(exc)})
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def dump(self) -> Dict[str, Any]:
        return self._read_all()


def load_free_keys(store: StateStore) -> List[str]:
    """Previously free slot keys; defaults to an empty list."""
    value = store.get(FREE_SLOTS_KEY, [])
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def save_free_keys(store: StateStore, keys: List[str]) -> None:
    store.set(FREE_SLOTS_KEY, list(keys))


def load_store_ids(store: StateStore) -> Optional[str]:
    value = store.get(STORE_ID_KEY)
    return value if isinstance(value, str) and value.strip() else None


def save_store_ids(store: StateStore, store_ids: str) -> None:
    store.set(STORE_ID_KEY, store_ids)


def load_headers_blob(store: StateStore) -> str:
    value = store.get(HEADERS_KEY, "")
    return value if isinstance(value, str) else ""


def save_headers_blob(store: StateStore, blob: str) -> None:
    store.set(HEADERS_KEY, blob)


__all__ = [
    "STORE_ID_KEY",
    "HEADERS_KEY",
    "FREE_SLOTS_KEY",
    "StateStore",
    "load_free_keys",
    "save_free_keys",
    "load_store_ids",
    "save_store_ids",
    "load_headers_blob",
    "save_headers_blob",
]
