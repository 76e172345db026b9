"""
Quick helper to inspect or reset the watcher state file (WATCHER_STATE_PATH).

Usage:
  python -m scripts.state_shell                    # print all stored keys
  python -m scripts.state_shell reset-baseline     # forget previously free slots
  python -m scripts.state_shell clear              # delete the state file
"""
from __future__ import annotations

import json
import os
import sys

from core.config import DEFAULT_STATE_PATH
from core.state import FREE_SLOTS_KEY, StateStore


def resolve_state_path() -> str:
    return os.getenv("WATCHER_STATE_PATH") or DEFAULT_STATE_PATH


def main(argv=None) -> None:
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "show"
    store = StateStore(resolve_state_path())

    print(f"Using state file: {store.path}", file=sys.stderr)

    if command == "show":
        print(json.dumps(store.dump(), indent=2, sort_keys=True, ensure_ascii=False))
    elif command == "reset-baseline":
        # Next poll behaves like a cold start and notifies every free slot once.
        store.set(FREE_SLOTS_KEY, [])
        print("OK (baseline cleared)")
    elif command == "clear":
        store.clear()
        print("OK (state file removed)")
    else:
        raise SystemExit(f"Unknown command: {command}")


if __name__ == "__main__":
    main()
