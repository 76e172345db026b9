"""
Entry point to run the pickup watcher.
"""
from worker.main import cli


if __name__ == "__main__":
    raise SystemExit(cli())
