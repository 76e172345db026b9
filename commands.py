# Quick reference commands (run from repo root). These are comments only; copy/paste as needed.

# Install the project with test dependencies
# python -m pip install -e ".[test]"

# Run the full test suite
# python -m pytest

# Run focused test files
# python -m pytest tests/test_proxy_routes.py tests/test_aggregator.py
# python -m pytest tests/test_reauth.py
# python -m pytest tests/test_notify_email.py
# python -m pytest tests/test_watcher.py tests/test_changes.py tests/test_scheduler.py
# python -m pytest tests/test_dashboard.py tests/test_display.py

# Start the proxy locally (with env vars loaded)
# python -m dotenv run -- python -m uvicorn app.api:app --reload --port 8787
# python -m app.local

# Run the watcher against the local proxy
# python -m dotenv run -- python main.py --store-ids 29441,29438
# python main.py --once --store-ids 29441
# WATCHER_NOTIFICATIONS=granted python main.py --test-notification

# Server-rendered dashboard
# open http://localhost:8787/dashboard?store_id=29441,29438

# Inspect or reset watcher state
# python -m scripts.state_shell
# python -m scripts.state_shell reset-baseline   # next poll notifies every free slot again
# python -m scripts.state_shell clear
