"""
Run the proxy locally.

    python -m app.local          # listens on $PORT (default 8787)
"""
import logging
import os

import uvicorn
from dotenv import load_dotenv

log = logging.getLogger("proxy")


def main() -> None:
    load_dotenv(override=True)
    port = int(os.getenv("PORT", "8787"))
    log.info("Listening", extra={"url": f"http://localhost:{port}"})
    uvicorn.run("app.api:app", host=os.getenv("HOST", "0.0.0.0"), port=port)


if __name__ == "__main__":
    main()
