import logging

from fastapi import FastAPI, Request
from fastapi.responses import Response
from dotenv import load_dotenv

from app.routes import dashboard, notify, proxy

# Ensure .env values are loaded even if uvicorn is launched without `dotenv run`.
load_dotenv(override=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, X-CSRF-Token, Accept",
    "Access-Control-Max-Age": "3600",
}

app = FastAPI(title="Pickup Watcher Proxy")


app.include_router(proxy.router)
app.include_router(notify.router)
app.include_router(dashboard.router)


@app.middleware("http")
async def cors_and_cookie_guard(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)

    response = await call_next(request)
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    # Upstream session state never reaches a caller.
    del response.headers["set-cookie"]
    return response
