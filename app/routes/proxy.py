import logging
from typing import List, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from core.config import LoginCredentials
from core.errors import InvalidTargetError
from core.models import MultiResult
from core.upstream import Aggregator, forward_headers, parse_target

router = APIRouter()

log = logging.getLogger("proxy")

NO_STORE = {"cache-control": "no-store"}


def build_aggregator() -> Aggregator:
    """Fresh aggregator per request; credentials are read at call time."""
    return Aggregator(LoginCredentials.from_env())


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=NO_STORE)


@router.get("/healthz")
def healthz():
    return {"ok": True}


@router.get("/")
def root():
    return {"ok": True, "path": "/"}


@router.get("/proxy")
async def proxy(
    request: Request,
    url: Optional[str] = None,
    store_id: List[str] = Query(default=[]),
):
    """
    GET-only proxy.

    /proxy?url=https://foodsharing.de/api/stores/29441/pickups
    /proxy?store_id=29441&store_id=29438
    """
    log.info("Request received", extra={"storeIds": store_id, "url": url})
    try:
        target = parse_target(url, store_id)
    except InvalidTargetError as exc:
        return _error(str(exc), 400)

    headers = forward_headers(
        accept=request.headers.get("accept"),
        csrf_token=request.headers.get("x-csrf-token"),
    )

    try:
        result = await build_aggregator().handle(target, headers)
    except Exception as exc:
        log.exception("Proxy request failed", extra={"url": url})
        return _error(str(exc) or type(exc).__name__, 500)

    if isinstance(result, MultiResult):
        return JSONResponse(result.to_payload(), status_code=200, headers=NO_STORE)

    return StreamingResponse(
        result.body,
        status_code=result.status,
        headers={"content-type": result.content_type, **NO_STORE},
        background=BackgroundTask(result.close),
    )
