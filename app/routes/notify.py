import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.email_utils import send_text_email
from core.config import MailConfig
from core.errors import MailConfigError

router = APIRouter()

log = logging.getLogger("notify-email")


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


@router.post("/notify-email")
async def notify_email(request: Request):
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}

    subject = _clean(payload.get("subject"))
    text = _clean(payload.get("text"))
    log.info("Request received", extra={"subject": subject, "textLength": len(text)})

    if not subject or not text:
        log.error("Missing subject or text")
        return JSONResponse({"error": "Missing subject or text"}, status_code=400)

    try:
        config = MailConfig.from_env()
    except MailConfigError as exc:
        log.error("Missing SMTP configuration", extra={"error": str(exc)})
        return JSONResponse(
            {"error": "Missing SMTP/email configuration in environment variables."},
            status_code=500,
        )

    log.info("SMTP config check", extra=config.masked())
    try:
        await run_in_threadpool(send_text_email, config, subject, text)
    except Exception as exc:
        log.exception("Error sending email")
        return JSONResponse({"error": str(exc) or type(exc).__name__}, status_code=500)

    return {"ok": True}
