"""
SMTP helper used by the /notify-email route.
"""
from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

from core.config import MailConfig

SMTP_TIMEOUT = 30

log = logging.getLogger("notify-email")


def send_text_email(config: MailConfig, subject: str, body: str) -> None:
    """
    Send one plain-text message. Port 465 uses implicit TLS, anything else
    upgrades with STARTTLS when the server offers it. No retries.
    """
    msg = MIMEText(body)
    msg["Subject"] = subject
    msg["From"] = config.sender
    msg["To"] = config.recipient

    if config.implicit_tls:
        with smtplib.SMTP_SSL(config.host, config.port, timeout=SMTP_TIMEOUT) as server:
            server.login(config.user, config.password)
            server.sendmail(config.sender, [config.recipient], msg.as_string())
    else:
        with smtplib.SMTP(config.host, config.port, timeout=SMTP_TIMEOUT) as server:
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            server.login(config.user, config.password)
            server.sendmail(config.sender, [config.recipient], msg.as_string())
    log.info("Email sent", extra={"to": config.recipient, "from": config.sender})
