from __future__ import annotations

import asyncio
import smtplib
import ssl
from email.message import EmailMessage

import structlog

from contact_relay.core.config import settings

logger = structlog.get_logger(__name__)


def _send_email_sync(message: EmailMessage) -> None:
    if not settings.SMTP_HOST:
        raise RuntimeError("SMTP_HOST is not configured")

    password = settings.EMAIL_PASS.get_secret_value() if settings.EMAIL_PASS else None
    context = ssl.create_default_context()

    if settings.SMTP_USE_SSL:
        server = smtplib.SMTP_SSL(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            timeout=settings.SMTP_TIMEOUT,
            context=context,
        )
    else:
        server = smtplib.SMTP(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT
        )

    with server:
        if not settings.SMTP_USE_SSL:
            server.starttls(context=context)
        if settings.EMAIL_USER and password:
            server.login(settings.EMAIL_USER, password)
        server.send_message(message)


async def send_email(message: EmailMessage) -> None:
    """Send one message without blocking the event loop.

    Single attempt: errors propagate to the caller, nothing is retried.
    """
    await asyncio.to_thread(_send_email_sync, message)
    logger.debug("smtp_message_sent", to=message["To"])
