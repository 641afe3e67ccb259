from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

import structlog

from contact_relay.core.config import settings
from contact_relay.core.email import send_email
from contact_relay.core.errors import SendFailure
from contact_relay.schemas.contact import ContactSubmission
from contact_relay.services.validation import normalize_single_line

logger = structlog.get_logger(__name__)

SUBJECT_PREFIX = "[CONTACTO WEB] "
SEPARATOR = "━" * 21

Transport = Callable[[EmailMessage], Awaitable[None]]


@dataclass(frozen=True)
class OutboundMessage:
    """The email relayed to the company mailbox for one submission."""

    from_addr: Optional[str]
    to_addr: Optional[str]
    subject: str
    body_text: str
    reply_to: str

    def to_email_message(self) -> EmailMessage:
        msg = EmailMessage()
        if self.from_addr:
            msg["From"] = self.from_addr
        if self.to_addr:
            msg["To"] = self.to_addr
        msg["Reply-To"] = self.reply_to
        msg["Subject"] = self.subject
        msg.set_content(self.body_text)
        return msg


def format_received_at(moment: datetime, tz_name: str) -> str:
    """Render a timestamp like the es-ES short locale format: 6/1/2026, 9:05:07."""
    local = moment.astimezone(ZoneInfo(tz_name))
    return (
        f"{local.day}/{local.month}/{local.year}, "
        f"{local.hour}:{local.minute:02d}:{local.second:02d}"
    )


def build_body(submission: ContactSubmission, received_at: str) -> str:
    return "\n".join(
        [
            "CONSULTA DE SERVICIO",
            "",
            "Datos del contacto:",
            SEPARATOR,
            f"👤 Nombre Completo: {submission.full_name}",
            f"📧 Correo Electrónico: {submission.email}",
            f"📱 Teléfono: {submission.phone}",
            "",
            f"Asunto: {submission.subject}",
            "",
            "Mensaje:",
            submission.message,
            "",
            SEPARATOR,
            f"📅 Recibido: {received_at}",
        ]
    )


class ContactService:
    """Builds the relay email for a submission and hands it to the transport."""

    def __init__(self, transport: Transport = send_email) -> None:
        self._transport = transport

    def build_outbound_message(
        self,
        submission: ContactSubmission,
        received_at: Optional[datetime] = None,
    ) -> OutboundMessage:
        moment = received_at or datetime.now(ZoneInfo("UTC"))
        return OutboundMessage(
            from_addr=settings.sender_address,
            to_addr=settings.COMPANY_EMAIL,
            subject=f"{SUBJECT_PREFIX}{normalize_single_line(submission.subject)}",
            body_text=build_body(
                submission, format_received_at(moment, settings.MAIL_TIMEZONE)
            ),
            reply_to=submission.email,
        )

    async def send(self, message: OutboundMessage) -> None:
        """Dispatch once; any transport error becomes ``SendFailure``."""
        if not message.to_addr:
            logger.error("contact_email_not_configured", missing="COMPANY_EMAIL")
            raise SendFailure()
        try:
            await self._transport(message.to_email_message())
        except Exception as exc:
            logger.error(
                "contact_email_send_failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise SendFailure() from exc
