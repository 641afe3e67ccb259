"""
Contact form relay endpoint.

Pipeline: origin gate -> rate limit -> field validation -> spam heuristic
-> mail relay. Each stage can end the request with its own error response.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request, status

from contact_relay.core.errors import SendFailure, SpamRejected, SubmissionInvalid
from contact_relay.core.middleware import read_limited_body
from contact_relay.core.origin import require_allowed_origin
from contact_relay.core.rate_limiter import RateLimitDecision, enforce_contact_rate_limit
from contact_relay.schemas.contact import ContactSuccessResponse, ErrorResponse
from contact_relay.services.contact_service import ContactService
from contact_relay.services.spam_filter import SpamFilter, default_spam_filter
from contact_relay.services.validation import validate_submission

logger = structlog.get_logger(__name__)

router = APIRouter()

SUCCESS_MESSAGE = "¡Mensaje enviado correctamente! Te contactaremos pronto."
BODY_NOT_OBJECT_MESSAGE = "El cuerpo de la solicitud debe ser un objeto JSON"


def get_contact_service() -> ContactService:
    """Return the mail relay used by the contact endpoint."""
    return ContactService()


def get_spam_filter() -> SpamFilter:
    return default_spam_filter


async def _read_json_object(request: Request) -> Dict[str, Any]:
    body = await read_limited_body(request)
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise SubmissionInvalid([BODY_NOT_OBJECT_MESSAGE])
    if not isinstance(payload, dict):
        raise SubmissionInvalid([BODY_NOT_OBJECT_MESSAGE])
    return payload


@router.post(
    "/send-email",
    response_model=ContactSuccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Enviar formulario de contacto",
    description="Valida el formulario, filtra spam y reenvía el mensaje al correo de la empresa.",
    dependencies=[Depends(require_allowed_origin)],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def send_contact_email(
    request: Request,
    rate_limit: RateLimitDecision = Depends(enforce_contact_rate_limit),
    service: ContactService = Depends(get_contact_service),
    spam_filter: SpamFilter = Depends(get_spam_filter),
) -> ContactSuccessResponse:
    client_ip = getattr(request.state, "client_ip", None)

    raw = await _read_json_object(request)
    result = validate_submission(raw)
    if not result.is_valid:
        logger.info("contact_validation_failed", errors=len(result.errors))
        raise SubmissionInvalid(result.errors)

    submission = result.submission
    rule = spam_filter.first_match(
        f"{submission.subject} {submission.message} {submission.full_name}"
    )
    if rule is not None:
        logger.warning("contact_spam_rejected", client_ip=client_ip, rule=rule)
        raise SpamRejected(rule)

    try:
        outbound = service.build_outbound_message(submission)
        await service.send(outbound)
    except SendFailure:
        raise
    except Exception as exc:
        logger.error(
            "contact_relay_unexpected_error",
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        raise SendFailure() from exc

    logger.info(
        "contact_email_sent",
        email=submission.email,
        sent_at=datetime.now(timezone.utc).isoformat(),
        remaining=rate_limit.remaining,
    )
    return ContactSuccessResponse(message=SUCCESS_MESSAGE)
