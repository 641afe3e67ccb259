"""
Error taxonomy and global exception handlers.

Every failure the API reports to a caller is a ``ContactRelayError``
subclass carrying its HTTP status and a public (Spanish) message. The
handlers registered here render them as ``{"success": false, "error": ...}``
and make sure nothing unexpected leaks a traceback to the client.

Usage:
    # In main.py
    from contact_relay.core.errors import register_exception_handlers
    register_exception_handlers(app)
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from contact_relay.core.config import settings

if TYPE_CHECKING:
    from contact_relay.core.rate_limiter import RateLimitDecision

logger = structlog.get_logger(__name__)

VALIDATION_ERROR_MESSAGE = "Por favor revisa los datos ingresados"
SPAM_ERROR_MESSAGE = "Mensaje no pudo ser enviado. Contacta directamente si es urgente."
RATE_LIMIT_ERROR_MESSAGE = "Demasiados mensajes enviados. Intenta de nuevo mas tarde."
SEND_ERROR_MESSAGE = "Error enviando el mensaje. Intenta de nuevo o contacta directamente."
NOT_FOUND_ERROR_MESSAGE = "Página no encontrada"
ORIGIN_ERROR_MESSAGE = "Origen no permitido"
PAYLOAD_TOO_LARGE_MESSAGE = "La solicitud es demasiado grande"
INTERNAL_ERROR_MESSAGE = "Error interno del servidor. Intenta de nuevo mas tarde."


class ContactRelayError(Exception):
    """Base for errors that map to a JSON error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = INTERNAL_ERROR_MESSAGE

    def __init__(self, public_message: Optional[str] = None) -> None:
        if public_message is not None:
            self.public_message = public_message
        super().__init__(self.public_message)

    def to_content(self) -> dict:
        return {"success": False, "error": self.public_message}

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class SubmissionInvalid(ContactRelayError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = VALIDATION_ERROR_MESSAGE

    def __init__(self, details: List[str]) -> None:
        super().__init__()
        self.details = list(details)

    def to_content(self) -> dict:
        content = super().to_content()
        content["details"] = self.details
        return content


class SpamRejected(ContactRelayError):
    """Deliberately vague towards the caller; the matched rule is only logged."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = SPAM_ERROR_MESSAGE

    def __init__(self, rule: Optional[str] = None) -> None:
        super().__init__()
        self.rule = rule


class RateLimitExceeded(ContactRelayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    public_message = RATE_LIMIT_ERROR_MESSAGE

    def __init__(self, decision: "RateLimitDecision") -> None:
        super().__init__()
        self.decision = decision

    def headers(self) -> Dict[str, str]:
        headers = self.decision.headers()
        headers["Retry-After"] = str(self.decision.reset_after)
        return headers


class SendFailure(ContactRelayError):
    """Mail transport failed; the underlying cause stays server-side."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = SEND_ERROR_MESSAGE


class RouteNotFound(ContactRelayError):
    status_code = status.HTTP_404_NOT_FOUND
    public_message = NOT_FOUND_ERROR_MESSAGE


class OriginNotAllowed(ContactRelayError):
    status_code = status.HTTP_403_FORBIDDEN
    public_message = ORIGIN_ERROR_MESSAGE


class PayloadTooLarge(ContactRelayError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    public_message = PAYLOAD_TOO_LARGE_MESSAGE


def error_response(
    exc: ContactRelayError, request: Optional[Request] = None
) -> JSONResponse:
    headers: Dict[str, str] = {}
    # Admitted requests keep reporting their quota even when a later stage fails.
    decision = getattr(request.state, "rate_limit", None) if request else None
    if decision is not None:
        headers.update(decision.headers())
    headers.update(exc.headers() or {})
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_content(),
        headers=headers or None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(ContactRelayError)
    async def contact_relay_error_handler(request: Request, exc: ContactRelayError):
        return error_response(exc, request)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown path or known path with another method: both are a 404 here.
        if exc.status_code in (
            status.HTTP_404_NOT_FOUND,
            status.HTTP_405_METHOD_NOT_ALLOWED,
        ):
            return error_response(RouteNotFound())
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [str(err.get("msg", "")) for err in exc.errors()]
        return error_response(SubmissionInvalid(details))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unhandled exceptions.

        - Logs the full traceback server-side
        - Returns a generic error message to prevent info leakage
        - In debug mode, includes the exception type
        """
        logger.error(
            "unhandled_exception",
            method=request.method,
            path=request.url.path,
            exc_info=exc,
        )

        content = {"success": False, "error": INTERNAL_ERROR_MESSAGE}
        if settings.DEBUG:
            content["error_type"] = type(exc).__name__
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
        )
