import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from contact_relay.core.config import settings
from contact_relay.core.errors import PayloadTooLarge, error_response

logger = structlog.get_logger("contact_relay.requests")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add X-Request-ID header for tracing.

    If the client sends X-Request-ID, it is preserved.
    Otherwise, a new UUID is generated.

    The request ID is:
    - Available in request.state.request_id
    - Bound into the structlog context for every log line of the request
    - Returned in response headers for client correlation
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.info("request", method=request.method, path=request.url.path)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared Content-Length exceeds MAX_BODY_BYTES.

    Bodies sent without a Content-Length are checked again once read, see
    ``read_limited_body``.
    """

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("Content-Length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                declared = 0
            if declared > settings.MAX_BODY_BYTES:
                logger.warning(
                    "request_body_too_large",
                    path=request.url.path,
                    content_length=declared,
                )
                return error_response(PayloadTooLarge())

        return await call_next(request)


async def read_limited_body(request: Request) -> bytes:
    """Read the request body, giving up as soon as it passes MAX_BODY_BYTES."""
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > settings.MAX_BODY_BYTES:
            logger.warning(
                "request_body_too_large",
                path=request.url.path,
                received=received,
            )
            raise PayloadTooLarge()
        chunks.append(chunk)
    return b"".join(chunks)
