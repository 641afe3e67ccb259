from fastapi import Request

from contact_relay.core.config import settings
from contact_relay.core.errors import OriginNotAllowed


def is_origin_allowed(origin: str) -> bool:
    return origin.rstrip("/") in settings.allowed_origin_list


async def require_allowed_origin(request: Request) -> None:
    """Refuse cross-origin callers outside ALLOWED_ORIGINS.

    Requests without an Origin header (server-to-server, curl) are let
    through; browsers always send one on cross-origin POSTs.
    """
    origin = request.headers.get("Origin")
    if origin and not is_origin_allowed(origin):
        raise OriginNotAllowed()
