from fastapi import APIRouter

from contact_relay.schemas.contact import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health_check() -> HealthResponse:
    """Liveness probe; no auth, no dependencies."""
    return HealthResponse(status="OK")
