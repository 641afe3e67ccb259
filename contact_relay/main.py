from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contact_relay.api.routes import contact, health
from contact_relay.core.config import settings
from contact_relay.core.errors import register_exception_handlers
from contact_relay.core.logging import setup_logging
from contact_relay.core.middleware import BodySizeLimitMiddleware, RequestIdMiddleware
from contact_relay.core.security_headers import SecurityHeadersMiddleware

# Setup logging
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(
        "contact_relay_starting",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        port=settings.PORT,
        company_email=settings.COMPANY_EMAIL,
        allowed_origins=settings.allowed_origin_list,
    )
    if not settings.COMPANY_EMAIL or not settings.EMAIL_USER:
        logger.warning(
            "mail_transport_incomplete",
            reason="COMPANY_EMAIL and EMAIL_USER must be set for messages to be delivered",
        )

    yield

    logger.info("contact_relay_stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Relay de formulario de contacto: valida, filtra spam y reenvía por email.",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(RequestIdMiddleware)

# Outside the app middleware so error responses carry CORS headers too.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origin_list,
    allow_credentials=False,
    allow_methods=["POST"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=[
        "X-Request-ID",
        "RateLimit-Policy",
        "RateLimit-Limit",
        "RateLimit-Remaining",
        "RateLimit-Reset",
        "Retry-After",
    ],
)

# Outermost: preflights and 413s get the headers as well.
app.add_middleware(SecurityHeadersMiddleware)

register_exception_handlers(app)

app.include_router(contact.router, tags=["contact"])
app.include_router(health.router)
