from typing import List

import pytest
from email.message import EmailMessage
from fastapi.testclient import TestClient

from contact_relay.api.routes.contact import get_contact_service
from contact_relay.core.config import settings
from contact_relay.core.rate_limiter import reset_rate_limiter_state
from contact_relay.main import app
from contact_relay.services.contact_service import ContactService

# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _mail_settings(monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_USER", "relay@empresa.test", raising=False)
    monkeypatch.setattr(settings, "FROM", "Web <relay@empresa.test>", raising=False)
    monkeypatch.setattr(settings, "COMPANY_EMAIL", "ventas@empresa.test", raising=False)
    monkeypatch.setattr(settings, "MAIL_TIMEZONE", "America/La_Paz", raising=False)
    reset_rate_limiter_state()
    yield
    reset_rate_limiter_state()


# -----------------------------------------------------------------------------
# Mail transport double
# -----------------------------------------------------------------------------


class RecordingTransport:
    """Async transport that records messages instead of talking SMTP."""

    def __init__(self, error: Exception = None) -> None:
        self.error = error
        self.messages: List[EmailMessage] = []

    async def __call__(self, message: EmailMessage) -> None:
        self.messages.append(message)
        if self.error is not None:
            raise self.error


@pytest.fixture()
def make_transport():
    return RecordingTransport


@pytest.fixture()
def transport():
    return RecordingTransport()


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="function")
def client(transport):
    """
    TestClient with the mail relay wired to the recording transport.
    """
    app.dependency_overrides[get_contact_service] = lambda: ContactService(
        transport=transport
    )

    # Using 'with' context manager to trigger lifespan events (startup/shutdown)
    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def valid_payload():
    return {
        "nombreCompleto": "  María Fernández ",
        "correoElectronico": "Maria.Fernandez@Example.COM",
        "telefono": "+591 71234567",
        "asunto": " Cotización de servicio ",
        "mensaje": "Quisiera una cotización para su servicio de mantenimiento.",
    }
