"""Tests for the body size cap, request ids and security headers."""
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from contact_relay.core.config import settings
from contact_relay.core.errors import PayloadTooLarge
from contact_relay.core.middleware import read_limited_body
from contact_relay.main import app

CHUNK_SIZE = 512
TOTAL_CHUNKS = 200


class ChunkedBody:
    """ASGI ``receive`` that streams a body without Content-Length."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, total_chunks: int = TOTAL_CHUNKS):
        self.chunk_size = chunk_size
        self.total_chunks = total_chunks
        self.chunks_read = 0

    async def __call__(self):
        if self.chunks_read < self.total_chunks:
            self.chunks_read += 1
            return {
                "type": "http.request",
                "body": b"x" * self.chunk_size,
                "more_body": self.chunks_read < self.total_chunks,
            }
        return {"type": "http.disconnect"}


def http_scope(path: str = "/send-email") -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.4"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"host", b"testserver"),
            (b"content-type", b"application/json"),
            (b"transfer-encoding", b"chunked"),
        ],
        "client": ("203.0.113.7", 50000),
        "server": ("testserver", 80),
    }


@pytest.fixture()
def small_body_cap(monkeypatch):
    monkeypatch.setattr(settings, "MAX_BODY_BYTES", 1024)


class TestReadLimitedBody:
    @pytest.mark.asyncio
    async def test_stops_reading_once_over_the_cap(self, small_body_cap):
        body = ChunkedBody()

        with pytest.raises(PayloadTooLarge):
            await read_limited_body(Request(http_scope(), body))

        # 3 x 512 bytes is the first total above 1024
        assert body.chunks_read == 3

    @pytest.mark.asyncio
    async def test_body_at_the_cap_is_returned(self, small_body_cap):
        body = ChunkedBody(total_chunks=2)

        result = await read_limited_body(Request(http_scope(), body))

        assert result == b"x" * 1024


@pytest.mark.asyncio
async def test_chunked_upload_is_cut_off_early(small_body_cap):
    body = ChunkedBody()
    messages = []
    read_at_response_start = []

    async def send(message):
        if message["type"] == "http.response.start":
            read_at_response_start.append(body.chunks_read)
        messages.append(message)

    await app(http_scope(), body, send)

    start = messages[0]
    assert start["status"] == 413
    assert read_at_response_start == [3]
    response_body = b"".join(m.get("body", b"") for m in messages[1:])
    assert "La solicitud es demasiado grande" in response_body.decode()


class TestSecurityHeaders:
    def test_oversized_request_still_gets_security_headers(
        self, client, valid_payload, monkeypatch
    ):
        monkeypatch.setattr(settings, "MAX_BODY_BYTES", 64)

        resp = client.post("/send-email", json=valid_payload)

        assert resp.status_code == 413
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Request-ID" in resp.headers

    def test_preflight_gets_security_headers(self, client):
        resp = client.request(
            "OPTIONS",
            "/send-email",
            headers={
                "Origin": settings.allowed_origin_list[0],
                "Access-Control-Request-Method": "POST",
            },
        )

        assert resp.status_code == 200
        assert resp.headers["X-Frame-Options"] == "DENY"

    def test_hsts_only_over_https(self):
        with TestClient(app, base_url="https://testserver") as secure_client:
            resp = secure_client.get("/health")

        assert resp.headers["Strict-Transport-Security"] == (
            "max-age=31536000; includeSubDomains"
        )
        assert "Strict-Transport-Security" not in TestClient(app).get("/health").headers
