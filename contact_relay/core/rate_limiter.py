"""
Per-IP fixed-window rate limiting for the contact endpoint.

Features:
- Fixed window (default 15 minutes, 3 admitted requests per IP)
- Thread-safe in-memory counters (read-check-increment under one lock)
- Redis-backed counters (INCR + EXPIRE NX) when REDIS_URL is configured
- Trusted-proxy validation for X-Forwarded-For
- Standard RateLimit-* response headers

Usage:
    from contact_relay.core.rate_limiter import enforce_contact_rate_limit

    @router.post("/endpoint", dependencies=[Depends(enforce_contact_rate_limit)])
    def endpoint():
        ...
"""

import ipaddress
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List

import redis
import structlog
from fastapi import Depends, Request, Response

from contact_relay.core.config import settings
from contact_relay.core.errors import RateLimitExceeded

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single admission check."""

    admitted: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the current window closes
    window_seconds: int

    def headers(self) -> Dict[str, str]:
        return {
            "RateLimit-Policy": f"{self.limit};w={self.window_seconds}",
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


@dataclass
class _WindowEntry:
    count: int
    window_start: float


# =============================================================================
# BACKEND ABSTRACTION
# =============================================================================


class _RateLimitBackend(ABC):
    """Abstract rate-limit storage backend."""

    @abstractmethod
    def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitDecision:
        """Admit and count the request if under ``limit``, else reject it."""

    @abstractmethod
    def reset(self) -> None:
        """Clear all state (for tests)."""


class _InMemoryBackend(_RateLimitBackend):
    """Thread-safe in-memory backend (single-instance only)."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._lock = Lock()
        self._clock = clock
        self._entries: Dict[str, _WindowEntry] = {}

    def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or now - entry.window_start > window_seconds:
                entry = _WindowEntry(count=0, window_start=now)
                self._entries[key] = entry

            reset_after = max(
                0, math.ceil(entry.window_start + window_seconds - now)
            )
            if entry.count >= limit:
                return RateLimitDecision(
                    admitted=False,
                    limit=limit,
                    remaining=0,
                    reset_after=reset_after,
                    window_seconds=window_seconds,
                )

            entry.count += 1
            return RateLimitDecision(
                admitted=True,
                limit=limit,
                remaining=limit - entry.count,
                reset_after=reset_after,
                window_seconds=window_seconds,
            )

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()


class _RedisBackend(_RateLimitBackend):
    """Redis-backed rate-limit storage for multi-instance deployments."""

    def __init__(self, redis_client) -> None:  # type: ignore[type-arg]
        self._redis = redis_client

    def check_and_increment(
        self, key: str, limit: int, window_seconds: int
    ) -> RateLimitDecision:
        pipe = self._redis.pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, window_seconds, nx=True)  # set TTL only on first creation
        pipe.ttl(key)
        count, _, ttl = pipe.execute()
        count = int(count)
        reset_after = int(ttl) if ttl and int(ttl) > 0 else window_seconds

        return RateLimitDecision(
            admitted=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_after=reset_after,
            window_seconds=window_seconds,
        )

    def reset(self) -> None:
        cursor = 0
        while True:
            cursor, keys = self._redis.scan(cursor, match="rl:*", count=500)
            if keys:
                self._redis.delete(*keys)
            if cursor == 0:
                break


# =============================================================================
# LIMITER
# =============================================================================


class FixedWindowRateLimiter:
    """Admits at most ``limit`` requests per identifier per window."""

    def __init__(
        self,
        backend: _RateLimitBackend,
        limit: int,
        window_seconds: int,
        key_prefix: str = "rl:contact:",
    ) -> None:
        self.backend = backend
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix

    def check_and_increment(self, identifier: str) -> RateLimitDecision:
        return self.backend.check_and_increment(
            f"{self.key_prefix}{identifier}", self.limit, self.window_seconds
        )

    def reset(self) -> None:
        self.backend.reset()


def _init_backend() -> _RateLimitBackend:
    """Use Redis when configured and reachable, in-memory otherwise."""
    if not settings.REDIS_URL:
        return _InMemoryBackend()

    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL, decode_responses=True, socket_connect_timeout=2
        )
        client.ping()
    except redis.RedisError as exc:
        logger.warning("rate_limiter_redis_unavailable", error=str(exc))
        return _InMemoryBackend()

    logger.info("rate_limiter_backend", backend="redis")
    return _RedisBackend(client)


_limiter = FixedWindowRateLimiter(
    _init_backend(),
    limit=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)


def get_rate_limiter() -> FixedWindowRateLimiter:
    return _limiter


# =============================================================================
# IP EXTRACTION
# =============================================================================


def _parse_networks(
    entries: List[str],
) -> List[ipaddress.IPv4Network | ipaddress.IPv6Network]:
    nets = []
    for entry in entries:
        try:
            nets.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning("invalid_trusted_proxy_ignored", entry=entry)
    return nets


# Parsed once at import
_trusted_networks = _parse_networks(settings.TRUSTED_PROXIES)


def _is_trusted_proxy(ip_str: str) -> bool:
    """Check if an IP belongs to the configured trusted proxy ranges."""
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(addr in net for net in _trusted_networks)


def get_client_ip(request: Request) -> str:
    """Extract client IP, trusting X-Forwarded-For only from trusted proxies."""
    direct_ip = request.client.host if request.client else "unknown"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and _is_trusted_proxy(direct_ip):
        parts = [p.strip() for p in forwarded.split(",") if p.strip()]
        # Rightmost untrusted IP is the real client
        for ip in reversed(parts):
            if not _is_trusted_proxy(ip):
                return ip
        if parts:
            return parts[0]

    return direct_ip


# =============================================================================
# DEPENDENCY
# =============================================================================


def enforce_contact_rate_limit(
    request: Request,
    response: Response,
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> RateLimitDecision:
    """Admit the request or raise ``RateLimitExceeded`` (429)."""
    client_ip = get_client_ip(request)
    decision = limiter.check_and_increment(client_ip)

    if not decision.admitted:
        logger.warning(
            "contact_rate_limited",
            client_ip=client_ip,
            limit=decision.limit,
            retry_after=decision.reset_after,
        )
        raise RateLimitExceeded(decision)

    response.headers.update(decision.headers())
    request.state.client_ip = client_ip
    request.state.rate_limit = decision
    return decision


def reset_rate_limiter_state() -> None:
    """Clear rate limiter state. Intended for tests."""
    _limiter.reset()
