"""Request guards: origin allow-list, CSRF tokens, rate limiting, security headers."""

import asyncio
import hmac
import logging
import secrets
import time
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote, urlsplit

from fastapi import HTTPException, Request

from somaai.store import ExpiringStore

log = logging.getLogger(__name__)

_SENSITIVE_KEY_PARTS = ("auth", "token", "key", "cookie")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'self'; object-src 'none'",
}


def sanitize_for_log(obj: Any, limit: int = 100) -> Any:
    """Redact credential-like keys and escape/truncate strings before logging."""
    if isinstance(obj, str):
        return quote(obj, safe=" ,.:;!?'@/()")[:limit]
    if isinstance(obj, dict):
        sanitized = {}
        for key, value in obj.items():
            if any(part in str(key).lower() for part in _SENSITIVE_KEY_PARTS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, str):
                sanitized[key] = sanitize_for_log(value, limit=50)
            else:
                sanitized[key] = value
        return sanitized
    return obj


def client_id(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# ── Rate limiting ──


class RateLimiter:
    """Fixed-window request counter per client key."""

    def __init__(self, store: ExpiringStore, window_s: float, max_requests: int):
        self.store = store
        self.window_s = window_s
        self.max_requests = max_requests

    def hit(self, key: str, now: float) -> bool:
        """Record a request; return False if the key is over its limit."""
        entry = self.store.get(key, now)
        if entry is None:
            self.store.set(key, {"count": 1, "reset_at": now + self.window_s}, now + self.window_s)
            return True
        if entry["count"] >= self.max_requests:
            return False
        entry["count"] += 1
        self.store.set(key, entry, entry["reset_at"])
        return True


# ── CSRF tokens ──


class CsrfTokens:
    """Tokens are keyed by value and bound to the issuing client, so one
    client may hold several live tokens at once."""

    def __init__(self, store: ExpiringStore, ttl_s: float):
        self.store = store
        self.ttl_s = ttl_s

    def issue(self, client: str, now: float) -> str:
        token = secrets.token_urlsafe(32)
        self.store.set(token, client, now + self.ttl_s)
        return token

    def verify(self, client: str, token: str | None, now: float) -> bool:
        if not token:
            return False
        owner = self.store.get(token, now)
        if owner is None:
            return False
        return hmac.compare_digest(str(owner), client)


# ── FastAPI dependencies ──


def origin_of(header: str | None) -> str | None:
    """Reduce an Origin or Referer header to scheme://host[:port]."""
    if not header:
        return None
    parts = urlsplit(header.strip())
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


async def require_allowed_origin(request: Request) -> None:
    origin = request.headers.get("origin") or request.headers.get("referer")
    allowed = {origin_of(a) for a in request.app.state.settings.server.allowed_origins}
    if origin_of(origin) not in allowed - {None}:
        log.warning("Rejected request from origin %s", sanitize_for_log(origin or "<none>"))
        raise HTTPException(status_code=401, detail="Unauthorized")


async def require_csrf(request: Request) -> None:
    csrf: CsrfTokens = request.app.state.csrf
    token = request.headers.get("x-csrf-token")
    if not token:
        raise HTTPException(status_code=403, detail="CSRF token required")
    if not csrf.verify(client_id(request), token, time.monotonic()):
        raise HTTPException(status_code=403, detail="Invalid CSRF token")


async def rate_limit(request: Request) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    if not limiter.hit(client_id(request), time.monotonic()):
        raise HTTPException(status_code=429, detail="Too many requests")


async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


async def sweep_forever(stores: Iterable[ExpiringStore], interval_s: float) -> None:
    """Periodically drop expired entries from every store."""
    stores = list(stores)
    while True:
        await asyncio.sleep(interval_s)
        now = time.monotonic()
        removed = sum(store.sweep(now) for store in stores)
        if removed:
            log.info("Swept %d expired rate-limit/CSRF entries", removed)
