"""API authentication, role guards, rate limiting, and request tracing middleware.

Provides:
- Bearer token authentication (tokens issued by ``/api/auth/login``)
- Role guards: ``require_role("insurer")`` etc.; admins pass every guard
- Per-user in-memory sliding-window rate limiting
- ``X-Request-ID`` response header for tracing
- Request logging with hashed client IP
"""

import hashlib
import logging
import threading
import time
import uuid
from collections import defaultdict
from typing import Any, Callable

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from certledger.config import get_config
from certledger.security import decode_token, public_user
from certledger.storage import get_store
from certledger.storage.records import USERS
from certledger.utils import AuthenticationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

DEMO_USER: dict[str, Any] = {
    "id": "demo",
    "name": "Demo Admin",
    "email": "demo@localhost",
    "role": "admin",
    "approved": True,
    "status": "active",
}

# Roles that may act before an admin has approved the account.
_SELF_SERVICE_ROLES = {"claimant"}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> dict[str, Any]:
    """Resolve the Bearer token to the stored user.

    Raises 401 if the token is missing, invalid, or names a removed user.
    Skipped entirely when ``CERTLEDGER_DEMO_MODE=true``.
    """
    cfg = get_config()
    if cfg.demo_mode:
        return dict(DEMO_USER)

    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Missing token. Provide 'Authorization: Bearer <token>' header.",
        )
    try:
        claims = decode_token(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user = get_store().get(USERS, claims["sub"])
    if user is None or user.get("status") == "removed":
        raise HTTPException(status_code=401, detail="User no longer exists")
    return public_user(user)


def require_role(*roles: str, max_requests: int = 60, bucket: str = "default") -> Callable[..., dict[str, Any]]:
    """Build a dependency that admits *roles* (and admins) and rate limits per user.

    Guards sharing a *bucket* name share one request budget per user.
    """
    allowed = set(roles)

    def dependency(user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
        role = user.get("role")
        if role != "admin" and role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Requires role: {', '.join(sorted(allowed))}",
            )
        if role not in _SELF_SERVICE_ROLES and not user.get("approved", False):
            raise HTTPException(status_code=403, detail="Account pending admin approval")
        _check_rate_limit(f"{bucket}:{user['id']}", max_requests=max_requests)
        return user

    return dependency


# ---------------------------------------------------------------------------
# Rate limiting (in-memory sliding window)
# ---------------------------------------------------------------------------

_rate_buckets: dict[str, list[float]] = defaultdict(list)
_rate_lock = threading.Lock()


def _check_rate_limit(key: str, max_requests: int, window_seconds: int = 60):
    """Enforce a sliding-window rate limit per key.

    Raises 429 if the caller has exceeded ``max_requests`` within the
    rolling ``window_seconds`` window.
    """
    with _rate_lock:
        now = time.monotonic()
        _rate_buckets[key] = [ts for ts in _rate_buckets[key] if now - ts < window_seconds]
        bucket = _rate_buckets[key]

        if len(bucket) >= max_requests:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Max {max_requests} requests per {window_seconds}s.",
            )
        bucket.append(now)


def reset_rate_limits() -> None:
    with _rate_lock:
        _rate_buckets.clear()


# ---------------------------------------------------------------------------
# Request-ID and logging middleware
# ---------------------------------------------------------------------------

def _hash_ip(ip: str | None) -> str:
    """Return a one-way hash of the client IP for privacy-safe logging."""
    if not ip:
        return "unknown"
    return hashlib.sha256(ip.encode()).hexdigest()[:12]


async def request_logging_middleware(request: Request, call_next):
    """Add X-Request-ID header and log every request with timing."""
    request_id = str(uuid.uuid4())
    start = time.monotonic()

    response: Response = await call_next(request)

    elapsed_ms = int((time.monotonic() - start) * 1000)
    response.headers["X-Request-ID"] = request_id

    logger.info(
        "request_id=%s ip=%s method=%s path=%s status=%d duration_ms=%d",
        request_id,
        _hash_ip(request.client.host if request.client else None),
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response
