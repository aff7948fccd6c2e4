"""Password hashing and bearer token issuance."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from certledger.config import get_config
from certledger.utils import AuthenticationError


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str | None, password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def issue_token(user_id: str, role: str, *, expires_hours: int | None = None) -> str:
    """Sign a token carrying ``sub`` (user id) and ``role``."""
    cfg = get_config()
    hours = cfg.jwt_expires_hours if expires_hours is None else expires_hours
    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "role": role, "iat": now, "exp": now + timedelta(hours=hours)}
    return jwt.encode(payload, cfg.jwt_secret, algorithm=cfg.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Return the token claims or raise :class:`AuthenticationError`."""
    cfg = get_config()
    try:
        claims = jwt.decode(token, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid token") from exc
    if "sub" not in claims or "role" not in claims:
        raise AuthenticationError("Token is missing required claims")
    return claims


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    """Strip secrets from a stored user record."""
    return {k: v for k, v in user.items() if k != "passwordHash"}
