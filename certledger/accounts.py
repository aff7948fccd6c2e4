"""User accounts and the role-request lifecycle.

Role requests move ``pending -> approved`` or ``pending -> rejected`` and
never leave a decided state. Approving one changes the user's role and
marks the account approved.
"""

from __future__ import annotations

import logging
from typing import Any

from certledger.security import hash_password
from certledger.storage.records import ROLE_REQUESTS, ROLES, USERS, utcnow_iso
from certledger.utils import DuplicateRecordError, InvalidTransitionError, RecordNotFoundError

logger = logging.getLogger(__name__)


def create_user(
    store: Any,
    *,
    name: str,
    email: str,
    password: str,
    role: str,
    profile: dict[str, Any] | None = None,
    wallet_address: str | None = None,
    approved: bool = False,
) -> dict[str, Any]:
    """Insert a user with a hashed password."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    email = email.strip().lower()
    record = {
        "name": name,
        "email": email,
        "passwordHash": hash_password(password),
        "role": role,
        "walletAddress": wallet_address,
        "approved": approved,
        "status": "active",
        "profile": {k: v for k, v in (profile or {}).items() if v is not None},
    }
    try:
        user = store.insert_unique(USERS, record, unique=("email",))
    except DuplicateRecordError:
        raise DuplicateRecordError(f"Email already registered: {email}") from None
    logger.info("Created user id=%s role=%s", user["id"], role)
    return user


def approve_user(store: Any, user_id: str) -> dict[str, Any]:
    user = store.update(USERS, user_id, {"approved": True})
    if user is None:
        raise RecordNotFoundError(f"User not found: {user_id}")
    return user


def remove_user(store: Any, user_id: str) -> dict[str, Any]:
    """Soft-delete: the record stays, login and tokens stop working."""
    user = store.update(USERS, user_id, {"status": "removed"})
    if user is None:
        raise RecordNotFoundError(f"User not found: {user_id}")
    logger.info("Removed user id=%s", user_id)
    return user


def request_role(store: Any, user: dict[str, Any], requested_role: str, reason: str | None = None) -> dict[str, Any]:
    if requested_role not in ROLES or requested_role == "admin":
        raise ValueError(f"Role cannot be requested: {requested_role}")
    if requested_role == user.get("role"):
        raise InvalidTransitionError(f"Already has role '{requested_role}'")
    if store.find(ROLE_REQUESTS, userId=user["id"], status="pending"):
        raise DuplicateRecordError("A role request is already pending")
    request = store.insert(ROLE_REQUESTS, {
        "userId": user["id"],
        "requestedRole": requested_role,
        "reason": reason,
        "status": "pending",
    })
    logger.info("Role request %s: user=%s role=%s", request["id"], user["id"], requested_role)
    return request


def decide_role_request(store: Any, request_id: str, *, approve: bool, decided_by: str) -> dict[str, Any]:
    """Approve or reject a pending role request.

    The request is moved out of ``pending`` with a conditional update, so of
    two concurrent decisions only the first takes effect.
    """
    request = store.get(ROLE_REQUESTS, request_id)
    if request is None:
        raise RecordNotFoundError(f"Role request not found: {request_id}")
    if approve and store.get(USERS, request["userId"]) is None:
        raise RecordNotFoundError(f"User not found: {request['userId']}")

    decided = store.update_where(
        ROLE_REQUESTS,
        {"id": request_id, "status": "pending"},
        {
            "status": "approved" if approve else "rejected",
            "decidedBy": decided_by,
            "decidedAt": utcnow_iso(),
        },
    )
    if decided is None:
        raise InvalidTransitionError(f"Role request {request_id} is no longer pending")

    if approve:
        store.update(USERS, request["userId"], {"role": request["requestedRole"], "approved": True})
    logger.info("Role request %s %s by %s", request_id, decided["status"], decided_by)
    return decided
