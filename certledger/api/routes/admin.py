"""Admin endpoints - user management, claims overview, role requests."""

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from certledger.accounts import approve_user, decide_role_request, remove_user
from certledger.api.auth import require_role
from certledger.security import public_user
from certledger.storage import get_store
from certledger.storage.records import CLAIMS, ROLE_REQUESTS, USERS
from certledger.utils import InvalidTransitionError, RecordNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

_admin = require_role("admin")


@router.get("/users")
def list_users(user: dict[str, Any] = Depends(_admin)) -> dict[str, Any]:
    return {"users": [public_user(u) for u in get_store().list_all(USERS, newest_first=True)]}


@router.post("/approve/{user_id}")
def approve(user_id: str, user: dict[str, Any] = Depends(_admin)) -> dict[str, Any]:
    try:
        approved = approve_user(get_store(), user_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("User %s approved by %s", user_id, user["id"])
    return {"message": "User approved", "user": public_user(approved)}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, user: dict[str, Any] = Depends(_admin)) -> dict[str, Any]:
    """Soft delete: the account is marked ``removed`` and can no longer sign in."""
    if user_id == user["id"]:
        raise HTTPException(status_code=400, detail="Admins cannot remove their own account")
    try:
        remove_user(get_store(), user_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "User removed"}


@router.get("/claims")
def list_claims(user: dict[str, Any] = Depends(_admin)) -> dict[str, Any]:
    return {"claims": get_store().list_all(CLAIMS, newest_first=True)}


@router.get("/role-requests")
def list_role_requests(
    status: Optional[Literal["pending", "approved", "rejected"]] = Query(default=None),
    user: dict[str, Any] = Depends(_admin),
) -> dict[str, Any]:
    store = get_store()
    if status is None:
        requests = store.list_all(ROLE_REQUESTS, newest_first=True)
    else:
        requests = store.find(ROLE_REQUESTS, status=status)
    return {"requests": requests}


def _decide(request_id: str, approve: bool, admin: dict[str, Any]) -> dict[str, Any]:
    try:
        return decide_role_request(get_store(), request_id, approve=approve, decided_by=admin["id"])
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.post("/role-requests/{request_id}/approve")
def approve_role_request(request_id: str, user: dict[str, Any] = Depends(_admin)) -> dict[str, Any]:
    return _decide(request_id, True, user)


@router.post("/role-requests/{request_id}/reject")
def reject_role_request(request_id: str, user: dict[str, Any] = Depends(_admin)) -> dict[str, Any]:
    return _decide(request_id, False, user)
