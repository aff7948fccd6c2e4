"""Registration, login, and role requests."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from certledger.accounts import create_user, request_role
from certledger.api.auth import get_current_user
from certledger.api.models import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    RoleRequestCreate,
    UserSummary,
)
from certledger.security import issue_token, verify_password
from certledger.storage import get_store
from certledger.storage.records import USERS
from certledger.utils import DuplicateRecordError, InvalidTransitionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _summary(user: dict[str, Any]) -> UserSummary:
    return UserSummary(id=user["id"], name=user["name"], email=user["email"], role=user["role"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(payload: RegisterRequest):
    """Create an account. Claimants are active immediately; other roles await admin approval."""
    try:
        user = create_user(
            get_store(),
            name=payload.full_name or "User",
            email=payload.email,
            password=payload.password,
            role=payload.role,
            profile=payload.profile(),
            wallet_address=payload.wallet_address,
            approved=payload.role == "claimant",
        )
    except DuplicateRecordError:
        raise HTTPException(status_code=409, detail="Email already registered")
    return RegisterResponse(user=_summary(user))


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest):
    user = get_store().find_one(USERS, email=payload.email.lower())
    if user is None or not verify_password(user.get("passwordHash"), payload.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if user.get("status") == "removed":
        raise HTTPException(status_code=403, detail="Account has been removed")
    token = issue_token(user["id"], user["role"])
    logger.info("Login user id=%s role=%s", user["id"], user["role"])
    return LoginResponse(token=token, user=_summary(user))


@router.get("/me")
def me(user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return user


@router.post("/role-requests", status_code=201)
def create_role_request(
    payload: RoleRequestCreate,
    user: dict[str, Any] = Depends(get_current_user),
) -> dict[str, Any]:
    """Ask an admin to grant a different role."""
    try:
        return request_role(get_store(), user, payload.requested_role, payload.reason)
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except DuplicateRecordError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
