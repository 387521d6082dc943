from __future__ import annotations

import logging
from typing import Callable, TypeVar

from fastapi import APIRouter, Depends

from formhub.core.deps import get_access_token, get_current_caller, get_identity_gateway, get_optional_caller
from formhub.core.errors import IdentityGatewayError, Unauthenticated, ValidationFailure
from formhub.schemas.auth import CallerIdentity, Credentials, PasswordResetRequest, PasswordUpdate, ProfileUpdate
from formhub.services.identity_gateway import IdentityGateway

logger = logging.getLogger(__name__)
router = APIRouter()

T = TypeVar("T")


def _call_gateway(call: Callable[[], T], *, status_code: int = 400) -> T:
    try:
        return call()
    except IdentityGatewayError as exc:
        if exc.status_code >= 500:
            raise
        raise IdentityGatewayError(exc.message, status_code=status_code) from exc


def _require_credentials(payload: Credentials) -> tuple[str, str]:
    email = str(payload.email or "").strip()
    password = str(payload.password or "")
    if not email or not password:
        raise ValidationFailure("Email and password are required")
    return email, password


def _user_payload(user: CallerIdentity | None) -> dict | None:
    return user.model_dump() if user else None


@router.post("/register", status_code=201)
def register(payload: Credentials, gateway: IdentityGateway = Depends(get_identity_gateway)):
    email, password = _require_credentials(payload)
    session = _call_gateway(lambda: gateway.sign_up(email, password))
    if session.user is None:
        raise IdentityGatewayError("An email has been sent to confirm your registration")
    logger.info("User registered user_id=%s", session.user.id)
    return {
        "success": True,
        "user": _user_payload(session.user),
        "token": session.token,
        "message": "Registration successful",
    }


@router.post("/login")
def login(payload: Credentials, gateway: IdentityGateway = Depends(get_identity_gateway)):
    email, password = _require_credentials(payload)
    session = _call_gateway(lambda: gateway.sign_in(email, password), status_code=401)
    return {
        "success": True,
        "user": _user_payload(session.user),
        "token": session.token,
        "message": "Login successful",
    }


@router.post("/logout")
def logout(
    token: str | None = Depends(get_access_token),
    gateway: IdentityGateway = Depends(get_identity_gateway),
):
    _call_gateway(lambda: gateway.sign_out(token))
    return {"success": True, "message": "Logout successful"}


@router.get("/me")
def me(caller: CallerIdentity | None = Depends(get_optional_caller)):
    if caller is None:
        raise Unauthenticated("No user is currently signed in")
    return {"success": True, "user": _user_payload(caller)}


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    token: str | None = Depends(get_access_token),
    caller: CallerIdentity = Depends(get_current_caller),
    gateway: IdentityGateway = Depends(get_identity_gateway),
):
    updates = payload.model_dump(exclude_none=True)
    user = _call_gateway(lambda: gateway.update_user_metadata(token or "", updates))
    logger.info("Profile updated user_id=%s", caller.id)
    return {"success": True, "user": _user_payload(user), "message": "Profile updated successfully"}


@router.post("/reset-password/request")
def request_password_reset(
    payload: PasswordResetRequest,
    gateway: IdentityGateway = Depends(get_identity_gateway),
):
    email = str(payload.email or "").strip()
    if not email:
        raise ValidationFailure("Email is required")
    _call_gateway(lambda: gateway.reset_password_email(email))
    return {"success": True, "message": "Password reset email sent"}


@router.post("/reset-password")
def reset_password(
    payload: PasswordUpdate,
    token: str | None = Depends(get_access_token),
    caller: CallerIdentity = Depends(get_current_caller),
    gateway: IdentityGateway = Depends(get_identity_gateway),
):
    if not payload.password:
        raise ValidationFailure("New password is required")
    _call_gateway(lambda: gateway.update_password(token or "", payload.password))
    logger.info("Password updated user_id=%s", caller.id)
    return {"success": True, "message": "Password updated successfully"}
