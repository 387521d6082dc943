from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CallerIdentity(BaseModel):
    id: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None
    avatar: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    user: Optional[CallerIdentity] = None
    token: Optional[str] = None


class Credentials(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: Optional[str] = None


class PasswordUpdate(BaseModel):
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None
