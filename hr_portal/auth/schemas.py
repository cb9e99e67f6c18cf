"""Auth Pydantic schemas for request / response validation."""


import uuid
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


# ── Requests ────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    portal: Literal["admin", "employee"] = "employee"


# ── Embedded / Shared ──────────────────────────────────────────────

class UserInfo(BaseModel):
    account_id: uuid.UUID
    profile_id: Optional[uuid.UUID] = None
    employee_id: Optional[str] = None
    name: str
    email: str
    role: str
    title: Optional[str] = None


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo
