"""Auth router — password login, logout, current user profile."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.auth.dependencies import get_current_account
from hr_portal.auth.models import UserAccount
from hr_portal.auth.schemas import LoginRequest, TokenResponse, UserInfo
from hr_portal.auth.service import (
    authenticate,
    build_user_info,
    create_session,
    get_profile,
    revoke_session,
)
from hr_portal.common.audit import create_audit_entry
from hr_portal.common.rate_limit import LOGIN_RATE_LIMIT, limiter
from hr_portal.config import Settings
from hr_portal.database import get_db
from hr_portal.dependencies import get_settings

router = APIRouter(prefix="", tags=["auth"])


# ── POST /login — Email + password sign-in ─────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    account, profile = await authenticate(db, body.email, body.password, body.portal)

    ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    access_token, expires_in = await create_session(db, settings, account, ip, user_agent)

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=account.id,
        actor_id=account.id,
        new_values={"ip": ip, "portal": body.portal},
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        user=build_user_info(account, profile),
    )


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    account: UserAccount = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, request.state.token_hash)

    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=account.id,
        actor_id=account.id,
    )

    return {"message": "Logged out successfully"}


# ── GET /me — Current user profile ─────────────────────────────────

@router.get("/me", response_model=UserInfo)
async def me(
    account: UserAccount = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_profile(db, account)
    return build_user_info(account, profile)
