"""Auth dependencies — JWT validation, RBAC enforcement."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.admins.models import Admin
from hr_portal.auth.models import UserAccount, UserSession
from hr_portal.auth.service import INACTIVE_EMPLOYEE, hash_token
from hr_portal.common.constants import EmployeeStatus, UserRole
from hr_portal.common.exceptions import ForbiddenException, UnauthorizedException
from hr_portal.config import Settings
from hr_portal.database import get_db
from hr_portal.dependencies import get_settings
from hr_portal.employees.models import Employee


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedException(detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_account(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserAccount:
    """Validate JWT, verify session, return the authenticated account."""
    token = _extract_bearer(request)

    # Decode JWT
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise UnauthorizedException(detail="Token has expired.")
    except JWTError:
        raise UnauthorizedException(detail="Invalid token.")

    if payload.get("type") != "access":
        raise UnauthorizedException(detail="Invalid token type.")

    # Verify session exists, not revoked, not expired
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    if result.scalars().first() is None:
        raise UnauthorizedException(detail="Session invalid or expired.")

    try:
        account_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise UnauthorizedException(detail="Invalid token.")

    account = await db.get(UserAccount, account_id)
    if account is None or not account.is_active:
        raise UnauthorizedException(detail="User account is inactive or not found.")

    # The role on the account is authoritative; the claim only mirrors it
    request.state.user_role = account.role
    request.state.account_id = account.id
    request.state.token_hash = hash_token(token)

    return account


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership."""

    async def _check(
        account: UserAccount = Depends(get_current_account),
    ) -> UserAccount:
        if account.role not in allowed_roles:
            raise ForbiddenException(
                detail=f"Role '{account.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return account

    return _check


require_admin = require_role(UserRole.admin)


# ── Profile dependencies ────────────────────────────────────────────

async def get_current_employee(
    account: UserAccount = Depends(require_role(UserRole.employee)),
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Return the Employee profile of the signed-in employee account."""
    result = await db.execute(select(Employee).where(Employee.account_id == account.id))
    employee = result.scalars().first()
    if employee is None:
        raise ForbiddenException(detail="No employee profile is linked to this account.")
    if employee.status != EmployeeStatus.active:
        raise ForbiddenException(detail=INACTIVE_EMPLOYEE)
    return employee


async def get_current_admin(
    account: UserAccount = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Admin:
    """Return the Admin profile of the signed-in admin account."""
    result = await db.execute(select(Admin).where(Admin.account_id == account.id))
    admin = result.scalars().first()
    if admin is None:
        raise ForbiddenException(detail="No admin profile is linked to this account.")
    return admin
