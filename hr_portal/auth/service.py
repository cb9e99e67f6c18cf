"""Auth service — password login, JWT management, session lifecycle."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.admins.models import Admin
from hr_portal.auth.models import UserAccount, UserSession
from hr_portal.auth.schemas import UserInfo
from hr_portal.common.constants import EmployeeStatus, UserRole
from hr_portal.common.exceptions import (
    ConflictError,
    ForbiddenException,
    UnauthorizedException,
)
from hr_portal.config import Settings
from hr_portal.employees.models import Employee

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

INVALID_CREDENTIALS = "Invalid email or password."
NOT_ADMIN = "Access denied. This account does not have admin privileges."
NOT_EMPLOYEE = "Access denied. This account is not registered as an employee."
INACTIVE_EMPLOYEE = "Your account is currently inactive. Please contact HR."


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


# ── Accounts ────────────────────────────────────────────────────────

async def get_account_by_email(db: AsyncSession, email: str) -> Optional[UserAccount]:
    result = await db.execute(
        select(UserAccount).where(UserAccount.email == email.lower()),
    )
    return result.scalars().first()


async def create_account(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    role: UserRole,
    duplicate_detail: Optional[str] = None,
) -> UserAccount:
    """Create a login account; a taken email raises ``ConflictError``."""
    if await get_account_by_email(db, email) is not None:
        raise ConflictError("email", email, detail=duplicate_detail)

    account = UserAccount(
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
    )
    db.add(account)
    await db.flush()
    return account


async def delete_account(db: AsyncSession, account_id: uuid.UUID) -> None:
    """Delete an account together with its sessions."""
    account = await db.get(UserAccount, account_id)
    if account is None:
        return
    await db.execute(
        delete(UserSession).where(UserSession.account_id == account_id),
    )
    await db.delete(account)
    await db.flush()


# ── Login ───────────────────────────────────────────────────────────

async def authenticate(
    db: AsyncSession,
    email: str,
    password: str,
    portal: str,
) -> tuple[UserAccount, Union[Admin, Employee]]:
    """Verify credentials and the portal the user is signing in to.

    Returns the account and its admin or employee profile.
    """
    account = await get_account_by_email(db, email)
    if account is None or not verify_password(password, account.password_hash):
        logger.warning("Failed login", extra={"email": email, "portal": portal})
        raise UnauthorizedException(detail=INVALID_CREDENTIALS)

    if not account.is_active:
        raise ForbiddenException(detail=INACTIVE_EMPLOYEE)

    profile = await get_profile(db, account)

    if portal == UserRole.admin.value:
        if account.role != UserRole.admin or profile is None:
            raise ForbiddenException(detail=NOT_ADMIN)
    else:
        if account.role != UserRole.employee or profile is None:
            raise ForbiddenException(detail=NOT_EMPLOYEE)
        if profile.status != EmployeeStatus.active:
            raise ForbiddenException(detail=INACTIVE_EMPLOYEE)

    account.last_login_at = datetime.now(timezone.utc)
    await db.flush()
    return account, profile


async def get_profile(
    db: AsyncSession,
    account: UserAccount,
) -> Optional[Union[Admin, Employee]]:
    """Return the Admin or Employee row attached to *account*."""
    model = Admin if account.role == UserRole.admin else Employee
    result = await db.execute(select(model).where(model.account_id == account.id))
    return result.scalars().first()


def build_user_info(
    account: UserAccount,
    profile: Optional[Union[Admin, Employee]],
) -> UserInfo:
    if isinstance(profile, Employee):
        return UserInfo(
            account_id=account.id,
            profile_id=profile.id,
            employee_id=profile.employee_id,
            name=profile.name,
            email=account.email,
            role=account.role.value,
            title=profile.position,
        )
    if isinstance(profile, Admin):
        return UserInfo(
            account_id=account.id,
            profile_id=profile.id,
            name=profile.name,
            email=account.email,
            role=account.role.value,
            title=profile.role,
        )
    return UserInfo(
        account_id=account.id,
        name=account.email,
        email=account.email,
        role=account.role.value,
    )


# ── JWT helpers ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(
    settings: Settings,
    account_id: uuid.UUID,
    role: UserRole,
) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(account_id),
        "role": role.value,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    settings: Settings,
    account: UserAccount,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> tuple[str, int]:
    """Issue an access token and persist its session.  Returns (token, expires_in)."""
    token, expires_in = create_access_token(settings, account.id, account.role)

    session = UserSession(
        account_id=account.id,
        token_hash=hash_token(token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )
    db.add(session)
    await db.flush()

    logger.info("Session created", extra={"account_id": str(account.id), "role": account.role.value})
    return token, expires_in


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


async def revoke_all_sessions(db: AsyncSession, account_id: uuid.UUID) -> None:
    """Revoke every live session of an account (used on deactivation)."""
    await db.execute(
        update(UserSession)
        .where(UserSession.account_id == account_id, UserSession.is_revoked.is_(False))
        .values(is_revoked=True),
    )
    await db.flush()
