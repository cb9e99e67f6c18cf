"""Admin service — HR staff accounts."""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.admins.models import Admin
from hr_portal.admins.schemas import AdminCreate
from hr_portal.auth.service import create_account, delete_account
from hr_portal.common.audit import create_audit_entry
from hr_portal.common.constants import DEFAULT_ADMIN_TITLE, MIN_PASSWORD_LENGTH, UserRole
from hr_portal.common.exceptions import (
    BadRequestException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
)

logger = logging.getLogger(__name__)

ADMIN_REQUIRED_FIELDS = ["name", "email", "password"]
DUPLICATE_ADMIN_EMAIL = "An admin with this email already exists"


class AdminService:

    @staticmethod
    async def list_admins(db: AsyncSession) -> Sequence[Admin]:
        result = await db.execute(select(Admin).order_by(Admin.created_at.desc()))
        return result.scalars().all()

    @staticmethod
    async def create_admin(
        db: AsyncSession,
        data: AdminCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Admin:
        missing = [f for f in ADMIN_REQUIRED_FIELDS if not getattr(data, f)]
        if missing:
            raise BadRequestException(
                detail="Missing required fields",
                errors={"required": ADMIN_REQUIRED_FIELDS, "missing": missing},
            )
        if len(data.password) < MIN_PASSWORD_LENGTH:
            raise BadRequestException(
                detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )

        email = data.email.lower()
        existing = await db.execute(select(Admin.id).where(Admin.email == email))
        if existing.first() is not None:
            raise ConflictError("email", email, detail=DUPLICATE_ADMIN_EMAIL)

        account = await create_account(
            db,
            email=email,
            password=data.password,
            role=UserRole.admin,
            duplicate_detail=DUPLICATE_ADMIN_EMAIL,
        )
        admin = Admin(
            account_id=account.id,
            name=data.name.strip(),
            email=email,
            role=data.role or DEFAULT_ADMIN_TITLE,
        )
        db.add(admin)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="admin",
            entity_id=admin.id,
            actor_id=actor_id,
            new_values={"name": admin.name, "email": email, "role": admin.role},
        )
        logger.info("Admin created", extra={"admin_email": email})
        return admin

    @staticmethod
    async def delete_admin(
        db: AsyncSession,
        admin_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Admin:
        """Delete an admin profile and its account; self-deletion is refused."""
        admin = await db.get(Admin, admin_id)
        if admin is None:
            raise NotFoundException("Admin", str(admin_id))
        if actor_id is not None and admin.account_id == actor_id:
            raise ForbiddenException(detail="You cannot delete your own admin account.")

        account_id = admin.account_id
        await db.delete(admin)
        await db.flush()
        await delete_account(db, account_id)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="admin",
            entity_id=admin_id,
            actor_id=actor_id,
            old_values={"name": admin.name, "email": admin.email},
        )
        logger.info("Admin deleted", extra={"admin_email": admin.email})
        return admin
