"""Admin router — list, create and delete HR staff accounts."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.admins.schemas import AdminCreate, AdminResponse
from hr_portal.admins.service import AdminService
from hr_portal.auth.dependencies import require_admin
from hr_portal.auth.models import UserAccount
from hr_portal.database import get_db

router = APIRouter(prefix="", tags=["admins"])


@router.get("", response_model=list[AdminResponse])
async def list_admins(
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    return await AdminService.list_admins(db)


# ── POST /admins — Create admin with login account ─────────────────

@router.post("", status_code=201)
async def create_admin(
    body: AdminCreate,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    created = await AdminService.create_admin(db, body, actor_id=admin.id)
    return {
        "success": True,
        "admin": AdminResponse.model_validate(created).model_dump(mode="json"),
        "message": f"Admin {created.name} created successfully",
    }


# ── DELETE /admins/{id} — Remove admin and login account ───────────

@router.delete("/{admin_id}")
async def delete_admin(
    admin_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    deleted = await AdminService.delete_admin(db, admin_id, actor_id=admin.id)
    return {"success": True, "message": f"Admin {deleted.name} deleted successfully"}
