"""Leave router — apply, edit and withdraw for employees; review for admins.

Routes:
    /leaves                    — List (admin), apply (employee)
    /leaves/me                 — Signed-in employee's requests
    /leaves/balance            — Signed-in employee's remaining days
    /leaves/stats              — Counts by status (admin: all, employee: own)
    /leaves/on-leave           — Approved leave covering a day (admin)
    /leaves/{id}               — Get, edit (own pending), delete
    /leaves/{id}/approve       — Approve and deduct balance (admin)
    /leaves/{id}/reject        — Reject with a reason (admin)
    /leaves/{id}/document      — Attach supporting document
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.admins.models import Admin
from hr_portal.auth.dependencies import (
    get_current_account,
    get_current_admin,
    get_current_employee,
    require_admin,
)
from hr_portal.auth.models import UserAccount
from hr_portal.common import timeutils
from hr_portal.common.constants import LeaveStatus, LeaveType, UserRole
from hr_portal.common.exceptions import ForbiddenException
from hr_portal.common.pagination import PaginationParams
from hr_portal.config import Settings
from hr_portal.database import get_db
from hr_portal.dependencies import get_settings
from hr_portal.employees.models import Employee
from hr_portal.employees.schemas import LeaveBalanceResponse
from hr_portal.employees.service import EmployeeService
from hr_portal.leave.schemas import (
    LeaveApply,
    LeaveResponse,
    LeaveReview,
    LeaveStats,
    LeaveUpdate,
)
from hr_portal.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


def _serialize_page(result) -> dict:
    return {
        "data": [LeaveResponse.model_validate(r).model_dump(mode="json") for r in result.data],
        "meta": result.meta.model_dump(),
    }


# ═════════════════════════════════════════════════════════════════════
# Employee self-service
# ═════════════════════════════════════════════════════════════════════


@router.post("", response_model=LeaveResponse, status_code=201)
async def apply_leave(
    body: LeaveApply,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    employee: Employee = Depends(get_current_employee),
):
    return await LeaveService.apply_leave(db, settings, employee, body)


@router.get("/me")
async def my_leaves(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    pagination: PaginationParams = Depends(),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
):
    result = await LeaveService.list_leaves(
        db, pagination, employee_id=employee.id, status=status, leave_type=leave_type,
    )
    return _serialize_page(result)


@router.get("/balance", response_model=LeaveBalanceResponse)
async def my_balance(
    employee: Employee = Depends(get_current_employee),
):
    return LeaveService.get_balance(employee)


@router.get("/stats", response_model=LeaveStats)
async def leave_stats(
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    if account.role == UserRole.admin:
        return await LeaveService.get_stats(db)
    employee = await EmployeeService.get_by_account(db, account.id)
    return await LeaveService.get_stats(db, employee.id)


# ═════════════════════════════════════════════════════════════════════
# Admin
# ═════════════════════════════════════════════════════════════════════


@router.get("")
async def list_leaves(
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
):
    result = await LeaveService.list_leaves(
        db,
        pagination,
        employee_id=employee_id,
        status=status,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
    )
    return _serialize_page(result)


@router.get("/on-leave", response_model=list[LeaveResponse])
async def on_leave(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: UserAccount = Depends(require_admin),
    on_date: Optional[date] = Query(None, alias="date"),
):
    return await LeaveService.on_leave(db, on_date or timeutils.today_local(settings))


@router.post("/{leave_id}/approve", response_model=LeaveResponse)
async def approve_leave(
    leave_id: uuid.UUID,
    body: LeaveReview,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(require_admin),
    admin: Admin = Depends(get_current_admin),
):
    return await LeaveService.approve_leave(db, leave_id, account, admin.name, body.comments)


@router.post("/{leave_id}/reject", response_model=LeaveResponse)
async def reject_leave(
    leave_id: uuid.UUID,
    body: LeaveReview,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(require_admin),
    admin: Admin = Depends(get_current_admin),
):
    return await LeaveService.reject_leave(db, leave_id, account, admin.name, body.comments)


# ═════════════════════════════════════════════════════════════════════
# Single request
# ═════════════════════════════════════════════════════════════════════


@router.get("/{leave_id}", response_model=LeaveResponse)
async def get_leave(
    leave_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    leave = await LeaveService.get_leave(db, leave_id)
    if account.role != UserRole.admin:
        employee = await EmployeeService.get_by_account(db, account.id)
        if leave.employee_id != employee.id:
            raise ForbiddenException(detail="You can only view your own leave requests.")
    return leave


@router.patch("/{leave_id}", response_model=LeaveResponse)
async def update_leave(
    leave_id: uuid.UUID,
    body: LeaveUpdate,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    return await LeaveService.update_leave(db, leave_id, employee, body)


@router.delete("/{leave_id}")
async def delete_leave(
    leave_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    await LeaveService.delete_leave(db, leave_id, account)
    return {"success": True, "message": "Leave request deleted successfully"}


@router.post("/{leave_id}/document", response_model=LeaveResponse)
async def upload_document(
    leave_id: uuid.UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    account: UserAccount = Depends(get_current_account),
):
    return await LeaveService.upload_document(db, settings, leave_id, account, file)
