"""Employee router — relay create/delete, ID generation and employee records.

Routes:
    /employees                     — List (admin), create with login account (admin)
    /employees/generate-id         — Next sequential employee ID (admin)
    /employees/departments         — Distinct department names
    /employees/stats               — Head-count by status (admin)
    /employees/me                  — Signed-in employee's profile
    /employees/{id}                — Get (admin or self), update, delete (admin)
    /employees/{id}/deactivate     — Mark inactive (admin)
    /employees/{id}/leave-balance  — Read (admin or self), overwrite (admin)
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.auth.dependencies import (
    get_current_account,
    get_current_employee,
    require_admin,
)
from hr_portal.auth.models import UserAccount
from hr_portal.common.constants import EmployeeStatus, UserRole
from hr_portal.common.exceptions import ForbiddenException
from hr_portal.common.pagination import PaginationParams
from hr_portal.config import Settings
from hr_portal.database import get_db
from hr_portal.dependencies import get_settings
from hr_portal.employees.models import Employee
from hr_portal.employees.schemas import (
    EmployeeCreate,
    EmployeeResponse,
    EmployeeStats,
    EmployeeSummary,
    EmployeeUpdate,
    GeneratedEmployeeId,
    LeaveBalanceResponse,
    LeaveBalanceUpdate,
)
from hr_portal.employees.service import EmployeeService

router = APIRouter(prefix="", tags=["employees"])


def _ensure_admin_or_self(account: UserAccount, employee: Employee) -> None:
    if account.role != UserRole.admin and employee.account_id != account.id:
        raise ForbiddenException(detail="You can only view your own profile.")


# ═════════════════════════════════════════════════════════════════════
# Relay endpoints
# ═════════════════════════════════════════════════════════════════════


# ── POST /employees — Create employee with login account ───────────

@router.post("", status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: UserAccount = Depends(require_admin),
):
    employee = await EmployeeService.create_employee(db, settings, body, actor_id=admin.id)
    return {
        "success": True,
        "employee": EmployeeSummary.model_validate(employee).model_dump(mode="json", by_alias=True),
        "message": f"Employee {employee.name} created successfully with ID {employee.employee_id}",
    }


# ── GET /employees/generate-id — Next sequential ID ────────────────
# NOTE: static paths MUST be defined before /{employee_pk}.

@router.get("/generate-id")
async def generate_employee_id(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: UserAccount = Depends(require_admin),
):
    employee_id = await EmployeeService.generate_employee_id(db, settings)
    return GeneratedEmployeeId(employee_id=employee_id).model_dump(by_alias=True)


# ═════════════════════════════════════════════════════════════════════
# Employee records
# ═════════════════════════════════════════════════════════════════════


@router.get("")
async def list_employees(
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
    pagination: PaginationParams = Depends(),
    status: Optional[EmployeeStatus] = Query(None, description="active, inactive or on-leave"),
    department: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search by name, email or employee ID"),
):
    result = await EmployeeService.list_employees(
        db, pagination, status=status, department=department, search=search,
    )
    return {
        "data": [EmployeeResponse.from_employee(e).model_dump(mode="json") for e in result.data],
        "meta": result.meta.model_dump(),
    }


@router.get("/departments", response_model=list[str])
async def list_departments(
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    return await EmployeeService.get_departments(db)


@router.get("/stats", response_model=EmployeeStats)
async def employee_stats(
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    return await EmployeeService.get_stats(db)


@router.get("/me", response_model=EmployeeResponse)
async def my_profile(employee: Employee = Depends(get_current_employee)):
    return EmployeeResponse.from_employee(employee)


@router.get("/{employee_pk}", response_model=EmployeeResponse)
async def get_employee(
    employee_pk: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    employee = await EmployeeService.get_employee(db, employee_pk)
    _ensure_admin_or_self(account, employee)
    return EmployeeResponse.from_employee(employee)


@router.patch("/{employee_pk}", response_model=EmployeeResponse)
async def update_employee(
    employee_pk: uuid.UUID,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    employee = await EmployeeService.update_employee(db, employee_pk, body, actor_id=admin.id)
    return EmployeeResponse.from_employee(employee)


@router.post("/{employee_pk}/deactivate", response_model=EmployeeResponse)
async def deactivate_employee(
    employee_pk: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    employee = await EmployeeService.deactivate_employee(db, employee_pk, actor_id=admin.id)
    return EmployeeResponse.from_employee(employee)


# ── DELETE /employees/{id} — Remove employee and login account ─────

@router.delete("/{employee_pk}")
async def delete_employee(
    employee_pk: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    employee = await EmployeeService.delete_employee(db, employee_pk, actor_id=admin.id)
    return {
        "success": True,
        "message": f"Employee {employee.name} deleted successfully",
    }


# ── Leave balance ───────────────────────────────────────────────────

@router.get("/{employee_pk}/leave-balance", response_model=LeaveBalanceResponse)
async def get_leave_balance(
    employee_pk: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    employee = await EmployeeService.get_employee(db, employee_pk)
    _ensure_admin_or_self(account, employee)
    return await EmployeeService.get_leave_balance(db, employee_pk)


@router.put("/{employee_pk}/leave-balance", response_model=LeaveBalanceResponse)
async def update_leave_balance(
    employee_pk: uuid.UUID,
    body: LeaveBalanceUpdate,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    return await EmployeeService.update_leave_balance(db, employee_pk, body, actor_id=admin.id)
