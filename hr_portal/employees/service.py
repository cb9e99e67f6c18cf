"""Employee service layer — async CRUD, ID generation and leave balances.

Uses:
  - ``paginate()`` from hr_portal.common.pagination
  - ``apply_filters / apply_search`` from hr_portal.common.filters
  - ``create_audit_entry`` from hr_portal.common.audit
  - ``create_account / delete_account`` from hr_portal.auth.service
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.attendance.models import AttendanceRecord
from hr_portal.auth.models import UserAccount
from hr_portal.auth.service import (
    create_account,
    delete_account,
    get_account_by_email,
    revoke_all_sessions,
)
from hr_portal.common import timeutils
from hr_portal.common.audit import create_audit_entry
from hr_portal.common.constants import (
    EMPLOYEE_ID_MAX_LENGTH,
    MIN_PASSWORD_LENGTH,
    EmployeeStatus,
    UserRole,
)
from hr_portal.common.exceptions import (
    BadRequestException,
    ConflictError,
    NotFoundException,
)
from hr_portal.common.filters import apply_filters, apply_search
from hr_portal.common.pagination import PaginatedResponse, PaginationParams, paginate
from hr_portal.config import Settings
from hr_portal.employees.models import Employee
from hr_portal.employees.schemas import (
    EmployeeCreate,
    EmployeeStats,
    EmployeeUpdate,
    LeaveBalanceResponse,
    LeaveBalanceUpdate,
)
from hr_portal.leave.models import LeaveRequest
from hr_portal.tasks.models import Task, TaskNote

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["name", "email", "password", "phone", "department", "position"]

_EMPLOYEE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")

DUPLICATE_EMAIL = "An employee with this email already exists"


def is_valid_employee_id(value: str) -> bool:
    """1–30 characters of letters, digits, hyphen or underscore."""
    return 0 < len(value) <= EMPLOYEE_ID_MAX_LENGTH and bool(_EMPLOYEE_ID_RE.match(value))


def format_employee_id(prefix: str, number: int) -> str:
    return f"{prefix}-{number:06d}"


def validate_new_user(data: Any) -> None:
    """Shared checks for relay-created employees and admins."""
    missing = [field for field in REQUIRED_FIELDS if not getattr(data, field, None)]
    if missing:
        raise BadRequestException(
            detail="Missing required fields",
            errors={"required": REQUIRED_FIELDS, "missing": missing},
        )
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise BadRequestException(
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:
    """Async CRUD operations for employees."""

    # ── Employee IDs ────────────────────────────────────────────────

    @staticmethod
    async def generate_employee_id(db: AsyncSession, settings: Settings) -> str:
        """Next ``<PREFIX>-NNNNNN`` after the highest suffix among recent employees.

        Only the most recently created ``EMPLOYEE_ID_SCAN_LIMIT`` rows are
        scanned; the candidate is advanced past any ID that is already
        taken, so the result is always free at the time of the call.
        """
        prefix = settings.EMPLOYEE_ID_PREFIX
        pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")

        result = await db.execute(
            select(Employee.employee_id)
            .order_by(Employee.created_at.desc())
            .limit(settings.EMPLOYEE_ID_SCAN_LIMIT),
        )
        highest = 0
        for value in result.scalars().all():
            match = pattern.match(value)
            if match:
                highest = max(highest, int(match.group(1)))

        candidate = highest + 1
        while await EmployeeService._employee_id_taken(
            db, format_employee_id(prefix, candidate),
        ):
            candidate += 1
        return format_employee_id(prefix, candidate)

    @staticmethod
    async def _employee_id_taken(db: AsyncSession, employee_id: str) -> bool:
        result = await db.execute(
            select(func.count()).select_from(Employee).where(Employee.employee_id == employee_id),
        )
        return (result.scalar() or 0) > 0

    # ── Create (account + profile) ──────────────────────────────────

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        settings: Settings,
        data: EmployeeCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Create the login account and the employee profile together."""
        validate_new_user(data)
        email = data.email.lower()

        if data.employee_id:
            employee_id = data.employee_id.strip()
            if not is_valid_employee_id(employee_id):
                raise BadRequestException(
                    detail="Invalid employee ID format. Use 1-30 letters, numbers, hyphens or underscores.",
                    errors={"employee_id": [employee_id]},
                )
            if await EmployeeService._employee_id_taken(db, employee_id):
                raise ConflictError(
                    "employee_id", employee_id,
                    detail=f"Employee ID {employee_id} already exists",
                )
        else:
            employee_id = await EmployeeService.generate_employee_id(db, settings)

        existing = await db.execute(select(Employee.id).where(Employee.email == email))
        if existing.first() is not None:
            raise ConflictError("email", email, detail=DUPLICATE_EMAIL)

        account = await create_account(
            db,
            email=email,
            password=data.password,
            role=UserRole.employee,
            duplicate_detail=DUPLICATE_EMAIL,
        )

        employee = Employee(
            employee_id=employee_id,
            account_id=account.id,
            name=data.name.strip(),
            email=email,
            phone=data.phone,
            department=data.department,
            position=data.position,
            status=EmployeeStatus.active,
            join_date=data.join_date or timeutils.today_local(settings),
            location=data.location,
            casual_leave=settings.DEFAULT_CASUAL_LEAVE,
            sick_leave=settings.DEFAULT_SICK_LEAVE,
            earned_leave=settings.DEFAULT_EARNED_LEAVE,
        )
        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            err = str(exc.orig)
            if "employee_id" in err:
                raise ConflictError(
                    "employee_id", employee_id,
                    detail=f"Employee ID {employee_id} already exists",
                )
            if "email" in err:
                raise ConflictError("email", email, detail=DUPLICATE_EMAIL)
            raise

        await create_audit_entry(
            db,
            action="create",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json", exclude={"password"}) | {"employee_id": employee_id},
        )

        logger.info(
            "Employee created",
            extra={"employee_id": employee_id, "department": employee.department},
        )
        return employee

    # ── Delete (profile + records + account) ────────────────────────

    @staticmethod
    async def delete_employee(
        db: AsyncSession,
        employee_pk: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Remove an employee, the records that belong to them and their account."""
        employee = await EmployeeService._get_or_404(db, employee_pk)
        account_id = employee.account_id

        task_ids = select(Task.id).where(Task.assigned_to == employee.id)
        await db.execute(delete(TaskNote).where(TaskNote.task_id.in_(task_ids)))
        await db.execute(delete(Task).where(Task.assigned_to == employee.id))
        await db.execute(delete(LeaveRequest).where(LeaveRequest.employee_id == employee.id))
        await db.execute(delete(AttendanceRecord).where(AttendanceRecord.employee_id == employee.id))

        await db.delete(employee)
        await db.flush()

        if account_id is not None:
            await delete_account(db, account_id)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="employee",
            entity_id=employee_pk,
            actor_id=actor_id,
            old_values={"employee_id": employee.employee_id, "email": employee.email},
        )

        logger.info("Employee deleted", extra={"employee_id": employee.employee_id})
        return employee

    # ── List (paginated, searchable, filterable) ────────────────────

    @staticmethod
    async def list_employees(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        status: Optional[EmployeeStatus] = None,
        department: Optional[str] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        """Return a paginated, filtered, searchable employee list."""
        query = select(Employee).order_by(Employee.created_at.desc())
        query = apply_filters(query, Employee, {"status": status, "department": department})
        query = apply_search(query, Employee, search, ["name", "email", "employee_id"])
        return await paginate(db, query, pagination, model=Employee)

    # ── Get single ──────────────────────────────────────────────────

    @staticmethod
    async def get_employee(db: AsyncSession, employee_pk: uuid.UUID) -> Employee:
        return await EmployeeService._get_or_404(db, employee_pk)

    @staticmethod
    async def get_by_account(db: AsyncSession, account_id: uuid.UUID) -> Employee:
        result = await db.execute(select(Employee).where(Employee.account_id == account_id))
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(account_id))
        return employee

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update_employee(
        db: AsyncSession,
        employee_pk: uuid.UUID,
        data: EmployeeUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Partial-update an existing employee.

        An email change is carried over to the login account. Moving the
        status away from ``active`` ends every session of the account.
        """
        employee = await EmployeeService._get_or_404(db, employee_pk)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return employee

        account: Optional[UserAccount] = None
        if "email" in changes:
            changes["email"] = changes["email"].lower()
            if changes["email"] == employee.email:
                del changes["email"]
            else:
                holder = await get_account_by_email(db, changes["email"])
                if holder is not None:
                    raise ConflictError("email", changes["email"], detail=DUPLICATE_EMAIL)
                if employee.account_id is not None:
                    account = await db.get(UserAccount, employee.account_id)
            if not changes:
                return employee

        old_values: dict[str, Any] = {}
        for field, value in changes.items():
            old_val = getattr(employee, field, None)
            if hasattr(old_val, "value"):
                old_val = old_val.value
            old_values[field] = old_val
            setattr(employee, field, value)
        if account is not None:
            account.email = changes["email"]

        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            if "email" in str(exc.orig):
                raise ConflictError("email", changes.get("email", ""), detail=DUPLICATE_EMAIL)
            raise

        if (
            changes.get("status") not in (None, EmployeeStatus.active)
            and employee.account_id is not None
        ):
            await revoke_all_sessions(db, employee.account_id)

        await create_audit_entry(
            db,
            action="update",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=_jsonable(old_values),
            new_values=_jsonable(changes),
        )
        return employee

    @staticmethod
    async def deactivate_employee(
        db: AsyncSession,
        employee_pk: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Employee:
        """Set status to inactive and end the employee's sessions."""
        employee = await EmployeeService.update_employee(
            db, employee_pk, EmployeeUpdate(status=EmployeeStatus.inactive), actor_id=actor_id,
        )
        logger.info("Employee deactivated", extra={"employee_id": employee.employee_id})
        return employee

    # ── Aggregates ──────────────────────────────────────────────────

    @staticmethod
    async def get_departments(db: AsyncSession) -> list[str]:
        """Distinct department names, sorted."""
        result = await db.execute(
            select(Employee.department).distinct().order_by(Employee.department),
        )
        return [name for name in result.scalars().all() if name]

    @staticmethod
    async def get_stats(db: AsyncSession) -> EmployeeStats:
        result = await db.execute(
            select(Employee.status, func.count()).group_by(Employee.status),
        )
        counts = {status: count for status, count in result.all()}
        return EmployeeStats(
            total=sum(counts.values()),
            active=counts.get(EmployeeStatus.active, 0),
            inactive=counts.get(EmployeeStatus.inactive, 0),
            on_leave=counts.get(EmployeeStatus.on_leave, 0),
        )

    # ── Leave balance ───────────────────────────────────────────────

    @staticmethod
    async def get_leave_balance(db: AsyncSession, employee_pk: uuid.UUID) -> LeaveBalanceResponse:
        employee = await EmployeeService._get_or_404(db, employee_pk)
        return balance_of(employee)

    @staticmethod
    async def update_leave_balance(
        db: AsyncSession,
        employee_pk: uuid.UUID,
        data: LeaveBalanceUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveBalanceResponse:
        """Overwrite balance categories; negative values are stored as 0."""
        employee = await EmployeeService._get_or_404(db, employee_pk)
        old = balance_of(employee)

        for key, value in data.model_dump(exclude_none=True).items():
            setattr(employee, f"{key}_leave", max(0.0, value))
        await db.flush()

        new = balance_of(employee)
        await create_audit_entry(
            db,
            action="update_balance",
            entity_type="employee",
            entity_id=employee.id,
            actor_id=actor_id,
            old_values=old.model_dump(),
            new_values=new.model_dump(),
        )
        return new

    # ── Internal helpers ────────────────────────────────────────────

    @staticmethod
    async def _get_or_404(db: AsyncSession, employee_pk: uuid.UUID) -> Employee:
        employee = await db.get(Employee, employee_pk)
        if employee is None:
            raise NotFoundException("Employee", str(employee_pk))
        return employee


def balance_of(employee: Employee) -> LeaveBalanceResponse:
    return LeaveBalanceResponse(
        casual=employee.casual_leave,
        sick=employee.sick_leave,
        earned=employee.earned_leave,
        total=employee.total_leave,
    )


def _jsonable(values: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in values.items():
        if hasattr(value, "value"):
            value = value.value
        if isinstance(value, date):
            value = value.isoformat()
        out[key] = value
    return out
