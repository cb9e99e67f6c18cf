"""Leave service — application rules, review workflow and balance deduction.

Balance-backed types (Annual → earned, Sick → sick, Casual → casual) are
checked against the employee's remaining days; every other type is
unlimited.  Requests for the same employee may not overlap unless the
earlier one was rejected.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.auth.models import UserAccount
from hr_portal.common import timeutils
from hr_portal.common.audit import create_audit_entry
from hr_portal.common.constants import LEAVE_BALANCE_FIELDS, LeaveStatus, LeaveType, UserRole
from hr_portal.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hr_portal.common.filters import apply_filters
from hr_portal.common.pagination import PaginatedResponse, PaginationParams, paginate
from hr_portal.common.uploads import save_upload
from hr_portal.config import Settings
from hr_portal.employees.models import Employee
from hr_portal.employees.schemas import LeaveBalanceResponse
from hr_portal.employees.service import balance_of
from hr_portal.leave.models import LeaveRequest
from hr_portal.leave.schemas import LeaveApply, LeaveStats, LeaveUpdate

logger = logging.getLogger(__name__)

OVERLAPPING_DATES = "You already have a leave request for overlapping dates."
ALREADY_PROCESSED = "This leave request has already been processed."
REJECTION_REASON_REQUIRED = "Please provide a reason for rejection."
DEFAULT_APPROVAL_COMMENT = "Leave request approved."


def calculate_days(from_date: date, to_date: date) -> int:
    """Inclusive number of calendar days in the range."""
    if to_date < from_date:
        raise ValidationException({"to_date": ["End date cannot be before start date."]})
    return (to_date - from_date).days + 1


def balance_field(leave_type: LeaveType) -> Optional[str]:
    """Employee column holding the balance for *leave_type*, or None if unlimited."""
    return LEAVE_BALANCE_FIELDS.get(leave_type)


def _fmt_days(value: float) -> str:
    return f"{value:g}"


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:

    # ── Validation helpers ──────────────────────────────────────────

    @staticmethod
    def _check_balance(employee: Employee, leave_type: LeaveType, days: int) -> None:
        field = balance_field(leave_type)
        if field is None:
            return
        remaining = getattr(employee, field)
        if remaining < days:
            raise ValidationException({
                "leave_type": [
                    f"Insufficient leave balance. You have {_fmt_days(remaining)} days of "
                    f"{leave_type.value} remaining, but requested {days} days."
                ],
            })

    @staticmethod
    async def _check_overlap(
        db: AsyncSession,
        employee_pk: uuid.UUID,
        from_date: date,
        to_date: date,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(func.count()).select_from(LeaveRequest).where(
            LeaveRequest.employee_id == employee_pk,
            LeaveRequest.status != LeaveStatus.rejected,
            LeaveRequest.from_date <= to_date,
            LeaveRequest.to_date >= from_date,
        )
        if exclude_id is not None:
            query = query.where(LeaveRequest.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one() > 0:
            raise ConflictError("from_date", from_date.isoformat(), detail=OVERLAPPING_DATES)

    # ── Apply ───────────────────────────────────────────────────────

    @staticmethod
    async def apply_leave(
        db: AsyncSession,
        settings: Settings,
        employee: Employee,
        data: LeaveApply,
    ) -> LeaveRequest:
        """Validate balance and overlap, then file a pending request."""
        days = calculate_days(data.from_date, data.to_date)
        LeaveService._check_balance(employee, data.leave_type, days)
        await LeaveService._check_overlap(db, employee.id, data.from_date, data.to_date)

        leave = LeaveRequest(
            employee_id=employee.id,
            employee_name=employee.name,
            leave_type=data.leave_type,
            subject=data.subject,
            description=data.description,
            from_date=data.from_date,
            to_date=data.to_date,
            days=days,
            status=LeaveStatus.pending,
            applied_date=timeutils.today_local(settings),
        )
        db.add(leave)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=employee.account_id,
            new_values={
                "leave_type": data.leave_type.value,
                "from_date": data.from_date.isoformat(),
                "to_date": data.to_date.isoformat(),
                "days": days,
            },
        )
        logger.info(
            "Leave applied",
            extra={"employee_id": employee.employee_id, "leave_type": data.leave_type.value, "days": days},
        )
        return leave

    # ── Review ──────────────────────────────────────────────────────

    @staticmethod
    async def approve_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        reviewer: UserAccount,
        reviewer_name: str,
        comments: Optional[str] = None,
    ) -> LeaveRequest:
        """Approve a pending request and deduct its days (never below zero)."""
        leave = await LeaveService._get_pending(db, leave_id)

        employee = await db.get(Employee, leave.employee_id)
        field = balance_field(leave.leave_type)
        old_values: dict[str, Any] = {"status": LeaveStatus.pending.value}
        new_values: dict[str, Any] = {"status": LeaveStatus.approved.value}
        if employee is not None and field is not None:
            old_values[field] = getattr(employee, field)
            setattr(employee, field, max(0.0, old_values[field] - leave.days))
            new_values[field] = getattr(employee, field)

        LeaveService._mark_reviewed(
            leave, LeaveStatus.approved, reviewer, reviewer_name,
            comments or DEFAULT_APPROVAL_COMMENT,
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="approve",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=reviewer.id,
            old_values=old_values,
            new_values=new_values,
        )
        logger.info("Leave approved", extra={"leave_id": str(leave.id), "days": leave.days})
        return leave

    @staticmethod
    async def reject_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        reviewer: UserAccount,
        reviewer_name: str,
        comments: Optional[str],
    ) -> LeaveRequest:
        if not comments or not comments.strip():
            raise ValidationException({"comments": [REJECTION_REASON_REQUIRED]})

        leave = await LeaveService._get_pending(db, leave_id)
        LeaveService._mark_reviewed(
            leave, LeaveStatus.rejected, reviewer, reviewer_name, comments.strip(),
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="reject",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=reviewer.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": LeaveStatus.rejected.value, "comments": leave.comments},
        )
        logger.info("Leave rejected", extra={"leave_id": str(leave.id)})
        return leave

    @staticmethod
    def _mark_reviewed(
        leave: LeaveRequest,
        status: LeaveStatus,
        reviewer: UserAccount,
        reviewer_name: str,
        comments: str,
    ) -> None:
        leave.status = status
        leave.reviewed_by = reviewer.id
        leave.reviewer_name = reviewer_name
        leave.reviewed_date = timeutils.utcnow()
        leave.comments = comments

    # ── Edit / delete ───────────────────────────────────────────────

    @staticmethod
    async def update_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        employee: Employee,
        data: LeaveUpdate,
    ) -> LeaveRequest:
        """Edit an own pending request; days are recounted when dates change."""
        leave = await LeaveService.get_leave(db, leave_id)
        if leave.employee_id != employee.id:
            raise ForbiddenException(detail="You can only edit your own leave requests.")
        if leave.status != LeaveStatus.pending:
            raise ValidationException({"status": [ALREADY_PROCESSED]})

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return leave

        old_values = {key: _audit_value(getattr(leave, key)) for key in changes}
        from_date = changes.get("from_date", leave.from_date)
        to_date = changes.get("to_date", leave.to_date)
        leave_type = changes.get("leave_type", leave.leave_type)
        days = calculate_days(from_date, to_date)

        if {"from_date", "to_date", "leave_type"} & changes.keys():
            LeaveService._check_balance(employee, leave_type, days)
            await LeaveService._check_overlap(db, employee.id, from_date, to_date, exclude_id=leave.id)

        for key, value in changes.items():
            setattr(leave, key, value)
        leave.days = days
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=employee.account_id,
            old_values=old_values,
            new_values={key: _audit_value(value) for key, value in changes.items()},
        )
        return leave

    @staticmethod
    async def delete_leave(
        db: AsyncSession,
        leave_id: uuid.UUID,
        account: UserAccount,
    ) -> None:
        """Admins may delete any request; employees only their own pending ones."""
        leave = await LeaveService.get_leave(db, leave_id)
        if account.role != UserRole.admin:
            employee = await db.get(Employee, leave.employee_id)
            if employee is None or employee.account_id != account.id:
                raise ForbiddenException(detail="You can only delete your own leave requests.")
            if leave.status != LeaveStatus.pending:
                raise ValidationException({"status": [ALREADY_PROCESSED]})

        await db.delete(leave)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_request",
            entity_id=leave_id,
            actor_id=account.id,
            old_values={"status": leave.status.value, "days": leave.days},
        )

    @staticmethod
    async def upload_document(
        db: AsyncSession,
        settings: Settings,
        leave_id: uuid.UUID,
        account: UserAccount,
        file: UploadFile,
    ) -> LeaveRequest:
        """Attach a supporting document (e.g. medical certificate)."""
        leave = await LeaveService.get_leave(db, leave_id)
        if account.role != UserRole.admin:
            employee = await db.get(Employee, leave.employee_id)
            if employee is None or employee.account_id != account.id:
                raise ForbiddenException(detail="You can only attach documents to your own leave requests.")

        stored = await save_upload(settings, file, "leave-documents")
        leave.document_url = stored["url"]
        await db.flush()
        return leave

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_leave(db: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
        leave = await db.get(LeaveRequest, leave_id)
        if leave is None:
            raise NotFoundException("LeaveRequest", str(leave_id))
        return leave

    @staticmethod
    async def list_leaves(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        """Requests newest first; the date window matches any overlapping request."""
        query = select(LeaveRequest).order_by(LeaveRequest.created_at.desc())
        query = apply_filters(
            query,
            LeaveRequest,
            {
                "employee_id": employee_id,
                "status": status,
                "leave_type": leave_type,
                "to_date__from": from_date,
                "from_date__to": to_date,
            },
        )
        return await paginate(db, query, pagination, model=LeaveRequest)

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        employee_pk: Optional[uuid.UUID] = None,
    ) -> LeaveStats:
        query = select(LeaveRequest.status, func.count()).group_by(LeaveRequest.status)
        if employee_pk is not None:
            query = query.where(LeaveRequest.employee_id == employee_pk)
        result = await db.execute(query)
        counts = {status: count for status, count in result.all()}
        return LeaveStats(
            pending=counts.get(LeaveStatus.pending, 0),
            approved=counts.get(LeaveStatus.approved, 0),
            rejected=counts.get(LeaveStatus.rejected, 0),
            total=sum(counts.values()),
        )

    @staticmethod
    def get_balance(employee: Employee) -> LeaveBalanceResponse:
        return balance_of(employee)

    @staticmethod
    async def on_leave(db: AsyncSession, day: date) -> Sequence[LeaveRequest]:
        """Approved requests covering *day*."""
        result = await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.from_date <= day,
                LeaveRequest.to_date >= day,
            )
            .order_by(LeaveRequest.employee_name),
        )
        return result.scalars().all()

    # ── Internal helpers ────────────────────────────────────────────

    @staticmethod
    async def _get_pending(db: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
        leave = await LeaveService.get_leave(db, leave_id)
        if leave.status != LeaveStatus.pending:
            raise ValidationException({"status": [ALREADY_PROCESSED]})
        return leave


def _audit_value(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value
