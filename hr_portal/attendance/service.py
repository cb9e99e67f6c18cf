"""Attendance service — geofenced check-in, check-out and daily statistics."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.attendance.models import AttendanceRecord
from hr_portal.attendance.schemas import (
    AttendanceStats,
    AttendanceUpdate,
    CheckInRequest,
    CheckOutRequest,
    GeoPoint,
)
from hr_portal.common import timeutils
from hr_portal.common.audit import create_audit_entry
from hr_portal.common.constants import AttendanceStatus, AttendanceType, EmployeeStatus
from hr_portal.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from hr_portal.common.filters import apply_filters
from hr_portal.common.geo import OfficeLocation, is_within_radius
from hr_portal.common.pagination import PaginatedResponse, PaginationParams, paginate
from hr_portal.config import Settings
from hr_portal.employees.models import Employee

logger = logging.getLogger(__name__)

ALREADY_CHECKED_IN = "You have already checked in today."
ALREADY_CHECKED_OUT = "You have already checked out today."
RECORD_NOT_FOUND = "Attendance record not found."
LOCATION_REQUIRED = "Location is required for office check-in."


def working_hours_between(check_in: datetime, check_out: datetime) -> float:
    """Elapsed hours rounded to 2 decimals."""
    elapsed = timeutils.as_utc(check_out) - timeutils.as_utc(check_in)
    return round(elapsed.total_seconds() / 3600, 2)


def status_for_check_in(
    settings: Settings,
    attendance_type: AttendanceType,
    local_time: datetime,
) -> AttendanceStatus:
    """wfh for remote work, late after the cut-off, otherwise present."""
    if attendance_type == AttendanceType.wfh:
        return AttendanceStatus.wfh
    if local_time.time() > settings.late_after_time:
        return AttendanceStatus.late
    return AttendanceStatus.present


def status_after_check_out(
    settings: Settings,
    record: AttendanceRecord,
    hours: float,
) -> AttendanceStatus:
    """Short office days become half-day; wfh keeps its status."""
    if hours < settings.HALF_DAY_HOURS and record.attendance_type != AttendanceType.wfh:
        return AttendanceStatus.half_day
    return record.status


def _location_dict(point: Optional[GeoPoint]) -> Optional[dict[str, Any]]:
    return point.model_dump() if point is not None else None


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:

    # ── Check-in ────────────────────────────────────────────────────

    @staticmethod
    async def check_in(
        db: AsyncSession,
        settings: Settings,
        employee: Employee,
        data: CheckInRequest,
    ) -> AttendanceRecord:
        """Open today's record for *employee*.

        Office check-ins must come from inside the geofence; only one
        record may exist per employee per local day.
        """
        if data.attendance_type == AttendanceType.office:
            if data.location is None:
                raise ValidationException({"location": [LOCATION_REQUIRED]})
            office = OfficeLocation.from_settings(settings)
            fence = is_within_radius(data.location.latitude, data.location.longitude, office)
            if not fence.is_within:
                logger.warning(
                    "Check-in outside geofence",
                    extra={
                        "employee_id": employee.employee_id,
                        "distance": fence.distance,
                        "allowed_radius": fence.allowed_radius,
                    },
                )
                raise ValidationException({
                    "location": [
                        f"You are {fence.distance}m away from the office. "
                        f"Check-in is only allowed within {fence.allowed_radius:g}m radius. "
                        "Please move closer to the office or select Work From Home."
                    ],
                })

        local_now = timeutils.now_local(settings)
        today = local_now.date()

        existing = await AttendanceService.get_record_for_day(db, employee.id, today)
        if existing is not None:
            logger.warning("Duplicate check-in", extra={"employee_id": employee.employee_id})
            raise ConflictError("date", today.isoformat(), detail=ALREADY_CHECKED_IN)

        record = AttendanceRecord(
            employee_id=employee.id,
            date=today,
            check_in=timeutils.as_utc(local_now),
            check_in_location=_location_dict(data.location),
            status=status_for_check_in(settings, data.attendance_type, local_now),
            attendance_type=data.attendance_type,
            notes=data.notes,
        )
        db.add(record)
        try:
            await db.flush()
        except IntegrityError:
            # Concurrent check-in won the unique (employee_id, date) race
            await db.rollback()
            raise ConflictError("date", today.isoformat(), detail=ALREADY_CHECKED_IN)

        await create_audit_entry(
            db,
            action="check_in",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=employee.account_id,
            new_values={
                "status": record.status.value,
                "attendance_type": record.attendance_type.value,
                "timestamp": record.check_in.isoformat(),
            },
        )
        logger.info(
            "Checked in",
            extra={"employee_id": employee.employee_id, "status": record.status.value},
        )
        return record

    # ── Check-out ───────────────────────────────────────────────────

    @staticmethod
    async def check_out(
        db: AsyncSession,
        settings: Settings,
        employee: Employee,
        record_id: uuid.UUID,
        data: CheckOutRequest,
    ) -> AttendanceRecord:
        """Close an open record and derive working hours and final status."""
        record = await db.get(AttendanceRecord, record_id)
        if record is None or record.employee_id != employee.id:
            raise NotFoundException("AttendanceRecord", str(record_id), detail=RECORD_NOT_FOUND)
        if record.check_out is not None:
            raise ConflictError("check_out", str(record_id), detail=ALREADY_CHECKED_OUT)
        if record.check_in is None:
            raise ValidationException({"check_in": ["This record has no check-in time."]})

        now = timeutils.utcnow()
        hours = working_hours_between(record.check_in, now)

        record.check_out = now
        record.check_out_location = _location_dict(data.location)
        record.working_hours = hours
        record.status = status_after_check_out(settings, record, hours)
        await db.flush()

        await create_audit_entry(
            db,
            action="check_out",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=employee.account_id,
            new_values={
                "status": record.status.value,
                "working_hours": hours,
                "timestamp": now.isoformat(),
            },
        )
        logger.info(
            "Checked out",
            extra={"employee_id": employee.employee_id, "working_hours": hours},
        )
        return record

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_record_for_day(
        db: AsyncSession,
        employee_pk: uuid.UUID,
        day: date,
    ) -> Optional[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.employee_id == employee_pk,
                AttendanceRecord.date == day,
            ),
        )
        return result.scalars().first()

    @staticmethod
    async def get_today(
        db: AsyncSession,
        settings: Settings,
        employee_pk: uuid.UUID,
    ) -> Optional[AttendanceRecord]:
        return await AttendanceService.get_record_for_day(
            db, employee_pk, timeutils.today_local(settings),
        )

    @staticmethod
    async def list_attendance(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        on_date: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        attendance_type: Optional[AttendanceType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PaginatedResponse:
        """Filtered records, newest day first."""
        query = select(AttendanceRecord).order_by(
            AttendanceRecord.date.desc(), AttendanceRecord.check_in.desc(),
        )
        query = apply_filters(
            query,
            AttendanceRecord,
            {
                "employee_id": employee_id,
                "date": on_date,
                "status": status,
                "attendance_type": attendance_type,
                "date__from": start_date,
                "date__to": end_date,
            },
        )
        return await paginate(db, query, pagination, model=AttendanceRecord)

    @staticmethod
    async def get_by_date(db: AsyncSession, day: date) -> Sequence[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.date == day)
            .order_by(AttendanceRecord.check_in),
        )
        return result.scalars().all()

    @staticmethod
    async def get_employee_attendance(
        db: AsyncSession,
        employee_pk: uuid.UUID,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        query = apply_filters(
            select(AttendanceRecord).order_by(AttendanceRecord.date.desc()),
            AttendanceRecord,
            {
                "employee_id": employee_pk,
                "date__from": start_date,
                "date__to": end_date,
            },
        )
        result = await db.execute(query)
        return result.scalars().all()

    # ── Admin corrections ───────────────────────────────────────────

    @staticmethod
    async def update_attendance(
        db: AsyncSession,
        settings: Settings,
        record_id: uuid.UUID,
        data: AttendanceUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Apply an admin correction.

        Working hours are recomputed from the corrected times; unless the
        correction sets ``status`` itself, status is derived again with the
        check-in and check-out rules.
        """
        record = await db.get(AttendanceRecord, record_id)
        if record is None:
            raise NotFoundException("AttendanceRecord", str(record_id), detail=RECORD_NOT_FOUND)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return record

        old_values = {
            key: _audit_value(getattr(record, key)) for key in changes
        }
        previous_status = record.status
        for key, value in changes.items():
            setattr(record, key, value)

        if record.check_in is not None and record.check_out is not None:
            if timeutils.as_utc(record.check_out) < timeutils.as_utc(record.check_in):
                raise ValidationException({"check_out": ["Check-out cannot be before check-in."]})
            record.working_hours = working_hours_between(record.check_in, record.check_out)

        if "status" not in changes and record.check_in is not None:
            record.status = status_for_check_in(
                settings, record.attendance_type, timeutils.to_local(settings, record.check_in),
            )
            if record.check_out is not None:
                record.status = status_after_check_out(settings, record, record.working_hours)
            old_values["status"] = _audit_value(previous_status)
            changes["status"] = record.status
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values={key: _audit_value(value) for key, value in changes.items()},
        )
        return record

    @staticmethod
    async def delete_attendance(
        db: AsyncSession,
        record_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        record = await db.get(AttendanceRecord, record_id)
        if record is None:
            raise NotFoundException("AttendanceRecord", str(record_id), detail=RECORD_NOT_FOUND)
        await db.delete(record)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="attendance_record",
            entity_id=record_id,
            actor_id=actor_id,
            old_values={"employee_id": str(record.employee_id), "date": record.date.isoformat()},
        )

    # ── Statistics ──────────────────────────────────────────────────

    @staticmethod
    async def get_stats(db: AsyncSession, day: date) -> AttendanceStats:
        """Counts per status for *day*.

        ``absent`` also counts active employees with no record at all.
        """
        result = await db.execute(
            select(AttendanceRecord.status, func.count())
            .where(AttendanceRecord.date == day)
            .group_by(AttendanceRecord.status),
        )
        counts = {status: count for status, count in result.all()}
        recorded = sum(counts.values())

        unrecorded_result = await db.execute(
            select(func.count())
            .select_from(Employee)
            .where(
                Employee.status == EmployeeStatus.active,
                ~Employee.id.in_(
                    select(AttendanceRecord.employee_id).where(AttendanceRecord.date == day),
                ),
            ),
        )
        unrecorded = unrecorded_result.scalar() or 0

        return AttendanceStats(
            date=day,
            present=counts.get(AttendanceStatus.present, 0),
            absent=counts.get(AttendanceStatus.absent, 0) + unrecorded,
            late=counts.get(AttendanceStatus.late, 0),
            half_day=counts.get(AttendanceStatus.half_day, 0),
            wfh=counts.get(AttendanceStatus.wfh, 0),
            total=recorded + unrecorded,
        )


def _audit_value(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
