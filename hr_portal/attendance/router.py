"""Attendance router — check-in/out for employees, review and stats for admins."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.attendance.schemas import (
    AttendanceResponse,
    AttendanceStats,
    AttendanceUpdate,
    CheckInRequest,
    CheckOutRequest,
    GeofenceCheckResponse,
)
from hr_portal.attendance.service import AttendanceService
from hr_portal.auth.dependencies import (
    get_current_account,
    get_current_employee,
    require_admin,
)
from hr_portal.auth.models import UserAccount
from hr_portal.common import timeutils
from hr_portal.common.constants import AttendanceStatus, AttendanceType
from hr_portal.common.geo import (
    OfficeLocation,
    format_coordinates,
    is_within_radius,
    maps_url,
)
from hr_portal.common.pagination import PaginationParams
from hr_portal.config import Settings
from hr_portal.database import get_db
from hr_portal.dependencies import get_settings
from hr_portal.employees.models import Employee

router = APIRouter(prefix="", tags=["attendance"])


# ═════════════════════════════════════════════════════════════════════
# Employee self-service
# ═════════════════════════════════════════════════════════════════════


@router.post("/check-in", response_model=AttendanceResponse, status_code=201)
async def check_in(
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    employee: Employee = Depends(get_current_employee),
):
    return await AttendanceService.check_in(db, settings, employee, body)


@router.post("/{record_id}/check-out", response_model=AttendanceResponse)
async def check_out(
    record_id: uuid.UUID,
    body: CheckOutRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    employee: Employee = Depends(get_current_employee),
):
    return await AttendanceService.check_out(db, settings, employee, record_id, body)


@router.get("/today", response_model=Optional[AttendanceResponse])
async def today(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    employee: Employee = Depends(get_current_employee),
):
    return await AttendanceService.get_today(db, settings, employee.id)


@router.get("/me", response_model=list[AttendanceResponse])
async def my_attendance(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    return await AttendanceService.get_employee_attendance(
        db, employee.id, start_date=start_date, end_date=end_date,
    )


@router.get("/geofence", response_model=GeofenceCheckResponse)
async def check_geofence(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    settings: Settings = Depends(get_settings),
    account: UserAccount = Depends(get_current_account),
):
    """Preview whether a position would pass the office check-in fence."""
    result = is_within_radius(latitude, longitude, OfficeLocation.from_settings(settings))
    return GeofenceCheckResponse(
        is_within=result.is_within,
        distance=result.distance,
        allowed_radius=result.allowed_radius,
        coordinates=format_coordinates(latitude, longitude),
        maps_url=maps_url(latitude, longitude),
    )


# ═════════════════════════════════════════════════════════════════════
# Admin
# ═════════════════════════════════════════════════════════════════════


@router.get("")
async def list_attendance(
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
    pagination: PaginationParams = Depends(),
    employee_id: Optional[uuid.UUID] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    status: Optional[AttendanceStatus] = Query(None),
    attendance_type: Optional[AttendanceType] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    result = await AttendanceService.list_attendance(
        db,
        pagination,
        employee_id=employee_id,
        on_date=on_date,
        status=status,
        attendance_type=attendance_type,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "data": [AttendanceResponse.model_validate(r).model_dump(mode="json") for r in result.data],
        "meta": result.meta.model_dump(),
    }


@router.get("/stats", response_model=AttendanceStats)
async def attendance_stats(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: UserAccount = Depends(require_admin),
    on_date: Optional[date] = Query(None, alias="date"),
):
    return await AttendanceService.get_stats(db, on_date or timeutils.today_local(settings))


@router.get("/date/{day}", response_model=list[AttendanceResponse])
async def attendance_by_date(
    day: date,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    return await AttendanceService.get_by_date(db, day)


@router.get("/employee/{employee_pk}", response_model=list[AttendanceResponse])
async def employee_attendance(
    employee_pk: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    return await AttendanceService.get_employee_attendance(
        db, employee_pk, start_date=start_date, end_date=end_date,
    )


@router.patch("/{record_id}", response_model=AttendanceResponse)
async def update_attendance(
    record_id: uuid.UUID,
    body: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: UserAccount = Depends(require_admin),
):
    return await AttendanceService.update_attendance(db, settings, record_id, body, actor_id=admin.id)


@router.delete("/{record_id}", status_code=204)
async def delete_attendance(
    record_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    await AttendanceService.delete_attendance(db, record_id, actor_id=admin.id)
