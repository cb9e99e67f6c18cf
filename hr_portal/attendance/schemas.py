"""Attendance Pydantic v2 schemas."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_portal.common.constants import AttendanceStatus, AttendanceType


class GeoPoint(BaseModel):
    """Device position reported with a check-in or check-out."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    address: Optional[str] = None


class CheckInRequest(BaseModel):
    attendance_type: AttendanceType = AttendanceType.office
    location: Optional[GeoPoint] = None
    notes: Optional[str] = None


class CheckOutRequest(BaseModel):
    location: Optional[GeoPoint] = None


class AttendanceUpdate(BaseModel):
    """Admin correction of a record; working hours are recomputed."""

    status: Optional[AttendanceStatus] = None
    attendance_type: Optional[AttendanceType] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    notes: Optional[str] = None


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    check_in_location: Optional[dict] = None
    check_out_location: Optional[dict] = None
    status: AttendanceStatus
    attendance_type: AttendanceType
    working_hours: Optional[float] = None
    notes: Optional[str] = None


class AttendanceStats(BaseModel):
    date: date
    present: int
    absent: int
    late: int
    half_day: int
    wfh: int
    total: int


class GeofenceCheckResponse(BaseModel):
    is_within: bool
    distance: int
    allowed_radius: float
    coordinates: str
    maps_url: str
