"""Leave Pydantic v2 schemas."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_portal.common.constants import LeaveStatus, LeaveType


class LeaveApply(BaseModel):
    leave_type: LeaveType
    subject: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    from_date: date
    to_date: date


class LeaveUpdate(BaseModel):
    leave_type: Optional[LeaveType] = None
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None


class LeaveReview(BaseModel):
    comments: Optional[str] = None


class LeaveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    leave_type: LeaveType
    subject: str
    description: Optional[str] = None
    from_date: date
    to_date: date
    days: int
    status: LeaveStatus
    applied_date: date
    reviewed_by: Optional[uuid.UUID] = None
    reviewer_name: Optional[str] = None
    reviewed_date: Optional[datetime] = None
    comments: Optional[str] = None
    document_url: Optional[str] = None


class LeaveStats(BaseModel):
    pending: int
    approved: int
    rejected: int
    total: int
