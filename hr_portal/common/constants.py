"""Enums and constants for the HR portal."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    employee = "employee"


DEFAULT_ADMIN_TITLE = "HR Manager"


# ── Employee ────────────────────────────────────────────────────────

class EmployeeStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    on_leave = "on-leave"


EMPLOYEE_ID_MAX_LENGTH = 30
MIN_PASSWORD_LENGTH = 8


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    half_day = "half-day"
    wfh = "wfh"


class AttendanceType(str, enum.Enum):
    office = "office"
    wfh = "wfh"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class LeaveType(str, enum.Enum):
    annual = "Annual Leave"
    sick = "Sick Leave"
    casual = "Casual Leave"
    maternity = "Maternity Leave"
    parent = "Parent Leave"
    optional = "Optional Leave"
    unpaid = "Unpaid Leave"
    emergency = "Emergency Leave"


# Leave types drawn from a balance; every other type is unlimited.
LEAVE_BALANCE_FIELDS: dict[LeaveType, str] = {
    LeaveType.annual: "earned_leave",
    LeaveType.sick: "sick_leave",
    LeaveType.casual: "casual_leave",
}


# ── Tasks ───────────────────────────────────────────────────────────

class TaskStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"
    accepted = "accepted"
    rejected = "rejected"


class TaskPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


# Allowed task transitions: current status → reachable statuses
TASK_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.pending: {TaskStatus.in_progress},
    TaskStatus.rejected: {TaskStatus.in_progress},
    TaskStatus.in_progress: {TaskStatus.completed},
    TaskStatus.completed: {TaskStatus.accepted, TaskStatus.rejected},
    TaskStatus.accepted: set(),
}


# ── Uploads ─────────────────────────────────────────────────────────

ALLOWED_UPLOAD_TYPES: dict[str, str] = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}


# ── Pagination ──────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
