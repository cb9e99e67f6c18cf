"""Common module — shared utilities for the HR portal."""

from hr_portal.common.audit import AuditTrail, create_audit_entry
from hr_portal.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AttendanceStatus,
    AttendanceType,
    EmployeeStatus,
    LeaveStatus,
    LeaveType,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from hr_portal.common.exceptions import (
    AppException,
    BadRequestException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from hr_portal.common.filters import apply_filters, apply_search
from hr_portal.common.geo import (
    GeofenceResult,
    OfficeLocation,
    calculate_distance,
    is_within_radius,
)
from hr_portal.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AttendanceStatus",
    "AttendanceType",
    "EmployeeStatus",
    "LeaveStatus",
    "LeaveType",
    "TaskPriority",
    "TaskStatus",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "BadRequestException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    # Geofence
    "GeofenceResult",
    "OfficeLocation",
    "calculate_distance",
    "is_within_radius",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
