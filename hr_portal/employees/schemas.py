"""Employee Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response          → response bodies (read)
  - *Summary           → compact read representations
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from hr_portal.common.constants import EmployeeStatus


# ═════════════════════════════════════════════════════════════════════
# Leave balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceResponse(BaseModel):
    casual: float
    sick: float
    earned: float
    total: float


class LeaveBalanceUpdate(BaseModel):
    """Absolute values; omitted categories are left unchanged."""

    casual: Optional[float] = None
    sick: Optional[float] = None
    earned: Optional[float] = None


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Body of ``POST /api/employees``.

    The six core fields are optional here so a missing one is reported
    as a single "Missing required fields" error listing all of them.
    """

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    employee_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("employee_id", "employeeId"),
    )
    join_date: Optional[date] = None
    location: Optional[str] = None


class EmployeeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    department: Optional[str] = Field(default=None, min_length=1, max_length=150)
    position: Optional[str] = Field(default=None, min_length=1, max_length=150)
    status: Optional[EmployeeStatus] = None
    join_date: Optional[date] = None
    location: Optional[str] = None


class EmployeeResponse(BaseModel):
    """Full employee representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: str
    account_id: Optional[uuid.UUID] = None
    name: str
    email: str
    phone: str
    department: str
    position: str
    status: EmployeeStatus
    join_date: date
    location: Optional[str] = None
    leave_balance: LeaveBalanceResponse
    created_at: datetime

    @classmethod
    def from_employee(cls, employee) -> "EmployeeResponse":
        return cls(
            id=employee.id,
            employee_id=employee.employee_id,
            account_id=employee.account_id,
            name=employee.name,
            email=employee.email,
            phone=employee.phone,
            department=employee.department,
            position=employee.position,
            status=employee.status,
            join_date=employee.join_date,
            location=employee.location,
            leave_balance=LeaveBalanceResponse(
                casual=employee.casual_leave,
                sick=employee.sick_leave,
                earned=employee.earned_leave,
                total=employee.total_leave,
            ),
            created_at=employee.created_at,
        )


class EmployeeSummary(BaseModel):
    """Compact payload returned by the create relay endpoint.

    Dumped with ``by_alias=True`` so relay clients get ``employeeId`` and
    ``accountId``.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: str = Field(serialization_alias="employeeId")
    account_id: Optional[uuid.UUID] = Field(default=None, serialization_alias="accountId")
    name: str
    email: str
    department: str
    position: str


class GeneratedEmployeeId(BaseModel):
    employee_id: str = Field(serialization_alias="employeeId")


class EmployeeStats(BaseModel):
    total: int
    active: int
    inactive: int
    on_leave: int
