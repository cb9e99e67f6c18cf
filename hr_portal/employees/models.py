"""Employee ORM model.

The leave balance lives in three numeric columns rather than a packed
string, so approvals can adjust a single category atomically.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_portal.common.constants import EmployeeStatus
from hr_portal.database import Base

if TYPE_CHECKING:
    from hr_portal.auth.models import UserAccount


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Employee(Base):
    """Employee profile linked one-to-one to a login account."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[str] = mapped_column(sa.String(30), unique=True, nullable=False)
    account_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("user_accounts.id", ondelete="SET NULL"),
        unique=True,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    phone: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    department: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    position: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    status: Mapped[EmployeeStatus] = mapped_column(
        sa.Enum(
            EmployeeStatus,
            name="employee_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=EmployeeStatus.active,
        nullable=False,
    )
    join_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(sa.String(200))

    # ── Leave balance (days) ────────────────────────────────────────
    casual_leave: Mapped[float] = mapped_column(sa.Float, default=0, nullable=False)
    sick_leave: Mapped[float] = mapped_column(sa.Float, default=0, nullable=False)
    earned_leave: Mapped[float] = mapped_column(sa.Float, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=_utcnow,
        server_default=sa.func.now(),
        onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    account: Mapped[Optional[UserAccount]] = relationship(back_populates="employee")

    __table_args__ = (
        sa.Index("ix_employees_department", "department"),
        sa.Index("ix_employees_status", "status"),
        sa.Index("ix_employees_created_at", "created_at"),
    )

    @property
    def total_leave(self) -> float:
        return self.casual_leave + self.sick_leave + self.earned_leave

    def __repr__(self) -> str:
        return f"<Employee {self.employee_id} {self.name!r}>"
