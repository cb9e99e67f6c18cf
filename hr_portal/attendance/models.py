"""Attendance ORM model: one AttendanceRecord per employee per local day."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_portal.common.constants import AttendanceStatus, AttendanceType
from hr_portal.database import Base

if TYPE_CHECKING:
    from hr_portal.employees.models import Employee


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
        sa.Index("ix_attendance_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    check_in: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    check_out: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    # {"latitude", "longitude", "accuracy", "address"}
    check_in_location: Mapped[Optional[dict]] = mapped_column(JSONB)
    check_out_location: Mapped[Optional[dict]] = mapped_column(JSONB)
    status: Mapped[AttendanceStatus] = mapped_column(
        sa.Enum(
            AttendanceStatus,
            name="attendance_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=AttendanceStatus.present,
    )
    attendance_type: Mapped[AttendanceType] = mapped_column(
        sa.Enum(
            AttendanceType,
            name="attendance_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=AttendanceType.office,
    )
    working_hours: Mapped[Optional[float]] = mapped_column(sa.Float)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    employee: Mapped[Employee] = relationship()
