"""Task ORM models: Task, TaskNote."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_portal.common.constants import TaskPriority, TaskStatus
from hr_portal.database import Base

if TYPE_CHECKING:
    from hr_portal.employees.models import Employee


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        sa.Index("ix_tasks_assigned_to", "assigned_to"),
        sa.Index("ix_tasks_due_date", "due_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    assigned_to: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("user_accounts.id", ondelete="SET NULL")
    )
    assigner_name: Mapped[Optional[str]] = mapped_column(sa.String(200))
    priority: Mapped[TaskPriority] = mapped_column(
        sa.Enum(TaskPriority, name="task_priority", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TaskPriority.medium,
    )
    status: Mapped[TaskStatus] = mapped_column(
        sa.Enum(TaskStatus, name="task_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TaskStatus.pending,
    )
    due_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    assigned_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    completed_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    rejection_note: Mapped[Optional[str]] = mapped_column(sa.Text)
    completion_notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    reference_links: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    # [{"url", "filename"}]
    attachments: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    delivery_method: Mapped[Optional[str]] = mapped_column(sa.String(100))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    assignee: Mapped[Employee] = relationship()
    notes: Mapped[list[TaskNote]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TaskNote.created_at",
    )


class TaskNote(Base):
    __tablename__ = "task_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("user_accounts.id", ondelete="SET NULL")
    )
    author_name: Mapped[Optional[str]] = mapped_column(sa.String(200))
    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    task: Mapped[Task] = relationship(back_populates="notes")
