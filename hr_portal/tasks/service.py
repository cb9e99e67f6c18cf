"""Task service — assignment, lifecycle transitions, notes and attachments.

Lifecycle::

    pending ──start──▶ in-progress ──submit──▶ completed ──accept──▶ accepted
       ▲                    ▲                      │
       │                    └───────start──── rejected ◀──reject──┘

Assignees drive ``start``/``submit``; admins ``accept``/``reject``.  A
rejection pushes the due date to the next working day.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date
from typing import Optional, Sequence

from fastapi import UploadFile
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.auth.models import UserAccount
from hr_portal.common import timeutils
from hr_portal.common.audit import create_audit_entry
from hr_portal.common.constants import TASK_TRANSITIONS, TaskPriority, TaskStatus, UserRole
from hr_portal.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hr_portal.common.filters import apply_filters, apply_search
from hr_portal.common.pagination import PaginatedResponse, PaginationParams, paginate
from hr_portal.common.uploads import save_upload
from hr_portal.config import Settings
from hr_portal.employees.models import Employee
from hr_portal.tasks.models import Task, TaskNote
from hr_portal.tasks.schemas import (
    CalendarDay,
    TaskCreate,
    TaskResponse,
    TaskStats,
    TaskUpdate,
)

logger = logging.getLogger(__name__)

REJECTION_NOTE_REQUIRED = "A rejection note is required."


def ensure_transition(current: TaskStatus, target: TaskStatus) -> None:
    if target not in TASK_TRANSITIONS.get(current, set()):
        raise ValidationException({
            "status": [f"Cannot move task from {current.value} to {target.value}."],
        })


class TaskService:

    # ── Create ──────────────────────────────────────────────────────

    @staticmethod
    async def create_task(
        db: AsyncSession,
        settings: Settings,
        data: TaskCreate,
        assigner: UserAccount,
        assigner_name: str,
    ) -> Task:
        assignee = await db.get(Employee, data.assigned_to)
        if assignee is None:
            raise NotFoundException("Employee", str(data.assigned_to))

        task = Task(
            title=data.title,
            description=data.description,
            assigned_to=assignee.id,
            employee_name=assignee.name,
            assigned_by=assigner.id,
            assigner_name=assigner_name,
            priority=data.priority,
            status=TaskStatus.pending,
            due_date=data.due_date,
            assigned_date=timeutils.today_local(settings),
            reference_links=list(data.reference_links),
            attachments=[],
            is_recurring=data.is_recurring,
            delivery_method=data.delivery_method,
        )
        db.add(task)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="task",
            entity_id=task.id,
            actor_id=assigner.id,
            new_values={
                "title": task.title,
                "assigned_to": str(assignee.id),
                "due_date": task.due_date.isoformat(),
            },
        )
        logger.info("Task assigned", extra={"task_id": str(task.id), "employee_id": assignee.employee_id})
        return task

    # ── Lifecycle ───────────────────────────────────────────────────

    @staticmethod
    async def start(db: AsyncSession, task_id: uuid.UUID, employee: Employee) -> Task:
        """Assignee picks up a pending task or reworks a rejected one."""
        task = await TaskService._get_assigned(db, task_id, employee)
        return await TaskService._transition(db, task, TaskStatus.in_progress, employee.account_id)

    @staticmethod
    async def submit(
        db: AsyncSession,
        settings: Settings,
        task_id: uuid.UUID,
        employee: Employee,
        notes: Optional[str] = None,
    ) -> Task:
        task = await TaskService._get_assigned(db, task_id, employee)
        ensure_transition(task.status, TaskStatus.completed)
        task.completed_date = timeutils.today_local(settings)
        if notes:
            task.completion_notes = notes
        return await TaskService._transition(db, task, TaskStatus.completed, employee.account_id)

    @staticmethod
    async def accept(
        db: AsyncSession,
        task_id: uuid.UUID,
        reviewer: UserAccount,
        note: Optional[str] = None,
    ) -> Task:
        task = await TaskService.get_task(db, task_id)
        ensure_transition(task.status, TaskStatus.accepted)
        if note:
            task.completion_notes = note
        return await TaskService._transition(db, task, TaskStatus.accepted, reviewer.id)

    @staticmethod
    async def reject(
        db: AsyncSession,
        settings: Settings,
        task_id: uuid.UUID,
        reviewer: UserAccount,
        note: Optional[str],
    ) -> Task:
        """Send a completed task back with a note; due date moves to the next working day."""
        if not note or not note.strip():
            raise ValidationException({"note": [REJECTION_NOTE_REQUIRED]})

        task = await TaskService.get_task(db, task_id)
        ensure_transition(task.status, TaskStatus.rejected)
        task.rejection_note = note.strip()
        task.due_date = timeutils.next_working_day(timeutils.today_local(settings))
        return await TaskService._transition(db, task, TaskStatus.rejected, reviewer.id)

    @staticmethod
    async def _transition(
        db: AsyncSession,
        task: Task,
        target: TaskStatus,
        actor_id: Optional[uuid.UUID],
    ) -> Task:
        ensure_transition(task.status, target)
        previous = task.status
        task.status = target
        await db.flush()

        await create_audit_entry(
            db,
            action=f"task_{target.value.replace('-', '_')}",
            entity_type="task",
            entity_id=task.id,
            actor_id=actor_id,
            old_values={"status": previous.value},
            new_values={"status": target.value, "due_date": task.due_date.isoformat()},
        )
        logger.info(
            "Task status changed",
            extra={"task_id": str(task.id), "from_status": previous.value, "to_status": target.value},
        )
        return task

    # ── Edit / delete ───────────────────────────────────────────────

    @staticmethod
    async def update_task(
        db: AsyncSession,
        task_id: uuid.UUID,
        data: TaskUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Task:
        task = await TaskService.get_task(db, task_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return task

        old_values = {key: _jsonable(getattr(task, key)) for key in changes}
        for key, value in changes.items():
            setattr(task, key, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="task",
            entity_id=task.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values={key: _jsonable(value) for key, value in changes.items()},
        )
        return task

    @staticmethod
    async def delete_task(
        db: AsyncSession,
        task_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        task = await TaskService.get_task(db, task_id)
        await db.execute(delete(TaskNote).where(TaskNote.task_id == task.id))
        await db.delete(task)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="task",
            entity_id=task_id,
            actor_id=actor_id,
            old_values={"title": task.title, "status": task.status.value},
        )

    # ── Notes ───────────────────────────────────────────────────────

    @staticmethod
    async def add_note(
        db: AsyncSession,
        task_id: uuid.UUID,
        account: UserAccount,
        author_name: str,
        content: str,
    ) -> TaskNote:
        task = await TaskService.get_task(db, task_id)
        await TaskService.ensure_can_view(db, task, account)

        note = TaskNote(
            task_id=task.id,
            author_id=account.id,
            author_name=author_name,
            content=content,
        )
        db.add(note)
        await db.flush()
        return note

    @staticmethod
    async def list_notes(db: AsyncSession, task_id: uuid.UUID) -> Sequence[TaskNote]:
        result = await db.execute(
            select(TaskNote).where(TaskNote.task_id == task_id).order_by(TaskNote.created_at),
        )
        return result.scalars().all()

    # ── Attachments ─────────────────────────────────────────────────

    @staticmethod
    async def upload_attachment(
        db: AsyncSession,
        settings: Settings,
        task_id: uuid.UUID,
        account: UserAccount,
        file: UploadFile,
    ) -> Task:
        task = await TaskService.get_task(db, task_id)
        await TaskService.ensure_can_view(db, task, account)

        stored = await save_upload(settings, file, "task-attachments")
        # JSONB columns only notice reassignment
        task.attachments = [*(task.attachments or []), stored]
        await db.flush()
        return task

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_task(db: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await db.get(Task, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task

    @staticmethod
    async def ensure_can_view(db: AsyncSession, task: Task, account: UserAccount) -> None:
        if account.role == UserRole.admin:
            return
        employee = await db.get(Employee, task.assigned_to)
        if employee is None or employee.account_id != account.id:
            raise ForbiddenException(detail="You can only access tasks assigned to you.")

    @staticmethod
    async def list_tasks(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        assigned_to: Optional[uuid.UUID] = None,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        due_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        query = select(Task).order_by(Task.due_date, Task.created_at)
        query = apply_filters(
            query,
            Task,
            {
                "assigned_to": assigned_to,
                "status": status,
                "priority": priority,
                "due_date": due_date,
                "due_date__from": start_date,
                "due_date__to": end_date,
            },
        )
        query = apply_search(query, Task, search, ["title"])
        return await paginate(db, query, pagination, model=Task)

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        assigned_to: Optional[uuid.UUID] = None,
    ) -> TaskStats:
        query = select(Task.status, func.count()).group_by(Task.status)
        if assigned_to is not None:
            query = query.where(Task.assigned_to == assigned_to)
        result = await db.execute(query)
        counts = {status: count for status, count in result.all()}
        return TaskStats(
            pending=counts.get(TaskStatus.pending, 0),
            in_progress=counts.get(TaskStatus.in_progress, 0),
            completed=counts.get(TaskStatus.completed, 0),
            accepted=counts.get(TaskStatus.accepted, 0),
            rejected=counts.get(TaskStatus.rejected, 0),
            total=sum(counts.values()),
        )

    @staticmethod
    async def calendar(
        db: AsyncSession,
        start: date,
        end: date,
        *,
        assigned_to: Optional[uuid.UUID] = None,
    ) -> list[CalendarDay]:
        """Tasks due within ``[start, end]`` grouped by due date, earliest first."""
        if end < start:
            raise ValidationException({"end": ["End date cannot be before start date."]})

        query = (
            select(Task)
            .where(Task.due_date >= start, Task.due_date <= end)
            .order_by(Task.due_date, Task.created_at)
        )
        if assigned_to is not None:
            query = query.where(Task.assigned_to == assigned_to)
        result = await db.execute(query)

        grouped: dict[date, list[TaskResponse]] = defaultdict(list)
        for task in result.scalars().all():
            grouped[task.due_date].append(TaskResponse.model_validate(task))
        return [CalendarDay(date=day, tasks=tasks) for day, tasks in sorted(grouped.items())]

    # ── Internal helpers ────────────────────────────────────────────

    @staticmethod
    async def _get_assigned(db: AsyncSession, task_id: uuid.UUID, employee: Employee) -> Task:
        task = await TaskService.get_task(db, task_id)
        if task.assigned_to != employee.id:
            raise ForbiddenException(detail="You can only update tasks assigned to you.")
        return task


def _jsonable(value):
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value
