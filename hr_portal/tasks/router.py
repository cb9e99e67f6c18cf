"""Task router — assignment and review for admins, progress for assignees.

Routes:
    /tasks                     — List, create (admin)
    /tasks/me                  — Tasks assigned to the signed-in employee
    /tasks/stats               — Counts by status
    /tasks/calendar            — Tasks grouped by due date
    /tasks/{id}                — Get, update (admin), delete (admin)
    /tasks/{id}/start          — Assignee starts or reworks
    /tasks/{id}/submit         — Assignee marks completed
    /tasks/{id}/accept         — Admin accepts
    /tasks/{id}/reject         — Admin rejects with a note
    /tasks/{id}/notes          — Discussion thread
    /tasks/{id}/attachments    — Upload a file
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.admins.models import Admin
from hr_portal.auth.dependencies import (
    get_current_account,
    get_current_admin,
    get_current_employee,
    require_admin,
)
from hr_portal.auth.models import UserAccount
from hr_portal.auth.service import get_profile
from hr_portal.common.constants import TaskPriority, TaskStatus, UserRole
from hr_portal.common.pagination import PaginationParams
from hr_portal.config import Settings
from hr_portal.database import get_db
from hr_portal.dependencies import get_settings
from hr_portal.employees.models import Employee
from hr_portal.employees.service import EmployeeService
from hr_portal.tasks.schemas import (
    CalendarDay,
    TaskCreate,
    TaskNoteCreate,
    TaskNoteResponse,
    TaskResponse,
    TaskReview,
    TaskStats,
    TaskSubmit,
    TaskUpdate,
)
from hr_portal.tasks.service import TaskService

router = APIRouter(prefix="", tags=["tasks"])


def _serialize_page(result) -> dict:
    return {
        "data": [TaskResponse.model_validate(t).model_dump(mode="json") for t in result.data],
        "meta": result.meta.model_dump(),
    }


async def _scope_for(db: AsyncSession, account: UserAccount) -> Optional[uuid.UUID]:
    """Employees only ever see their own tasks; admins see everything."""
    if account.role == UserRole.admin:
        return None
    employee = await EmployeeService.get_by_account(db, account.id)
    return employee.id


# ═════════════════════════════════════════════════════════════════════
# Collections
# ═════════════════════════════════════════════════════════════════════


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    body: TaskCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    account: UserAccount = Depends(require_admin),
    admin: Admin = Depends(get_current_admin),
):
    return await TaskService.create_task(db, settings, body, account, admin.name)


@router.get("")
async def list_tasks(
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
    pagination: PaginationParams = Depends(),
    assigned_to: Optional[uuid.UUID] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    due_date: Optional[date] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
):
    result = await TaskService.list_tasks(
        db,
        pagination,
        assigned_to=assigned_to,
        status=status,
        priority=priority,
        due_date=due_date,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    return _serialize_page(result)


@router.get("/me")
async def my_tasks(
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
    pagination: PaginationParams = Depends(),
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
):
    result = await TaskService.list_tasks(
        db, pagination, assigned_to=employee.id, status=status, priority=priority, search=search,
    )
    return _serialize_page(result)


@router.get("/stats", response_model=TaskStats)
async def task_stats(
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
    assigned_to: Optional[uuid.UUID] = Query(None),
):
    scope = await _scope_for(db, account)
    return await TaskService.get_stats(db, scope or assigned_to)


@router.get("/calendar", response_model=list[CalendarDay])
async def task_calendar(
    start: date = Query(...),
    end: date = Query(...),
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    scope = await _scope_for(db, account)
    return await TaskService.calendar(db, start, end, assigned_to=scope)


# ═════════════════════════════════════════════════════════════════════
# Single task
# ═════════════════════════════════════════════════════════════════════


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    task = await TaskService.get_task(db, task_id)
    await TaskService.ensure_can_view(db, task, account)
    return task


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    return await TaskService.update_task(db, task_id, body, actor_id=admin.id)


@router.delete("/{task_id}")
async def delete_task(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    await TaskService.delete_task(db, task_id, actor_id=admin.id)
    return {"success": True, "message": "Task deleted successfully"}


# ── Lifecycle ───────────────────────────────────────────────────────

@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    return await TaskService.start(db, task_id, employee)


@router.post("/{task_id}/submit", response_model=TaskResponse)
async def submit_task(
    task_id: uuid.UUID,
    body: TaskSubmit,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    employee: Employee = Depends(get_current_employee),
):
    return await TaskService.submit(db, settings, task_id, employee, body.notes)


@router.post("/{task_id}/accept", response_model=TaskResponse)
async def accept_task(
    task_id: uuid.UUID,
    body: TaskReview,
    db: AsyncSession = Depends(get_db),
    admin: UserAccount = Depends(require_admin),
):
    return await TaskService.accept(db, task_id, admin, body.note)


@router.post("/{task_id}/reject", response_model=TaskResponse)
async def reject_task(
    task_id: uuid.UUID,
    body: TaskReview,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: UserAccount = Depends(require_admin),
):
    return await TaskService.reject(db, settings, task_id, admin, body.note)


# ── Notes & attachments ─────────────────────────────────────────────

@router.get("/{task_id}/notes", response_model=list[TaskNoteResponse])
async def list_notes(
    task_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    task = await TaskService.get_task(db, task_id)
    await TaskService.ensure_can_view(db, task, account)
    return await TaskService.list_notes(db, task.id)


@router.post("/{task_id}/notes", response_model=TaskNoteResponse, status_code=201)
async def add_note(
    task_id: uuid.UUID,
    body: TaskNoteCreate,
    db: AsyncSession = Depends(get_db),
    account: UserAccount = Depends(get_current_account),
):
    profile = await get_profile(db, account)
    author_name = profile.name if profile is not None else account.email
    return await TaskService.add_note(db, task_id, account, author_name, body.content)


@router.post("/{task_id}/attachments", response_model=TaskResponse)
async def upload_attachment(
    task_id: uuid.UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    account: UserAccount = Depends(get_current_account),
):
    return await TaskService.upload_attachment(db, settings, task_id, account, file)
