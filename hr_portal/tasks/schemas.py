"""Task Pydantic v2 schemas."""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hr_portal.common.constants import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to: uuid.UUID
    priority: TaskPriority = TaskPriority.medium
    due_date: date
    reference_links: list[str] = Field(default_factory=list)
    is_recurring: bool = False
    delivery_method: Optional[str] = Field(default=None, max_length=100)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    reference_links: Optional[list[str]] = None
    is_recurring: Optional[bool] = None
    delivery_method: Optional[str] = Field(default=None, max_length=100)


class TaskSubmit(BaseModel):
    notes: Optional[str] = None


class TaskReview(BaseModel):
    note: Optional[str] = None


class TaskNoteCreate(BaseModel):
    content: str = Field(min_length=1)


class TaskNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    task_id: uuid.UUID
    author_id: Optional[uuid.UUID] = None
    author_name: Optional[str] = None
    content: str
    created_at: datetime


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    assigned_to: uuid.UUID
    employee_name: str
    assigned_by: Optional[uuid.UUID] = None
    assigner_name: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: date
    assigned_date: date
    completed_date: Optional[date] = None
    rejection_note: Optional[str] = None
    completion_notes: Optional[str] = None
    reference_links: list[str] = Field(default_factory=list)
    attachments: list[dict] = Field(default_factory=list)
    is_recurring: bool = False
    delivery_method: Optional[str] = None


class TaskStats(BaseModel):
    pending: int
    in_progress: int
    completed: int
    accepted: int
    rejected: int
    total: int


class CalendarDay(BaseModel):
    date: date
    tasks: list[TaskResponse]
