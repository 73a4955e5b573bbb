"""Pydantic schemas for the FastAPI server."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from src.tasks import TaskPriority, TaskStatus


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str


class TaskResponse(BaseModel):
    """Serialized task with its derived due-date flags."""

    id: int
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    labels: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    is_overdue: bool = False
    is_due_today: bool = False
    is_upcoming: bool = False

    model_config = {"use_enum_values": True}


class TaskUpdateRequest(BaseModel):
    """Partial update. Omitted fields are left alone; ``due_date: null`` clears it.

    ``status`` and ``priority`` are plain strings so that invalid values reach
    the lifecycle rules and come back as a 400, not a schema error.
    """

    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    due_date: Optional[str] = Field(default=None, description="ISO date or date-time")
    priority: Optional[str] = None
    labels: Optional[Union[str, List[str]]] = Field(
        default=None, description="Comma separated string or list"
    )
    status: Optional[str] = None


class TaskMoveRequest(BaseModel):
    """Request body for the board drag-and-drop move."""

    status: str


class TaskPriorityRequest(BaseModel):
    """Request body for quick priority changes."""

    priority: str

