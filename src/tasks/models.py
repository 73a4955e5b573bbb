from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class TaskStatus(str, Enum):
    """Board column a task sits in."""

    TODO = "todo"
    IN_PROGRESS = "inprogress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(slots=True)
class Task:
    """A single task owned by one user.

    ``id`` stays ``None`` until the repository has stored the task.
    ``completed_at`` is only populated while ``status`` is ``done``.
    """

    id: Optional[int]
    title: str
    owner: int
    created_at: datetime
    updated_at: datetime
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    labels: List[str] = field(default_factory=list)
    completed_at: Optional[datetime] = None

    @property
    def is_done(self) -> bool:
        return self.status is TaskStatus.DONE
