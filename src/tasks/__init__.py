"""Task domain: model, lifecycle rules, smart-view triage and storage."""

from .exceptions import NotFoundError, TaskError, ValidationError
from .lifecycle import (
    apply_mutation,
    is_due_today,
    is_overdue,
    is_upcoming,
    new_task,
    parse_due_date,
    parse_labels,
)
from .models import Task, TaskPriority, TaskStatus
from .repository import TaskRepository
from .triage import TaskAnalytics, TriageBuckets, categorize, collect_labels, compute_analytics

__all__ = [
    "Task",
    "TaskStatus",
    "TaskPriority",
    "TaskError",
    "ValidationError",
    "NotFoundError",
    "TaskRepository",
    "apply_mutation",
    "new_task",
    "parse_labels",
    "parse_due_date",
    "is_overdue",
    "is_due_today",
    "is_upcoming",
    "categorize",
    "compute_analytics",
    "collect_labels",
    "TriageBuckets",
    "TaskAnalytics",
]
