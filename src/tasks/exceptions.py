"""Task domain errors.

Both kinds are user-correctable and are surfaced to the caller as-is,
never retried.
"""

from __future__ import annotations

from typing import Optional


class TaskError(Exception):
    """Base class for task errors."""

    pass


class ValidationError(TaskError):
    """A create or update carried an invalid value."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(TaskError):
    """The task does not exist or belongs to someone else."""

    def __init__(self, task_id: object = None):
        super().__init__("Task not found")
        self.task_id = task_id
