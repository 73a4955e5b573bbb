from datetime import datetime, timedelta, timezone

import pytest

from src.tasks import Task, TaskPriority, TaskStatus

TZ = timezone(timedelta(hours=2))


@pytest.fixture
def now() -> datetime:
    """Mid-afternoon in a fixed UTC+2 zone."""
    return datetime(2025, 3, 12, 15, 30, tzinfo=TZ)


@pytest.fixture
def make_task(now):
    """Factory for unsaved tasks owned by user 1."""
    counter = iter(range(1, 10_000))

    def _make(
        *,
        status=TaskStatus.TODO,
        due_date=None,
        priority=TaskPriority.MEDIUM,
        completed_at=None,
        labels=None,
        owner=1,
        title=None,
    ) -> Task:
        task_id = next(counter)
        return Task(
            id=task_id,
            title=title or f"Task {task_id}",
            owner=owner,
            created_at=now - timedelta(days=30),
            updated_at=now - timedelta(days=30),
            status=status,
            priority=priority,
            due_date=due_date,
            labels=list(labels or []),
            completed_at=completed_at,
        )

    return _make
