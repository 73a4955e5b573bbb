"""Task lifecycle rules.

Derived fields (``updated_at``, ``completed_at``) are maintained here no
matter how a mutation was triggered: a full edit, a status-only move or a
priority change. Every function takes the current time explicitly and never
reads the wall clock.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Union

from .exceptions import ValidationError
from .models import Task, TaskPriority, TaskStatus

MUTABLE_FIELDS = ("title", "description", "status", "priority", "due_date", "labels")
DEFAULT_HORIZON_DAYS = 7


def localize(value: datetime, now: datetime) -> datetime:
    """Express ``value`` in the same timezone (or naivety) as ``now``."""
    if now.tzinfo is None:
        if value.tzinfo is None:
            return value
        return value.astimezone().replace(tzinfo=None)
    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value.astimezone(now.tzinfo)


def day_start(day: date, now: datetime) -> datetime:
    """Midnight of ``day`` in ``now``'s timezone.

    ``now`` should carry a zone (``ZoneInfo``) rather than a fixed offset;
    with a zone the UTC offset is resolved for ``day`` itself.
    """
    return datetime.combine(day, time.min, tzinfo=now.tzinfo)


def coerce_status(value: Union[str, TaskStatus]) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value!r}", field="status") from None


def coerce_priority(value: Union[str, TaskPriority]) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        raise ValidationError(f"Invalid priority: {value!r}", field="priority") from None


def parse_labels(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize labels from a comma separated string or a list.

    Entries are trimmed and empty ones dropped. Order and duplicates are kept
    as given.
    """
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    return [label.strip() for label in items if label and label.strip()]


def parse_due_date(raw: Union[str, datetime, date, None], now: datetime) -> Optional[datetime]:
    """Parse a due date from a form or JSON payload.

    Blank means "no due date". A bare ``YYYY-MM-DD`` is midnight of that day
    and naive date-times are read in ``now``'s timezone.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return localize(raw, now)
    if isinstance(raw, date):
        return day_start(raw, now)
    if not isinstance(raw, str):
        raise ValidationError(f"Invalid due date: {raw!r}", field="due_date")
    text = raw.strip()
    if not text:
        return None
    try:
        if len(text) == 10:
            return day_start(date.fromisoformat(text), now)
        return localize(datetime.fromisoformat(text), now)
    except ValueError:
        raise ValidationError(f"Invalid due date: {raw!r}", field="due_date") from None


def _clean_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Title is required", field="title")
    return value.strip()


def new_task(
    title: str,
    owner: Optional[int],
    now: datetime,
    *,
    description: Optional[str] = "",
    status: Union[str, TaskStatus] = TaskStatus.TODO,
    due_date: Union[str, datetime, date, None] = None,
    priority: Union[str, TaskPriority] = TaskPriority.MEDIUM,
    labels: Union[str, Iterable[str], None] = (),
) -> Task:
    """Build an unsaved task attached to ``owner``."""
    if owner is None:
        raise ValidationError("Owner is required", field="owner")
    task_status = coerce_status(status)
    return Task(
        id=None,
        title=_clean_title(title),
        owner=owner,
        created_at=now,
        updated_at=now,
        description=description or "",
        status=task_status,
        priority=coerce_priority(priority),
        due_date=parse_due_date(due_date, now),
        labels=parse_labels(labels),
        completed_at=now if task_status is TaskStatus.DONE else None,
    )


def apply_mutation(task: Task, changes: Mapping[str, Any], now: datetime) -> Task:
    """Return a copy of ``task`` with ``changes`` applied.

    Only the fields in ``MUTABLE_FIELDS`` are honoured; anything else
    (``owner``, ``created_at``, ``id``...) is silently ignored. All values are
    validated before anything is applied, so a rejected mutation leaves the
    input untouched.

    Raises:
        ValidationError: invalid status, priority or due date, or a blank title.
    """
    updates: dict[str, Any] = {}
    for key in MUTABLE_FIELDS:
        if key not in changes:
            continue
        value = changes[key]
        if key == "title":
            updates[key] = _clean_title(value)
        elif key == "description":
            updates[key] = value or ""
        elif key == "status":
            updates[key] = coerce_status(value)
        elif key == "priority":
            updates[key] = coerce_priority(value)
        elif key == "labels":
            updates[key] = parse_labels(value)
        elif key == "due_date":
            updates[key] = parse_due_date(value, now)

    updated = replace(task, **updates)
    updated.labels = list(updated.labels)
    updated.updated_at = max(now, task.updated_at)

    if updated.status is TaskStatus.DONE:
        if updated.completed_at is None:
            updated.completed_at = now
    else:
        updated.completed_at = None
    return updated


def is_overdue(task: Task, now: datetime) -> bool:
    if task.due_date is None or task.is_done:
        return False
    return localize(task.due_date, now) < now


def is_due_today(task: Task, now: datetime) -> bool:
    """Calendar-date match in ``now``'s timezone; time of day is ignored."""
    if task.due_date is None or task.is_done:
        return False
    return localize(task.due_date, now).date() == now.date()


def is_upcoming(task: Task, now: datetime, horizon_days: int = DEFAULT_HORIZON_DAYS) -> bool:
    """Due strictly after ``now`` and within ``horizon_days`` (rounded up to whole days)."""
    if task.due_date is None or task.is_done:
        return False
    delta = localize(task.due_date, now) - now
    days = math.ceil(delta / timedelta(days=1))
    return 0 < days <= horizon_days
