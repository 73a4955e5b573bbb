"""Smart-view triage and analytics over one user's task snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List

from .lifecycle import day_start, is_overdue, localize
from .models import Task, TaskPriority, TaskStatus

UPCOMING_WINDOW_DAYS = 7
RECENT_COMPLETION_DAYS = 7


@dataclass
class TriageBuckets:
    """Disjoint smart-view buckets. ``done`` tasks land in none of them."""

    overdue: List[Task] = field(default_factory=list)
    today: List[Task] = field(default_factory=list)
    upcoming: List[Task] = field(default_factory=list)
    later: List[Task] = field(default_factory=list)
    no_due_date: List[Task] = field(default_factory=list)

    def as_dict(self) -> Dict[str, List[Task]]:
        return {
            "overdue": self.overdue,
            "today": self.today,
            "upcoming": self.upcoming,
            "later": self.later,
            "no_due_date": self.no_due_date,
        }

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.as_dict().values())


@dataclass
class TaskAnalytics:
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0
    by_priority: Dict[str, int] = field(
        default_factory=lambda: {p.value: 0 for p in reversed(list(TaskPriority))}
    )
    completion_rate: int = 0
    recent_completions: int = 0


def categorize(tasks: Iterable[Task], now: datetime) -> TriageBuckets:
    """Partition open tasks into overdue/today/upcoming/later/no-due-date.

    Day boundaries are taken in ``now``'s timezone. Tasks keep their input
    order inside each bucket. Owner filtering is the caller's job.
    """
    today = now.date()
    today_start = day_start(today, now)
    tomorrow_start = day_start(today + timedelta(days=1), now)
    window_end = day_start(today + timedelta(days=UPCOMING_WINDOW_DAYS), now)

    buckets = TriageBuckets()
    for task in tasks:
        if task.is_done:
            continue
        if task.due_date is None:
            buckets.no_due_date.append(task)
            continue
        due = localize(task.due_date, now)
        if due < today_start:
            buckets.overdue.append(task)
        elif due.date() == today:
            buckets.today.append(task)
        elif tomorrow_start <= due < window_end:
            buckets.upcoming.append(task)
        else:
            buckets.later.append(task)
    return buckets


def _percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    # half-up, not banker's rounding
    return int(part * 100 / whole + 0.5)


def compute_analytics(tasks: Iterable[Task], now: datetime) -> TaskAnalytics:
    """Aggregate counts for the analytics dashboard in a single pass."""
    stats = TaskAnalytics()
    recent_since = now - timedelta(days=RECENT_COMPLETION_DAYS)

    for task in tasks:
        stats.total += 1
        if task.status is TaskStatus.TODO:
            stats.todo += 1
        elif task.status is TaskStatus.IN_PROGRESS:
            stats.in_progress += 1
        else:
            stats.completed += 1

        if not task.is_done:
            stats.by_priority[task.priority.value] += 1
        if is_overdue(task, now):
            stats.overdue += 1
        if task.completed_at is not None:
            completed_at = localize(task.completed_at, now)
            if recent_since <= completed_at <= now:
                stats.recent_completions += 1

    stats.completion_rate = _percent(stats.completed, stats.total)
    return stats


def collect_labels(tasks: Iterable[Task]) -> List[str]:
    """Distinct labels across ``tasks`` in first-seen order."""
    seen: Dict[str, None] = {}
    for task in tasks:
        for label in task.labels:
            seen.setdefault(label, None)
    return list(seen)
