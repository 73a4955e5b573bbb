"""Server-rendered task pages: board, smart view, analytics and focus mode."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlsplit

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import RedirectResponse

from src.tasks import (
    TaskPriority,
    TaskStatus,
    ValidationError,
    categorize,
    collect_labels,
    compute_analytics,
    new_task,
)

from ..dependencies import current_time, get_task_repository, render, serialize_task
from ..sessions import SessionUser, flash, require_user

logger = logging.getLogger(__name__)

STATUS_COLUMNS = [
    (TaskStatus.TODO.value, "To Do"),
    (TaskStatus.IN_PROGRESS.value, "In Progress"),
    (TaskStatus.DONE.value, "Done"),
]
PRIORITIES = [p.value for p in reversed(list(TaskPriority))]


def _back(request: Request) -> RedirectResponse:
    """Redirect to the referring page when it is on this site, else the board."""
    target = "/tasks"
    referer = urlsplit(request.headers.get("referer", ""))
    same_site = not referer.netloc or referer.netloc == request.url.netloc
    if same_site and referer.path.startswith("/") and not referer.path.startswith("//"):
        target = referer.path + (f"?{referer.query}" if referer.query else "")
    return RedirectResponse(target, status_code=303)


def register_task_routes(app: FastAPI) -> None:
    """Register the HTML task pages and the create form handler."""

    @app.get("/tasks")
    async def board(
        request: Request,
        label: Optional[str] = None,
        priority: Optional[str] = None,
        user: SessionUser = Depends(require_user),
    ):
        """Kanban board grouped by status, optionally filtered by label/priority."""
        repo = get_task_repository()
        now = current_time()
        tasks = await asyncio.to_thread(repo.find_by_owner, user.id)
        all_labels = collect_labels(tasks)
        if label:
            tasks = [t for t in tasks if label in t.labels]
        if priority:
            tasks = [t for t in tasks if t.priority.value == priority]

        columns = {value: [] for value, _ in STATUS_COLUMNS}
        for task in tasks:
            columns[task.status.value].append(serialize_task(task, now))
        return render(
            request,
            "tasks/index.html",
            {
                "columns": columns,
                "status_columns": STATUS_COLUMNS,
                "priorities": PRIORITIES,
                "all_labels": all_labels,
                "selected_label": label,
                "selected_priority": priority,
            },
        )

    @app.get("/tasks/smart")
    async def smart_view(request: Request, user: SessionUser = Depends(require_user)):
        """Open tasks triaged into overdue / today / upcoming / later / no due date."""
        repo = get_task_repository()
        now = current_time()
        tasks = await asyncio.to_thread(repo.find_by_owner, user.id, include_done=False)
        buckets = categorize(tasks, now)
        sections = {
            name: [serialize_task(task, now) for task in bucket]
            for name, bucket in buckets.as_dict().items()
        }
        return render(
            request,
            "tasks/smart.html",
            {
                "sections": sections,
                "priorities": PRIORITIES,
                "all_labels": collect_labels(tasks),
                "total_tasks": len(tasks),
                "today": now.date(),
            },
        )

    @app.get("/tasks/analytics")
    async def analytics(request: Request, user: SessionUser = Depends(require_user)):
        repo = get_task_repository()
        tasks = await asyncio.to_thread(repo.find_by_owner, user.id)
        stats = compute_analytics(tasks, current_time())
        return render(request, "tasks/analytics.html", {"stats": stats})

    @app.get("/tasks/focus")
    async def focus_mode(request: Request, user: SessionUser = Depends(require_user)):
        return render(request, "tasks/focus.html")

    @app.get("/focus")
    async def focus_alias(request: Request, user: SessionUser = Depends(require_user)):
        return render(request, "tasks/focus.html")

    @app.post("/tasks")
    async def create_task(
        request: Request,
        title: str = Form(""),
        description: str = Form(""),
        due_date: str = Form(""),
        priority: str = Form(""),
        labels: str = Form(""),
        user: SessionUser = Depends(require_user),
    ) -> RedirectResponse:
        """Create a task from the board/smart-view form."""
        repo = get_task_repository()
        now = current_time()
        try:
            task = new_task(
                title,
                user.id,
                now,
                description=description,
                due_date=due_date,
                priority=priority or TaskPriority.MEDIUM,
                labels=labels,
            )
            await asyncio.to_thread(repo.save, task)
        except ValidationError as exc:
            flash(request, "error", exc.message)
            return _back(request)
        except Exception as exc:
            logger.exception("Error creating task: %s", exc)
            flash(request, "error", "Could not create task")
            return _back(request)

        flash(request, "success", "Task created successfully")
        return _back(request)
