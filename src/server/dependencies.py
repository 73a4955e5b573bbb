"""Dependency helpers shared across FastAPI routes."""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates

from src.accounts import SessionStore, UserRepository
from src.oollert.config import Config
from src.oollert.logger import setup_logger
from src.tasks import Task, TaskRepository, is_due_today, is_overdue, is_upcoming

from .schemas import TaskResponse
from .sessions import get_session

config = Config.load()
setup_logger(log_level=config.log_level, log_file=config.log_file)

SERVER_DIR = Path(__file__).parent
templates = Jinja2Templates(directory=str(SERVER_DIR / "templates"))


def _db_path() -> Optional[Path]:
    return Path(config.database_path) if config.database_path else None


@lru_cache(maxsize=1)
def get_task_repository() -> TaskRepository:
    """Singleton TaskRepository."""
    return TaskRepository(_db_path())


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """Singleton UserRepository."""
    return UserRepository(_db_path())


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """Singleton SessionStore."""
    return SessionStore(_db_path(), max_age_seconds=config.session.max_age_seconds)


def current_time() -> datetime:
    """The single "now" a request works with."""
    return config.now()


def serialize_task(task: Task, now: datetime) -> TaskResponse:
    """Convert a domain Task to its API/template shape, due dates in local time."""
    zone = now.tzinfo
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date.astimezone(zone) if task.due_date else None,
        labels=list(task.labels),
        created_at=task.created_at.astimezone(zone),
        updated_at=task.updated_at.astimezone(zone),
        completed_at=task.completed_at.astimezone(zone) if task.completed_at else None,
        is_overdue=is_overdue(task, now),
        is_due_today=is_due_today(task, now),
        is_upcoming=is_upcoming(task, now, config.upcoming_horizon_days),
    )


def render(request: Request, name: str, context: Optional[Dict[str, Any]] = None, status_code: int = 200):
    """Render a page with the logged-in user and pending flash messages."""
    session = get_session(request)
    flashes = session.pop_flashes()
    page_context: Dict[str, Any] = {
        "current_user": session.user,
        "success": flashes.get("success", []),
        "error": flashes.get("error", []),
    }
    page_context.update(context or {})
    return templates.TemplateResponse(request, name, page_context, status_code=status_code)
