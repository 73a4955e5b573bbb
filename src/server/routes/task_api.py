"""JSON task endpoints used by the board scripts."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from src.tasks import NotFoundError, TaskError, apply_mutation

from ..dependencies import current_time, get_task_repository, serialize_task
from ..schemas import TaskMoveRequest, TaskPriorityRequest, TaskResponse, TaskUpdateRequest
from ..sessions import SessionUser, require_api_user

logger = logging.getLogger(__name__)

CLEARABLE_FIELDS = ("due_date", "description", "labels")


def _server_error() -> JSONResponse:
    return JSONResponse(status_code=500, content={"ok": False, "message": "Server error"})


async def _mutate(task_id: int, owner_id: int, changes: Dict[str, Any]):
    """Load an owned task, apply lifecycle rules and persist it."""
    repo = get_task_repository()
    now = current_time()
    task = await asyncio.to_thread(repo.get_owned, task_id, owner_id)
    updated = apply_mutation(task, changes, now)
    saved = await asyncio.to_thread(repo.save, updated)
    return serialize_task(saved, now)


def register_task_api_routes(app: FastAPI) -> None:
    """Register JSON task endpoints. Errors map to ``{"ok": false, ...}``."""

    @app.get("/api/tasks", response_model=List[TaskResponse])
    async def list_tasks(user: SessionUser = Depends(require_api_user)) -> List[TaskResponse]:
        repo = get_task_repository()
        now = current_time()
        tasks = await asyncio.to_thread(repo.find_by_owner, user.id)
        return [serialize_task(task, now) for task in tasks]

    @app.put("/tasks/{task_id}")
    async def update_task(
        task_id: int, request: TaskUpdateRequest, user: SessionUser = Depends(require_api_user)
    ):
        """Partial edit from the task modal."""
        # null title/priority/status mean "leave as is"; null due_date clears it
        changes = {
            key: value
            for key, value in request.model_dump(exclude_unset=True).items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        try:
            task = await _mutate(task_id, user.id, changes)
        except TaskError:
            raise
        except Exception as exc:
            logger.exception("Error updating task %s: %s", task_id, exc)
            return _server_error()
        return {"ok": True, "task": task.model_dump(mode="json")}

    @app.post("/tasks/{task_id}/move")
    async def move_task(
        task_id: int, request: TaskMoveRequest, user: SessionUser = Depends(require_api_user)
    ):
        """Status change from drag-and-drop."""
        try:
            await _mutate(task_id, user.id, {"status": request.status})
        except TaskError:
            raise
        except Exception as exc:
            logger.exception("Error moving task %s: %s", task_id, exc)
            return _server_error()
        return {"ok": True}

    @app.post("/tasks/{task_id}/priority")
    async def change_priority(
        task_id: int, request: TaskPriorityRequest, user: SessionUser = Depends(require_api_user)
    ):
        try:
            task = await _mutate(task_id, user.id, {"priority": request.priority})
        except TaskError:
            raise
        except Exception as exc:
            logger.exception("Error updating priority of task %s: %s", task_id, exc)
            return _server_error()
        return {"ok": True, "task": task.model_dump(mode="json")}

    @app.delete("/tasks/{task_id}")
    async def delete_task(task_id: int, user: SessionUser = Depends(require_api_user)):
        repo = get_task_repository()
        try:
            task = await asyncio.to_thread(repo.find_one, task_id, user.id)
            if task is None:
                raise NotFoundError(task_id)
            await asyncio.to_thread(repo.delete_by_id, task_id)
        except TaskError:
            raise
        except Exception as exc:
            logger.exception("Error deleting task %s: %s", task_id, exc)
            return _server_error()
        return {"ok": True, "message": "Task deleted successfully"}
