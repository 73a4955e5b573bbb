"""FastAPI application bootstrap."""

from __future__ import annotations

import asyncio
import logging
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from src.tasks import NotFoundError, ValidationError

from .dependencies import (
    SERVER_DIR,
    config,
    current_time,
    get_session_store,
    render,
)
from .routes import (
    register_auth_routes,
    register_health_routes,
    register_task_api_routes,
    register_task_routes,
)
from .sessions import LoginRequired, Session, flash

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("oollert.access")

SESSION_PURGE_INTERVAL = timedelta(hours=1)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


async def _purge_sessions(app: FastAPI, now: datetime) -> None:
    app.state.last_session_purge = now
    await asyncio.to_thread(get_session_store().purge_expired, now)


def _purge_due(app: FastAPI, now: datetime) -> bool:
    last = getattr(app.state, "last_session_purge", None)
    return last is None or now - last >= SESSION_PURGE_INTERVAL


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Drop sessions that expired while the server was down."""
    await _purge_sessions(app, current_time())
    yield


def _install_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        """Load the server-side session before the route and persist it after."""
        store = get_session_store()
        settings = config.session
        now = current_time()
        if _purge_due(app, now):
            await _purge_sessions(app, now)

        sid = request.cookies.get(settings.cookie_name)
        data = await asyncio.to_thread(store.load, sid, now) if sid else None
        session = Session(sid if data is not None else None, data)
        request.state.session = session

        response = await call_next(request)

        if session.destroyed or (session.modified and not session.data):
            if session.sid:
                await asyncio.to_thread(store.delete, session.sid)
            response.delete_cookie(settings.cookie_name)
            return response
        if not session.modified:
            return response

        if session.sid is None or session.rotate:
            if session.sid:
                await asyncio.to_thread(store.delete, session.sid)
            session.sid = await asyncio.to_thread(store.create, session.data, now)
        else:
            await asyncio.to_thread(store.save, session.sid, session.data, now)
        response.set_cookie(
            settings.cookie_name,
            session.sid,
            max_age=settings.max_age_seconds,
            httponly=True,
            samesite="lax",
            secure=settings.secure_cookie,
        )
        return response

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        access_logger.info(
            "%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LoginRequired)
    async def login_required(request: Request, exc: LoginRequired):
        if exc.api:
            return JSONResponse(status_code=401, content={"ok": False, "message": str(exc)})
        flash(request, "error", "Please login first")
        return RedirectResponse("/login", status_code=303)

    @app.exception_handler(NotFoundError)
    async def task_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"ok": False, "message": str(exc)})

    @app.exception_handler(ValidationError)
    async def task_invalid(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"ok": False, "message": exc.message, "field": exc.field},
        )

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        if _wants_html(request):
            stack = "".join(traceback.format_exception(exc)) if config.server.debug else None
            return render(request, "error.html", {"message": str(exc), "stack": stack}, status_code=500)
        return JSONResponse(status_code=500, content={"ok": False, "message": "Internal Server Error"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Oollert Tasks", version="1.0.0", lifespan=lifespan)

    _install_middleware(app)
    _install_exception_handlers(app)
    app.mount("/static", StaticFiles(directory=str(SERVER_DIR / "static")), name="static")

    register_health_routes(app)
    register_auth_routes(app)
    register_task_routes(app)
    register_task_api_routes(app)

    logger.info("Oollert Tasks app created")
    return app


app = create_app()
