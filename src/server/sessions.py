"""Request-scoped session state, flash messages and login guards.

The session middleware in ``app.py`` loads a ``Session`` into
``request.state.session`` and writes it back after the response is built.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import Request

FLASH_KEY = "_flash"


@dataclass(frozen=True)
class SessionUser:
    id: int
    username: str


class LoginRequired(Exception):
    """Raised by the guards below; ``api`` picks a 401 over a redirect."""

    def __init__(self, api: bool = False):
        super().__init__("Please login first")
        self.api = api


class Session:
    """Mutable session data plus the bookkeeping the middleware needs."""

    def __init__(self, sid: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.sid = sid
        self.data: Dict[str, Any] = data or {}
        self.modified = False
        self.destroyed = False
        self.rotate = False

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.data.get("user")

    def login(self, payload: Dict[str, Any]) -> None:
        """Attach a user; a fresh sid is issued to avoid session fixation."""
        self.data["user"] = payload
        self.modified = True
        self.rotate = True

    def destroy(self) -> None:
        self.data = {}
        self.destroyed = True

    def flash(self, category: str, message: str) -> None:
        self.data.setdefault(FLASH_KEY, {}).setdefault(category, []).append(message)
        self.modified = True

    def pop_flashes(self) -> Dict[str, List[str]]:
        flashes = self.data.pop(FLASH_KEY, None)
        if flashes:
            self.modified = True
        return flashes or {}


def get_session(request: Request) -> Session:
    session = getattr(request.state, "session", None)
    if session is None:
        session = Session()
        request.state.session = session
    return session


def flash(request: Request, category: str, message: str) -> None:
    get_session(request).flash(category, message)


def _session_user(request: Request) -> Optional[SessionUser]:
    user = get_session(request).user
    if not user:
        return None
    return SessionUser(id=int(user["id"]), username=user["username"])


def require_user(request: Request) -> SessionUser:
    """Dependency for HTML pages: redirects to /login when logged out."""
    user = _session_user(request)
    if user is None:
        raise LoginRequired(api=False)
    return user


def require_api_user(request: Request) -> SessionUser:
    """Dependency for JSON endpoints: 401 when logged out."""
    user = _session_user(request)
    if user is None:
        raise LoginRequired(api=True)
    return user
