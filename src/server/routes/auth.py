"""Login, signup and logout pages."""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Form, Request
from fastapi.responses import RedirectResponse

from src.accounts import DuplicateUserError, verify_password

from ..dependencies import get_user_repository, render
from ..sessions import flash, get_session

logger = logging.getLogger(__name__)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def register_auth_routes(app: FastAPI) -> None:
    """Register session authentication pages."""

    @app.get("/")
    async def index(request: Request) -> RedirectResponse:
        if get_session(request).user:
            return _redirect("/tasks/smart")
        return _redirect("/login")

    @app.get("/home")
    async def home(request: Request) -> RedirectResponse:
        """Logged-in landing page: the smart view."""
        if not get_session(request).user:
            return _redirect("/login")
        return _redirect("/tasks/smart")

    @app.get("/login")
    async def login_form(request: Request):
        if get_session(request).user:
            return _redirect("/home")
        return render(request, "auth/login.html")

    @app.post("/login")
    async def login(request: Request, username: str = Form(""), password: str = Form("")):
        users = get_user_repository()
        user = await asyncio.to_thread(users.find_by_username, username)
        if user is None:
            flash(request, "error", "User not found. Please sign up first.")
            return _redirect("/signup")
        ok = await asyncio.to_thread(verify_password, password, user.password_hash)
        if not ok:
            logger.info("Failed login for %s", user.username)
            flash(request, "error", "Invalid credentials")
            return _redirect("/login")

        session = get_session(request)
        session.login(user.session_payload())
        session.flash("success", "Logged in successfully")
        logger.info("User %s logged in", user.username)
        return _redirect("/home")

    @app.get("/signup")
    async def signup_form(request: Request):
        return render(request, "auth/signup.html")

    @app.post("/signup")
    async def signup(
        request: Request,
        username: str = Form(""),
        email: str = Form(""),
        password: str = Form(""),
    ):
        users = get_user_repository()
        if not username.strip() or not email.strip() or not password:
            flash(request, "error", "Username, email and password are required")
            return _redirect("/signup")
        if await asyncio.to_thread(users.exists, username.strip(), email.strip().lower()):
            flash(request, "error", "Username or email already taken")
            return _redirect("/signup")
        try:
            await asyncio.to_thread(users.create, username, email, password)
        except DuplicateUserError:
            flash(request, "error", "Username or email already taken")
            return _redirect("/signup")
        except Exception as exc:
            logger.exception("Failed to create account: %s", exc)
            flash(request, "error", "Error creating account")
            return _redirect("/signup")

        flash(request, "success", "Account created successfully. Please log in.")
        return _redirect("/login")

    @app.post("/logout")
    async def logout(request: Request) -> RedirectResponse:
        get_session(request).destroy()
        return _redirect("/login")
