"""User accounts, password hashing and server-side sessions."""

from .models import User
from .passwords import hash_password, verify_password
from .repository import DuplicateUserError, SessionStore, UserRepository

__all__ = [
    "User",
    "UserRepository",
    "SessionStore",
    "DuplicateUserError",
    "hash_password",
    "verify_password",
]
