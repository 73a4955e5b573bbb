from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class User:
    """A registered account. Owns tasks through ``id``."""

    id: int
    username: str
    email: str
    password_hash: str
    created_at: str

    def session_payload(self) -> dict:
        """What gets stored in the session once logged in."""
        return {"id": self.id, "username": self.username}
