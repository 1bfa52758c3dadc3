"""Session storage."""

from app.store.memory import NotFoundError, SessionStore

__all__ = ["NotFoundError", "SessionStore"]
