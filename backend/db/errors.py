"""Database error helpers."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

_SQLITE_UNIQUE_ERROR_NAMES = frozenset(
    {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}
)


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError is a unique or primary-key conflict."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == "23505":
        return True
    if getattr(original, "sqlite_errorname", None) in _SQLITE_UNIQUE_ERROR_NAMES:
        return True
    message = str(original or error).lower()
    return "duplicate key" in message or "unique constraint" in message


__all__ = ["is_unique_violation"]
