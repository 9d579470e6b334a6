"""Authentication domain services."""

from .gate import AuthGate, UserIdentity, extract_bearer_token
from .identity_resolution import (
    normalize_email,
    registration_conflict_exists,
    resolve_login_user,
)

__all__ = [
    "AuthGate",
    "UserIdentity",
    "extract_bearer_token",
    "normalize_email",
    "registration_conflict_exists",
    "resolve_login_user",
]
