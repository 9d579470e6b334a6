"""Core configuration, security and logging helpers."""

from .config import Settings, settings
from .logging import setup_logging
from .security import (
    ACCESS_TOKEN_TYPE,
    MAX_PASSWORD_BYTES,
    create_access_token,
    decode_token,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "Settings",
    "settings",
    "setup_logging",
    "ACCESS_TOKEN_TYPE",
    "MAX_PASSWORD_BYTES",
    "create_access_token",
    "decode_token",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
