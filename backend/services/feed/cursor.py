"""Opaque pagination cursors derived from the feed sort key."""

from __future__ import annotations

import base64
import binascii

from services.errors import InvalidCursor

# posts.id is a 32-bit INTEGER column.
MAX_SORT_KEY = 2**31 - 1
_MAX_SORT_KEY_DIGITS = len(str(MAX_SORT_KEY))


def parse_sort_key(raw: str) -> int | None:
    """Return the canonical positive decimal in ``raw`` or None."""
    if not raw.isascii() or not raw.isdigit() or raw.startswith("0"):
        return None
    if len(raw) > _MAX_SORT_KEY_DIGITS:
        return None
    value = int(raw)
    if value > MAX_SORT_KEY:
        return None
    return value


def encode_cursor(sort_key: int) -> str:
    if sort_key <= 0:
        raise ValueError("sort key must be positive")
    return base64.b64encode(str(sort_key).encode("ascii")).decode("ascii")


def decode_cursor(token: str) -> int:
    """Return the sort key carried by ``token`` or raise InvalidCursor."""
    try:
        raw = base64.b64decode(token.encode("ascii"), validate=True).decode("ascii")
    except (UnicodeError, binascii.Error) as exc:
        raise InvalidCursor() from exc

    # Only the canonical form produced by encode_cursor is accepted.
    sort_key = parse_sort_key(raw)
    if sort_key is None:
        raise InvalidCursor()
    return sort_key
