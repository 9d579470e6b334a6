"""Bearer-credential verification for protected routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from core import ACCESS_TOKEN_TYPE, decode_token
from services.errors import Unauthenticated

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[str], dict[str, Any]]


@dataclass(frozen=True)
class UserIdentity:
    user_id: str


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None

    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = value.strip()
    return token or None


class AuthGate:
    """Resolve a bearer credential to a UserIdentity.

    Every failure raises the same Unauthenticated error so callers cannot tell
    an expired token from a forged or malformed one.
    """

    def __init__(self, verify: TokenVerifier = decode_token) -> None:
        self._verify = verify

    def authenticate(self, credential: str | None) -> UserIdentity:
        if not credential:
            raise Unauthenticated()

        try:
            payload = self._verify(credential)
        except ValueError as exc:
            logger.debug("Rejected bearer credential", exc_info=exc)
            raise Unauthenticated() from exc

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise Unauthenticated()

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise Unauthenticated()
        return UserIdentity(user_id=subject.strip())
