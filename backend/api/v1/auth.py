"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from core import MAX_PASSWORD_BYTES, create_access_token, hash_password, needs_rehash
from db.errors import is_unique_violation
from models import User
from services.auth import normalize_email, registration_conflict_exists, resolve_login_user
from services.errors import InternalError, InvalidInput, Unauthenticated

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

REGISTRATION_CONFLICT_MESSAGE = "Username or email already exists"
USERNAME_MAX_LENGTH = 30


class RegisterRequest(BaseModel):
    username: str
    email: EmailStr
    password: str = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def _check_password_bytes(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) < 3:
            raise ValueError("Username must be at least 3 characters")
        if len(normalized) > USERNAME_MAX_LENGTH:
            raise ValueError(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
        if "@" in normalized:
            raise ValueError("Username cannot contain '@'")
        return normalized


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class AuthUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str


class AuthResponse(BaseModel):
    token: str
    user: AuthUserResponse


def _build_auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id),
        user=AuthUserResponse.model_validate(user),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    normalized_email = normalize_email(str(payload.email))
    if await registration_conflict_exists(
        session,
        username=payload.username,
        normalized_email=normalized_email,
    ):
        raise InvalidInput(REGISTRATION_CONFLICT_MESSAGE)

    user = User(
        username=payload.username,
        email=normalized_email,
        password_hash=hash_password(payload.password),
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise InvalidInput(REGISTRATION_CONFLICT_MESSAGE) from exc
        raise InternalError("Failed to register user") from exc
    await session.refresh(user)

    logger.info("User registered", extra={"user_id": user.id})
    return _build_auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    user = await resolve_login_user(
        session,
        email=payload.email,
        password=payload.password,
    )
    if user is None:
        raise Unauthenticated("Invalid credentials")

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        session.add(user)
        await session.commit()

    return _build_auth_response(user)
