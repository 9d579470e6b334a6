"""Tests for registration, login and bearer-token verification."""

from datetime import timedelta
from typing import Any, cast
from uuid import uuid4

import jwt
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import (
    create_access_token,
    decode_token,
    hash_password,
    needs_rehash,
    settings,
    verify_password,
)
from models import User
from services.auth import AuthGate, UserIdentity, extract_bearer_token
from services.errors import Unauthenticated

API_PREFIX = "/api/v1"


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def make_user_payload(prefix: str) -> dict[str, str]:
    suffix = uuid4().hex[:8]
    return {
        "username": f"{prefix}_{suffix}",
        "email": f"{prefix}_{suffix}@example.com",
        "password": "Sup3rSecret!",
    }


@pytest.mark.asyncio
async def test_register_creates_user_and_returns_token(
    async_client: AsyncClient,
    db_session: AsyncSession,
):
    payload = make_user_payload("alice")
    response = await async_client.post(f"{API_PREFIX}/auth/register", json=payload)

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["username"] == payload["username"]
    assert body["user"]["email"] == payload["email"]
    assert decode_token(body["token"])["sub"] == body["user"]["id"]

    result = await db_session.execute(
        select(User).where(_eq(User.username, payload["username"]))
    )
    user = result.scalar_one()
    assert user.password_hash != payload["password"]


@pytest.mark.asyncio
async def test_register_normalizes_email_and_username(async_client: AsyncClient):
    payload = make_user_payload("bob")
    payload["email"] = "Mixed.Case+alias@Example.COM"
    payload["username"] = f"  {payload['username']}  "
    response = await async_client.post(f"{API_PREFIX}/auth/register", json=payload)

    assert response.status_code == 201
    assert response.json()["user"]["email"] == "mixed.case+alias@example.com"
    assert response.json()["user"]["username"] == payload["username"].strip()


@pytest.mark.asyncio
async def test_register_rejects_duplicate_username_or_email(async_client: AsyncClient):
    payload = make_user_payload("carol")
    first = await async_client.post(f"{API_PREFIX}/auth/register", json=payload)
    assert first.status_code == 201

    same_email = make_user_payload("carol")
    same_email["email"] = payload["email"].upper()
    duplicate = await async_client.post(f"{API_PREFIX}/auth/register", json=same_email)
    assert duplicate.status_code == 400
    assert duplicate.json() == {"message": "Username or email already exists"}

    same_username = make_user_payload("carol")
    same_username["username"] = payload["username"]
    duplicate = await async_client.post(f"{API_PREFIX}/auth/register", json=same_username)
    assert duplicate.status_code == 400


@pytest.mark.asyncio
async def test_register_requires_all_fields(async_client: AsyncClient):
    payload = make_user_payload("dave")
    del payload["password"]
    response = await async_client.post(f"{API_PREFIX}/auth/register", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid request"
    assert any(error["field"].endswith("password") for error in body["errors"])


@pytest.mark.asyncio
async def test_login_returns_token_for_valid_credentials(
    async_client: AsyncClient,
    create_account,
):
    account = await create_account("erin")
    response = await async_client.post(
        f"{API_PREFIX}/auth/login",
        json={"email": account.email.upper(), "password": account.password},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"] == {
        "id": account.user_id,
        "username": account.username,
        "email": account.email,
    }
    assert decode_token(body["token"])["sub"] == account.user_id


@pytest.mark.asyncio
async def test_login_rejects_wrong_password_and_unknown_email(
    async_client: AsyncClient,
    create_account,
):
    account = await create_account("frank")

    wrong_password = await async_client.post(
        f"{API_PREFIX}/auth/login",
        json={"email": account.email, "password": "not-the-password"},
    )
    unknown_email = await async_client.post(
        f"{API_PREFIX}/auth/login",
        json={"email": "nobody@example.com", "password": account.password},
    )

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"message": "Invalid credentials"}


@pytest.mark.asyncio
async def test_login_requires_email_and_password(async_client: AsyncClient):
    response = await async_client.post(f"{API_PREFIX}/auth/login", json={"email": "a@b.co"})
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "authorization",
    [
        None,
        "",
        "Bearer",
        "Basic dXNlcjpwYXNz",
        "Bearer not-a-jwt",
    ],
)
async def test_protected_routes_reject_bad_credentials_uniformly(
    async_client: AsyncClient,
    authorization: str | None,
):
    headers = {} if authorization is None else {"Authorization": authorization}
    response = await async_client.get(f"{API_PREFIX}/posts", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required"}
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_protected_routes_reject_expired_token(async_client: AsyncClient, create_account):
    account = await create_account("gina")
    expired = create_access_token(account.user_id, expires_delta=timedelta(seconds=-5))

    response = await async_client.get(
        f"{API_PREFIX}/posts",
        headers={"Authorization": f"Bearer {expired}"},
    )

    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required"}


def test_extract_bearer_token_accepts_case_insensitive_scheme() -> None:
    assert extract_bearer_token("bearer abc.def") == "abc.def"
    assert extract_bearer_token("Bearer   abc.def  ") == "abc.def"
    assert extract_bearer_token("Token abc") is None
    assert extract_bearer_token(None) is None


def test_auth_gate_resolves_identity_from_valid_token() -> None:
    gate = AuthGate()
    token = create_access_token("user-123")

    assert gate.authenticate(token) == UserIdentity(user_id="user-123")


def _forge(payload: dict[str, Any], secret: str | None = None) -> str:
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.mark.parametrize(
    "credential_factory",
    [
        lambda: None,
        lambda: "",
        lambda: "garbage",
        lambda: create_access_token("user-1", expires_delta=timedelta(seconds=-1)),
        lambda: _forge({"sub": "user-1", "type": "access", "iat": 0, "exp": 4_102_444_800}, "other-secret"),
        lambda: _forge({"sub": "user-1", "type": "refresh", "iat": 0, "exp": 4_102_444_800}),
        lambda: _forge({"sub": "   ", "type": "access", "iat": 0, "exp": 4_102_444_800}),
    ],
    ids=["missing", "empty", "malformed", "expired", "bad-signature", "wrong-type", "blank-subject"],
)
def test_auth_gate_rejects_every_failure_with_same_error(credential_factory) -> None:
    gate = AuthGate()

    with pytest.raises(Unauthenticated) as exc_info:
        gate.authenticate(credential_factory())

    assert exc_info.value.message == "Authentication required"


def test_auth_gate_delegates_to_injected_verifier() -> None:
    calls: list[str] = []

    def fake_verify(token: str) -> dict[str, Any]:
        calls.append(token)
        return {"sub": "delegated-user", "type": "access"}

    gate = AuthGate(verify=fake_verify)

    assert gate.authenticate("opaque") == UserIdentity(user_id="delegated-user")
    assert calls == ["opaque"]


def test_password_hashing_round_trip_and_rehash_detection(monkeypatch: pytest.MonkeyPatch) -> None:
    password_hash = hash_password("Sup3rSecret!")

    assert verify_password("Sup3rSecret!", password_hash)
    assert not verify_password("wrong", password_hash)
    assert not verify_password("Sup3rSecret!", "not-a-bcrypt-hash")
    assert not needs_rehash(password_hash)

    monkeypatch.setattr(settings, "password_hash_rounds", settings.password_hash_rounds + 1)
    assert needs_rehash(password_hash)


@pytest.mark.asyncio
async def test_register_rejects_password_over_byte_limit(async_client: AsyncClient):
    payload = make_user_payload("long")
    payload["password"] = "é" * 40

    response = await async_client.post(f"{API_PREFIX}/auth/register", json=payload)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_rehashes_password_with_outdated_cost(
    async_client: AsyncClient,
    create_account,
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
):
    account = await create_account("rehash")
    monkeypatch.setattr(settings, "password_hash_rounds", settings.password_hash_rounds + 1)

    response = await async_client.post(
        f"{API_PREFIX}/auth/login",
        json={"email": account.email, "password": account.password},
    )
    assert response.status_code == 200

    result = await db_session.execute(select(User).where(_eq(User.id, account.user_id)))
    user = result.scalar_one()
    assert not needs_rehash(user.password_hash)
    assert verify_password(account.password, user.password_hash)


@pytest.mark.asyncio
async def test_register_applies_username_bounds_after_trimming(async_client: AsyncClient):
    padded = make_user_payload("pad")
    padded["username"] = f"  {'u' * 30}  "
    accepted = await async_client.post(f"{API_PREFIX}/auth/register", json=padded)

    assert accepted.status_code == 201
    assert accepted.json()["user"]["username"] == "u" * 30

    too_long = make_user_payload("long")
    too_long["username"] = "v" * 31
    rejected = await async_client.post(f"{API_PREFIX}/auth/register", json=too_long)

    assert rejected.status_code == 400
