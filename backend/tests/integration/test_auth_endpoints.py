"""
Integration tests for authentication and the error envelope.

Tests the endpoints at /api/v1/auth and the 401 paths of authenticated routes.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.messages import AuthMessages
from flowspace.core.security import create_access_token
from flowspace.models.user import UserStatus
from flowspace.testing import DEFAULT_PASSWORD, create_user, get_auth_headers


@pytest.mark.integration
async def test_register_creates_pending_account(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "Fresh@Example.com", "password": "secret123", "name": "Fresh"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "fresh@example.com"
    assert data["status"] == "pending"
    assert data["role"] == "user"
    assert "hashed_password" not in data


@pytest.mark.integration
async def test_register_duplicate_email(client: AsyncClient, session: AsyncSession):
    await create_user(session, email="dupe@example.com")

    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "dupe@example.com", "password": "secret123"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": AuthMessages.EMAIL_REGISTERED}


@pytest.mark.integration
async def test_register_validation_error_shape(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={"password": "secret123"})

    assert response.status_code == 400
    assert set(response.json()) == {"error"}


@pytest.mark.integration
async def test_login_issues_token(client: AsyncClient, session: AsyncSession):
    await create_user(session, email="login@example.com")

    response = await client.post(
        "/api/v1/auth/token",
        data={"username": "login@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"

    me = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "login@example.com"


@pytest.mark.integration
async def test_login_wrong_password(client: AsyncClient, session: AsyncSession):
    await create_user(session, email="login@example.com")

    response = await client.post(
        "/api/v1/auth/token",
        data={"username": "login@example.com", "password": "nope-nope"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": AuthMessages.INVALID_CREDENTIALS}


@pytest.mark.integration
async def test_login_pending_account(client: AsyncClient, session: AsyncSession):
    await create_user(session, email="pending@example.com", status=UserStatus.pending)

    response = await client.post(
        "/api/v1/auth/token",
        data={"username": "pending@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 400
    assert response.json() == {"error": AuthMessages.ACCOUNT_NOT_ACTIVE}


@pytest.mark.integration
async def test_missing_token_is_401(client: AsyncClient):
    response = await client.get("/api/v1/users/me")

    assert response.status_code == 401
    assert response.json() == {"error": AuthMessages.UNAUTHORIZED}


@pytest.mark.integration
async def test_garbage_token_is_401(client: AsyncClient):
    response = await client.get("/api/v1/boards/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.integration
async def test_expired_token_is_401(client: AsyncClient, session: AsyncSession):
    user = await create_user(session)
    token = create_access_token(subject=str(user.id), expires_delta=timedelta(minutes=-1))

    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.integration
async def test_token_for_deleted_user_is_401(client: AsyncClient, session: AsyncSession):
    user = await create_user(session)
    headers = get_auth_headers(user)
    await session.delete(user)
    await session.commit()

    response = await client.get("/api/v1/users/me", headers=headers)

    assert response.status_code == 401


@pytest.mark.integration
async def test_deactivated_user_loses_access_immediately(client: AsyncClient, session: AsyncSession):
    user = await create_user(session)
    headers = get_auth_headers(user)
    user.status = UserStatus.inactive
    session.add(user)
    await session.commit()

    response = await client.get("/api/v1/users/me", headers=headers)

    assert response.status_code == 401
