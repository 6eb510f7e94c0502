"""
Request authenticator: every way a bearer token can be refused.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TokenCache
from app.core.security import TokenPurpose, create_token
from app.models.role import Role
from app.models.user import User
from tests.helpers import bearer, create_staff_member, login, register


@pytest.mark.asyncio
async def test_me_returns_authenticated_account(async_client: AsyncClient):
    data = await register(async_client)
    resp = await async_client.get("/auth/me", headers=bearer(data["access_token"]))
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    assert body["data"]["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(async_client: AsyncClient):
    resp = await async_client.get("/auth/me")
    assert resp.status_code == 401
    assert resp.headers.get("www-authenticate") == "Bearer"


@pytest.mark.asyncio
async def test_garbage_token_is_unauthorized(async_client: AsyncClient):
    resp = await async_client.get("/auth/me", headers=bearer("not.a.jwt"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_cannot_be_used_as_access(async_client: AsyncClient):
    data = await register(async_client)
    resp = await async_client.get("/auth/me", headers=bearer(data["refresh_token"]))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_expired_access_token_is_unauthorized(async_client: AsyncClient):
    data = await register(async_client)
    expired = create_token(
        TokenPurpose.ACCESS,
        {"sub": data["account"]["id"], "email": "alice@example.com", "role": "user", "verified": False},
        expires_delta=timedelta(seconds=-5),
    )
    resp = await async_client.get("/auth/me", headers=bearer(expired))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_claim_is_unauthorized(async_client: AsyncClient):
    data = await register(async_client)
    forged = create_token(TokenPurpose.ACCESS, {"sub": data["account"]["id"], "role": "superuser"})
    resp = await async_client.get("/auth/me", headers=bearer(forged))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_deleted_account_is_unauthorized(async_client: AsyncClient, db_session: AsyncSession):
    data = await register(async_client)
    await db_session.execute(delete(User))
    await db_session.commit()

    resp = await async_client.get("/auth/me", headers=bearer(data["access_token"]))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_blacklisted_token_is_unauthorized(async_client: AsyncClient, token_cache: TokenCache):
    data = await register(async_client)
    await token_cache.blacklist_token(data["access_token"], 60)

    resp = await async_client.get("/auth/me", headers=bearer(data["access_token"]))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Access has been revoked"


@pytest.mark.asyncio
async def test_staff_token_resolves_staff_account(async_client: AsyncClient, db_session: AsyncSession):
    await create_staff_member(db_session, "guide@tourbook.test", role=Role.GUIDE)
    session = await login(async_client, "guide@tourbook.test", "staffpass1", role="guide")

    resp = await async_client.get("/auth/me", headers=bearer(session["access_token"]))
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "guide"
    assert resp.json()["data"]["permissions"] == ["view_schedule", "update_profile"]


@pytest.mark.asyncio
async def test_deactivated_staff_token_is_unauthorized(
    async_client: AsyncClient, db_session: AsyncSession
):
    staff = await create_staff_member(db_session, "lead@tourbook.test", role=Role.LEAD_GUIDE)
    session = await login(async_client, "lead@tourbook.test", "staffpass1", role="lead_guide")

    staff.is_active = False
    await db_session.commit()

    resp = await async_client.get("/auth/me", headers=bearer(session["access_token"]))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Account is deactivated"
