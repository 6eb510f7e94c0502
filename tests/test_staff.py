"""
Staff provisioning: OTP-gated admin creation, staff CRUD and the
role / temporary-password guards on those routes.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TokenCache
from app.core.config import settings
from app.models.role import Role
from tests.helpers import RecordingMailer, bearer, create_staff_member, login, register


async def _admin_headers(client: AsyncClient, session: AsyncSession) -> dict:
    await create_staff_member(session, "root@tourbook.test", role=Role.ADMIN)
    data = await login(client, "root@tourbook.test", "staffpass1", role="admin")
    return bearer(data["access_token"])


async def _create_staff(client: AsyncClient, headers: dict, email: str, role: str = "guide") -> dict:
    resp = await client.post(
        "/staff/create",
        headers=headers,
        json={
            "email": email,
            "password": "temp-pass1",
            "first_name": "Gina",
            "last_name": "Guide",
            "role": role,
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ── Admin creation ──────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_otp_then_create_admin(
    async_client: AsyncClient,
    db_session: AsyncSession,
    token_cache: TokenCache,
    mailer: RecordingMailer,
):
    headers = await _admin_headers(async_client, db_session)

    resp = await async_client.post("/staff/otp", headers=headers, json={"email": "New.Admin@tourbook.test"})
    assert resp.status_code == 201
    assert mailer.subjects("new.admin@tourbook.test") == ["Your OTP Code"]

    entry = await token_cache.get_otp(settings.ADMIN_OTP_PREFIX, "new.admin@tourbook.test")
    assert entry is not None and len(entry["otp"]) == 5

    body = {
        "email": "new.admin@tourbook.test",
        "password": "admin-pass1",
        "first_name": "Nadia",
        "otp": entry["otp"],
    }
    created = await async_client.post("/staff/admin", headers=headers, json=body)
    assert created.status_code == 201
    admin = created.json()["data"]
    assert admin["role"] == "admin"
    assert admin["department"] == "Administration"
    assert admin["has_pwd_changed"] is False
    assert "create_staff" in admin["permissions"]

    replay = await async_client.post(
        "/staff/admin", headers=headers, json=body
    )
    assert replay.status_code == 403

    await login(async_client, "new.admin@tourbook.test", "admin-pass1", role="admin")


@pytest.mark.asyncio
async def test_create_admin_rejects_wrong_or_missing_otp(
    async_client: AsyncClient, db_session: AsyncSession, token_cache: TokenCache
):
    headers = await _admin_headers(async_client, db_session)
    body = {"email": "x@tourbook.test", "password": "pw", "first_name": "X", "otp": "00000"}

    missing = await async_client.post("/staff/admin", headers=headers, json=body)
    assert missing.status_code == 403
    assert missing.json()["detail"] == "Invalid or expired OTP"

    await token_cache.store_otp(settings.ADMIN_OTP_PREFIX, "x@tourbook.test", "12345", 60)
    wrong = await async_client.post("/staff/admin", headers=headers, json=body)
    assert wrong.status_code == 403
    assert wrong.json()["detail"] == "Invalid OTP"

    # A wrong guess does not burn the code.
    ok = await async_client.post("/staff/admin", headers=headers, json={**body, "otp": "12345"})
    assert ok.status_code == 201


# ── Staff CRUD ──────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_create_staff_assigns_role_permissions(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    staff = await _create_staff(async_client, headers, "lead@tourbook.test", role="lead_guide")

    assert staff["permissions"] == ["manage_guides", "view_reports", "schedule_tours"]
    assert staff["employee_id"].startswith("EMP-Gina.Guide-")
    assert staff["created_by"] is not None
    assert staff["has_pwd_changed"] is False

    dup = await async_client.post(
        "/staff/create",
        headers=headers,
        json={"email": "lead@tourbook.test", "password": "x", "first_name": "A", "last_name": "B"},
    )
    assert dup.status_code == 403


@pytest.mark.asyncio
async def test_create_staff_rejects_user_role(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    resp = await async_client.post(
        "/staff/create",
        headers=headers,
        json={"email": "u@tourbook.test", "password": "x", "first_name": "A", "last_name": "B", "role": "user"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_and_get_staff(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    staff = await _create_staff(async_client, headers, "g1@tourbook.test")

    listed = await async_client.get("/staff", headers=headers)
    assert listed.status_code == 200
    assert {s["email"] for s in listed.json()["data"]} == {"root@tourbook.test", "g1@tourbook.test"}

    one = await async_client.get(f"/staff/{staff['id']}", headers=headers)
    assert one.status_code == 200
    assert (await async_client.get("/staff/missing", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_role_change_rederives_permissions(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    staff = await _create_staff(async_client, headers, "g2@tourbook.test")

    resp = await async_client.patch(
        f"/staff/{staff['id']}", headers=headers, json={"role": "lead_guide", "department": "Tours"}
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["role"] == "lead_guide"
    assert data["department"] == "Tours"
    assert data["permissions"] == ["manage_guides", "view_reports", "schedule_tours"]


@pytest.mark.asyncio
async def test_temporary_password_blocks_update_until_changed(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    staff = await _create_staff(async_client, headers, "g3@tourbook.test")

    session = await login(async_client, "g3@tourbook.test", "temp-pass1", role="guide")
    blocked = await async_client.patch(
        f"/staff/{staff['id']}", headers=bearer(session["access_token"]), json={"department": "X"}
    )
    assert blocked.status_code == 403

    changed = await async_client.patch(
        "/auth/change-password",
        headers=bearer(session["access_token"]),
        json={"old_password": "temp-pass1", "new_password": "my-own-pass"},
    )
    assert changed.status_code == 200

    session = await login(async_client, "g3@tourbook.test", "my-own-pass", role="guide")
    allowed = await async_client.patch(
        f"/staff/{staff['id']}", headers=bearer(session["access_token"]), json={"department": "X"}
    )
    assert allowed.status_code == 200


@pytest.mark.asyncio
async def test_deactivated_staff_cannot_sign_in(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    staff = await _create_staff(async_client, headers, "g4@tourbook.test")

    resp = await async_client.patch(f"/staff/deactivate/{staff['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["is_active"] is False

    denied = await async_client.post(
        "/auth/login",
        json={"email_or_username": "g4@tourbook.test", "password": "temp-pass1", "role": "guide"},
    )
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Email/Username or Password Incorrect"


@pytest.mark.asyncio
async def test_delete_staff(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    staff = await _create_staff(async_client, headers, "g5@tourbook.test")

    resp = await async_client.delete(f"/staff/{staff['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "g5@tourbook.test"

    again = await async_client.delete(f"/staff/{staff['id']}", headers=headers)
    assert again.status_code == 404


# ── Access control ──────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_admin_routes_refuse_other_roles(async_client: AsyncClient, db_session: AsyncSession):
    await create_staff_member(db_session, "guide@tourbook.test", role=Role.GUIDE)
    guide = await login(async_client, "guide@tourbook.test", "staffpass1", role="guide")
    user = await register(async_client)

    for token in (guide["access_token"], user["access_token"]):
        resp = await async_client.post(
            "/staff/otp", headers=bearer(token), json={"email": "x@tourbook.test"}
        )
        assert resp.status_code == 403
        assert (await async_client.get("/staff", headers=bearer(token))).status_code == 403


@pytest.mark.asyncio
async def test_end_user_cannot_touch_staff_routes(async_client: AsyncClient):
    user = await register(async_client)
    resp = await async_client.delete("/staff/anything", headers=bearer(user["access_token"]))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_staff_login_requires_staff_role_hint(async_client: AsyncClient, db_session: AsyncSession):
    await create_staff_member(db_session, "root@tourbook.test")
    resp = await async_client.post(
        "/auth/login", json={"email_or_username": "root@tourbook.test", "password": "staffpass1"}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_staff_signs_in_with_email_as_given(async_client: AsyncClient, db_session: AsyncSession):
    headers = await _admin_headers(async_client, db_session)
    await _create_staff(async_client, headers, "Guide@Tour.io")

    as_given = await login(async_client, "Guide@Tour.io", "temp-pass1", role="guide")
    lowered = await login(async_client, "guide@tour.io", "temp-pass1", role="guide")
    assert as_given["account"]["id"] == lowered["account"]["id"]

    dup = await async_client.post(
        "/staff/create",
        headers=headers,
        json={"email": "GUIDE@tour.io", "password": "x", "first_name": "A", "last_name": "B"},
    )
    assert dup.status_code == 403
