"""Auth API tests: login, refresh, logout, the request gate, own profile.

Learn: The request gate is a small state table:
no token / bad token / dead account -> 401, wrong role -> 403, else the
handler runs. Each row gets a test against a real route.
"""

import time
import uuid
from datetime import timedelta

import jwt
import pytest
from sqlalchemy import func, select

from backoffice.auth.password import verify_password
from backoffice.config import settings
from backoffice.db.models import ActivityLog, User, utcnow

from conftest import DEFAULT_PASSWORD


async def _login(client, email, password=DEFAULT_PASSWORD):
    return await client.post("/api/auth/login", json={"email": email, "password": password})


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_returns_token_pair_and_user(client, staff):
    r = await _login(client, staff.email)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["token"] and body["refreshToken"]
    assert body["user"]["email"] == staff.email
    assert body["user"]["role"] == "staff"
    assert "password" not in body["user"]
    assert "passwordHash" not in body["user"]


@pytest.mark.asyncio
async def test_login_is_case_insensitive_on_email(client, make_user):
    user = await make_user(email="mixed.case@example.com")
    r = await _login(client, "Mixed.Case@Example.com")
    assert r.status_code == 200
    assert r.json()["user"]["id"] == str(user.id)


@pytest.mark.asyncio
async def test_login_wrong_password_is_generic(client, staff):
    r = await _login(client, staff.email, "wrong-password")
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_unknown_email_is_generic(client):
    r = await _login(client, "nobody@example.com")
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_inactive_account(client, make_user):
    user = await make_user(is_active=False)
    r = await _login(client, user.email)
    assert r.status_code == 401
    body = r.json()
    assert body == {"success": False, "error": "Account is deactivated"}
    assert "token" not in body


@pytest.mark.asyncio
async def test_login_validation_error_envelope(client):
    r = await client.post("/api/auth/login", json={"email": "not-an-email"})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert "email" in body["details"]
    assert "password" in body["details"]


@pytest.mark.asyncio
async def test_login_records_activity_and_last_login(client, staff, db_session):
    r = await _login(client, staff.email)
    assert r.status_code == 200

    entry = (await db_session.execute(
        select(ActivityLog).where(ActivityLog.user_id == staff.id, ActivityLog.action == "LOGIN")
    )).scalars().first()
    assert entry is not None
    assert entry.category == "auth"
    assert entry.severity == "low"

    refreshed = await db_session.get(User, staff.id)
    assert refreshed.last_login is not None


# ═══════════════════════════════════════════════════════════
# Refresh / logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_refresh_issues_new_access_token(client, staff):
    pair = (await _login(client, staff.email)).json()
    r = await client.post("/api/auth/refresh", json={"refreshToken": pair["refreshToken"]})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_refresh_rejects_garbage(client):
    r = await client.post("/api/auth/refresh", json={"refreshToken": "not.a.token"})
    assert r.status_code == 401
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_refresh_requires_token(client):
    r = await client.post("/api/auth/refresh", json={})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_refresh_rejected_after_deactivation(client, staff, session_factory):
    pair = (await _login(client, staff.email)).json()
    async with session_factory() as session:
        user = await session.get(User, staff.id)
        user.is_active = False
        await session.commit()

    r = await client.post("/api/auth/refresh", json={"refreshToken": pair["refreshToken"]})
    assert r.status_code == 401
    assert r.json()["error"] == "User not found or inactive"


@pytest.mark.asyncio
async def test_logout_without_token_succeeds(client):
    r = await client.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Logged out successfully"}


@pytest.mark.asyncio
async def test_logout_with_token_is_audited(client, staff, auth, db_session):
    r = await client.post("/api/auth/logout", headers=auth(staff))
    assert r.status_code == 200
    count = await db_session.scalar(
        select(func.count()).select_from(ActivityLog).where(
            ActivityLog.user_id == staff.id, ActivityLog.action == "LOGOUT"
        )
    )
    assert count == 1


# ═══════════════════════════════════════════════════════════
# Request gate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_gate_no_token(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"
    assert r.json() == {"success": False, "error": "Invalid or expired token"}


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["Token abc", "bearer abc", "Bearer", "Basic dXNlcjpwYXNz"])
async def test_gate_malformed_header(client, header):
    r = await client.get("/api/auth/me", headers={"Authorization": header})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_gate_forged_token(client, staff):
    now = int(time.time())
    forged = jwt.encode({
        "userId": str(staff.id), "email": staff.email, "role": "super_admin",
        "firstName": "X", "lastName": "Y", "iat": now, "exp": now + 3600,
    }, "attacker-secret", algorithm="HS256")
    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_gate_expired_token(client, staff):
    now = int(time.time())
    expired = jwt.encode({
        "userId": str(staff.id), "email": staff.email, "role": "staff",
        "firstName": "X", "lastName": "Y", "iat": now - 7200, "exp": now - 60,
    }, settings.jwt_secret, algorithm="HS256")
    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert r.json()["error"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_gate_deleted_principal(client, staff, auth, session_factory):
    headers = auth(staff)
    async with session_factory() as session:
        await session.delete(await session.get(User, staff.id))
        await session.commit()
    r = await client.get("/api/auth/me", headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_gate_inactive_principal(client, make_user, auth):
    user = await make_user(is_active=False)
    r = await client.get("/api/auth/me", headers=auth(user))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_gate_role_mismatch_is_403_without_mutation(client, staff, auth, db_session):
    before = await db_session.scalar(select(func.count()).select_from(User))
    r = await client.post(
        "/api/admin/users",
        headers=auth(staff),
        json={
            "firstName": "New", "lastName": "Person", "email": "new@example.com",
            "password": "Password123!", "role": "staff",
        },
    )
    assert r.status_code == 403
    assert r.json() == {"success": False, "error": "Insufficient permissions"}
    after = await db_session.scalar(select(func.count()).select_from(User))
    assert after == before


@pytest.mark.asyncio
async def test_gate_uses_current_role_not_token_role(client, admin, auth, session_factory):
    headers = auth(admin)  # token says "admin"
    async with session_factory() as session:
        user = await session.get(User, admin.id)
        user.role = "staff"
        await session.commit()
    r = await client.get("/api/admin/users", headers=headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_gate_sets_last_login_when_unset(client, staff, auth, db_session):
    assert staff.last_login is None
    r = await client.get("/api/auth/me", headers=auth(staff))
    assert r.status_code == 200
    refreshed = await db_session.get(User, staff.id)
    assert refreshed.last_login is not None


@pytest.mark.asyncio
async def test_gate_leaves_recent_last_login_alone(client, staff, auth, session_factory):
    recent = utcnow() - timedelta(minutes=10)
    async with session_factory() as session:
        user = await session.get(User, staff.id)
        user.last_login = recent
        await session.commit()

    r = await client.get("/api/auth/me", headers=auth(staff))
    assert r.status_code == 200

    async with session_factory() as session:
        user = await session.get(User, staff.id)
        assert user.last_login.replace(tzinfo=None) == recent.replace(tzinfo=None)


# ═══════════════════════════════════════════════════════════
# Own profile
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_profile(client, staff, auth):
    r = await client.get("/api/auth/profile", headers=auth(staff))
    assert r.status_code == 200
    assert r.json()["user"]["id"] == str(staff.id)


@pytest.mark.asyncio
async def test_update_profile_cannot_touch_role(client, staff, auth, db_session):
    r = await client.put(
        "/api/auth/profile",
        headers=auth(staff),
        json={"firstName": "Samuel", "lastName": "Staff", "department": "Sales", "role": "super_admin"},
    )
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["firstName"] == "Samuel"
    assert user["department"] == "Sales"
    assert user["role"] == "staff"


@pytest.mark.asyncio
async def test_change_password(client, staff, auth, db_session):
    r = await client.put(
        "/api/auth/profile/password",
        headers=auth(staff),
        json={
            "currentPassword": DEFAULT_PASSWORD,
            "newPassword": "BrandNewPass1",
            "confirmPassword": "BrandNewPass1",
        },
    )
    assert r.status_code == 200
    user = await db_session.get(User, staff.id)
    assert verify_password("BrandNewPass1", user.password_hash)
    assert (await _login(client, staff.email, "BrandNewPass1")).status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(client, staff, auth):
    r = await client.put(
        "/api/auth/profile/password",
        headers=auth(staff),
        json={
            "currentPassword": "nope",
            "newPassword": "BrandNewPass1",
            "confirmPassword": "BrandNewPass1",
        },
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Current password is incorrect"


@pytest.mark.asyncio
async def test_change_password_confirmation_mismatch(client, staff, auth):
    r = await client.put(
        "/api/auth/profile/password",
        headers=auth(staff),
        json={
            "currentPassword": DEFAULT_PASSWORD,
            "newPassword": "BrandNewPass1",
            "confirmPassword": "SomethingElse1",
        },
    )
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_unknown_user_id_in_valid_token(client, auth):
    from types import SimpleNamespace

    ghost = SimpleNamespace(
        id=uuid.uuid4(), email="ghost@example.com", role="super_admin",
        first_name="G", last_name="H",
    )
    r = await client.get("/api/auth/me", headers=auth(ghost))
    assert r.status_code == 401
