"""Activity log tests — the recorder and the admin read API."""

import pytest
from sqlalchemy import text

from backoffice.db.models import User
from backoffice.services.activity_log import ActivityRecorder

from conftest import DEFAULT_PASSWORD


async def _seed(session_factory, actor_id, entries):
    async with session_factory() as session:
        recorder = ActivityRecorder(session)
        for action, category, severity in entries:
            await recorder.create_log(
                actor_id, action, category, f"{action} happened",
                category=category, severity=severity,
            )


@pytest.mark.asyncio
async def test_recorder_writes_entry(db_session, staff):
    entry = await ActivityRecorder(db_session).create_log(
        staff.id,
        "UPDATE_CLIENT",
        "client",
        "Updated client: Ada",
        category="client",
        resource_id="abc",
        metadata={"updatedFields": ["status"]},
        ip_address="10.1.1.1",
    )
    assert entry is not None
    assert entry.id is not None
    assert entry.severity == "low"
    assert entry.meta == {"updatedFields": ["status"]}


@pytest.fixture()
def broken_audit_table(engine):
    """Drop activity_logs so every audit write fails."""

    async def _drop():
        async with engine.begin() as conn:
            await conn.execute(text("DROP TABLE activity_logs"))

    return _drop


@pytest.mark.asyncio
async def test_recorder_failure_is_swallowed(db_session, staff, broken_audit_table):
    await broken_audit_table()
    entry = await ActivityRecorder(db_session).create_log(
        staff.id, "LOGIN", "auth", "logged in", category="auth"
    )
    assert entry is None
    # the caller's session is still usable
    assert (await db_session.get(User, staff.id)).email == staff.email


@pytest.mark.asyncio
async def test_failed_audit_does_not_fail_request(client, admin, staff, auth, broken_audit_table):
    await broken_audit_table()

    r = await client.post("/api/auth/login", json={"email": admin.email, "password": DEFAULT_PASSWORD})
    assert r.status_code == 200
    assert r.json()["user"]["email"] == admin.email

    r = await client.put(
        f"/api/admin/users/{staff.id}", headers=auth(admin), json={"department": "Sales"}
    )
    assert r.status_code == 200
    assert r.json()["data"]["department"] == "Sales"

    r = await client.put(
        "/api/settings",
        headers=auth(admin),
        json={"section": "general", "data": {"siteName": "Renamed"}},
    )
    assert r.status_code == 200
    assert r.json()["data"]["general"]["siteName"] == "Renamed"


@pytest.mark.asyncio
async def test_list_is_admin_only(client, staff, auth):
    assert (await client.get("/api/activity", headers=auth(staff))).status_code == 403
    assert (await client.get("/api/activity")).status_code == 401


@pytest.mark.asyncio
async def test_list_newest_first_with_metadata(client, admin, auth, session_factory):
    await _seed(session_factory, admin.id, [
        ("LOGIN", "auth", "low"),
        ("DELETE_USER", "user", "high"),
    ])
    r = await client.get("/api/activity", headers=auth(admin))
    assert r.status_code == 200
    data = r.json()["data"]
    assert [a["action"] for a in data["activities"]] == ["DELETE_USER", "LOGIN"]
    first = data["activities"][0]
    assert first["userId"] == str(admin.id)
    assert first["metadata"] == {}
    assert data["pagination"]["itemsPerPage"] == 20


@pytest.mark.asyncio
async def test_list_filters(client, admin, staff, auth, session_factory):
    await _seed(session_factory, admin.id, [
        ("LOGIN", "auth", "low"),
        ("DELETE_USER", "user", "high"),
        ("DELETE_CLIENT", "client", "high"),
    ])
    await _seed(session_factory, staff.id, [("LOGIN", "auth", "low")])
    headers = auth(admin)

    r = await client.get("/api/activity", headers=headers, params={"severity": "high"})
    assert {a["action"] for a in r.json()["data"]["activities"]} == {"DELETE_USER", "DELETE_CLIENT"}

    r = await client.get("/api/activity", headers=headers, params={"category": "auth"})
    assert r.json()["data"]["pagination"]["totalItems"] == 2

    r = await client.get("/api/activity", headers=headers, params={"userId": str(staff.id)})
    assert [a["action"] for a in r.json()["data"]["activities"]] == ["LOGIN"]

    r = await client.get("/api/activity", headers=headers, params={"action": "DELETE_CLIENT"})
    assert r.json()["data"]["pagination"]["totalItems"] == 1


@pytest.mark.asyncio
async def test_list_paginates(client, admin, auth, session_factory):
    await _seed(session_factory, admin.id, [("LOGIN", "auth", "low")] * 5)
    r = await client.get("/api/activity", headers=auth(admin), params={"page": 3, "limit": 2})
    data = r.json()["data"]
    assert len(data["activities"]) == 1
    assert data["pagination"]["totalPages"] == 3
    assert data["pagination"]["hasNextPage"] is False
    assert data["pagination"]["hasPrevPage"] is True
