import pytest

from services.credits import create_user
from services.session_token import create_session_token


async def _account(session_maker, email, role="user"):
    async with session_maker() as db:
        user = await create_user(db, email=email, password_hash="hash", role=role)
    token = create_session_token(str(user.id), email=user.email)["token"]
    return str(user.id), {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_admin_routes_require_admin_role(api_client, session_maker):
    _, member = await _account(session_maker, "member@example.com")

    assert (await api_client.get("/api/admin/analytics")).status_code == 401
    response = await api_client.get("/api/admin/analytics", headers=member)
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


@pytest.mark.asyncio
async def test_role_is_read_from_the_account_on_every_request(api_client, session_maker):
    _, admin = await _account(session_maker, "root@example.com", role="admin")
    member_id, member = await _account(session_maker, "member@example.com")

    users = await api_client.get("/api/admin/users", headers=admin)
    assert users.status_code == 200
    assert users.json()["total"] == 2

    promoted = await api_client.patch(f"/api/admin/users/{member_id}/role", json={"role": "admin"}, headers=admin)
    assert promoted.json() == {"id": member_id, "role": "admin"}
    assert (await api_client.get("/api/admin/analytics", headers=member)).status_code == 200

    await api_client.patch(f"/api/admin/users/{member_id}/role", json={"role": "user"}, headers=admin)
    assert (await api_client.get("/api/admin/analytics", headers=member)).status_code == 403

    invalid = await api_client.patch(f"/api/admin/users/{member_id}/role", json={"role": "owner"}, headers=admin)
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_deleted_account_token_stops_working(api_client, session_maker):
    _, admin = await _account(session_maker, "root@example.com", role="admin")
    member_id, member = await _account(session_maker, "leaver@example.com")
    assert (await api_client.get("/api/credits/balance", headers=member)).status_code == 200

    deleted = await api_client.delete(f"/api/admin/users/{member_id}", headers=admin)
    assert deleted.json() == {"ok": True}

    response = await api_client.get("/api/credits/balance", headers=member)
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_admin_subscription_update_and_analytics(api_client, session_maker):
    _, admin = await _account(session_maker, "root@example.com", role="admin")
    member_id, _ = await _account(session_maker, "subscriber@example.com")

    updated = await api_client.patch(
        f"/api/admin/users/{member_id}/subscription",
        json={"subscription_status": "pro"},
        headers=admin,
    )
    assert updated.json() == {"id": member_id, "subscription_status": "pro"}

    stats = (await api_client.get("/api/admin/analytics", headers=admin)).json()
    assert stats["total_users"] == 2
    assert stats["pro_users"] == 1
