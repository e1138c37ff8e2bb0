import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client: AsyncClient, auth_headers):
    response = await client.get("/api/admin/users", headers=auth_headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


@pytest.mark.asyncio
async def test_admin_routes_require_auth(client: AsyncClient):
    response = await client.get("/api/admin/stats")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_users(client: AsyncClient, test_user, admin_user, admin_auth_headers):
    response = await client.get("/api/admin/users", headers=admin_auth_headers)

    assert response.status_code == 200
    users = response.json()
    assert [user["id"] for user in users] == [admin_user.id, test_user.id]
    for user in users:
        assert "hashed_password" not in user
        assert "password" not in user


@pytest.mark.asyncio
async def test_stats(client: AsyncClient, sales_analysis, test_user, admin_user, admin_auth_headers):
    response = await client.get("/api/admin/stats", headers=admin_auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_users"] == 2
    assert data["total_analyses"] == 1
    assert data["user_stats"] == {"total_users": 2, "admin_users": 1, "regular_users": 1}

    recent = data["recent_analyses"]
    assert len(recent) == 1
    assert recent[0]["id"] == sales_analysis.id
    assert recent[0]["owner"] == {"id": test_user.id, "name": test_user.name, "email": test_user.email}


@pytest.mark.asyncio
async def test_stats_recent_is_limited_to_five(client: AsyncClient, storage, test_user, admin_auth_headers):
    for index in range(7):
        await storage.analyses.create(
            user_id=test_user.id,
            filename=f"{index}_book.xlsx",
            original_name=f"book{index}.xlsx",
            data=[{"a": index}],
            columns=["a"],
        )

    response = await client.get("/api/admin/stats", headers=admin_auth_headers)

    recent = response.json()["recent_analyses"]
    assert [item["original_name"] for item in recent] == [f"book{i}.xlsx" for i in (6, 5, 4, 3, 2)]


@pytest.mark.asyncio
async def test_update_role(client: AsyncClient, storage, test_user, admin_auth_headers):
    response = await client.patch(
        f"/api/admin/users/{test_user.id}/role",
        headers=admin_auth_headers,
        json={"role": "admin"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "User role updated successfully"
    assert data["user"]["role"] == "admin"
    assert (await storage.users.get(test_user.id)).is_admin


@pytest.mark.asyncio
async def test_update_role_invalid(client: AsyncClient, test_user, admin_auth_headers):
    response = await client.patch(
        f"/api/admin/users/{test_user.id}/role",
        headers=admin_auth_headers,
        json={"role": "superuser"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid role"


@pytest.mark.asyncio
async def test_update_role_unknown_user(client: AsyncClient, admin_auth_headers):
    response = await client.patch(
        "/api/admin/users/9999/role",
        headers=admin_auth_headers,
        json={"role": "user"},
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_delete_user_cascades_to_analyses(client: AsyncClient, storage, test_user, sales_analysis, admin_auth_headers):
    response = await client.delete(f"/api/admin/users/{test_user.id}", headers=admin_auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "User deleted successfully"
    assert await storage.users.get(test_user.id) is None
    assert await storage.analyses.get(sales_analysis.id) is None
    assert await storage.analyses.count() == 0


@pytest.mark.asyncio
async def test_delete_unknown_user(client: AsyncClient, admin_auth_headers):
    response = await client.delete("/api/admin/users/9999", headers=admin_auth_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client: AsyncClient, storage, admin_user, admin_auth_headers):
    response = await client.delete(f"/api/admin/users/{admin_user.id}", headers=admin_auth_headers)

    assert response.status_code == 400
    assert await storage.users.get(admin_user.id) is not None


@pytest.mark.asyncio
async def test_list_analyses_with_owner(client: AsyncClient, test_user, sales_analysis, admin_auth_headers):
    response = await client.get("/api/admin/analyses", headers=admin_auth_headers)

    assert response.status_code == 200
    analyses = response.json()
    assert len(analyses) == 1
    assert analyses[0]["id"] == sales_analysis.id
    assert analyses[0]["owner"]["email"] == test_user.email
    assert analyses[0]["row_count"] == 4
