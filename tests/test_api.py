import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_root_lists_models(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"models": ["Account", "Payment", "User"]}


@pytest.mark.asyncio
async def test_get_record(client: AsyncClient, test_user):
    """Existing record returns 200 with its fields"""
    response = await client.get(f"/User/{test_user.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == test_user.id
    assert data["email"] == test_user.email


@pytest.mark.asyncio
async def test_get_missing_record(client: AsyncClient, test_users):
    """Missing record returns 404"""
    response = await client.get("/User/9999")
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_list_records(client: AsyncClient, test_users):
    response = await client.get("/User", params={"limit": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 3
    assert len(data["rows"]) == 2


@pytest.mark.asyncio
async def test_query_records(client: AsyncClient, test_user, test_accounts):
    payload = {
        "where": {"owner": {"id": test_user.id}},
        "include": {"$fields": ["name"]},
        "order": [["name", "ASC"]],
    }
    response = await client.post("/Account/query", json=payload)
    assert response.status_code == 200
    assert [account["name"] for account in response.json()] == [
        "My Bank",
        "Uzum Wallet",
    ]


@pytest.mark.asyncio
async def test_query_with_unknown_field(client: AsyncClient, test_users):
    """Untranslatable settings return 400"""
    response = await client.post("/User/query", json={"where": {"nickname": "x"}})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_record(client: AsyncClient, test_user):
    payload = {"name": "Cash", "provider": "manual", "owner_id": test_user.id}
    response = await client.post("/Account", json=payload)
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Cash"
    assert "id" in data


@pytest.mark.asyncio
async def test_update_record(client: AsyncClient, test_user):
    response = await client.patch(f"/User/{test_user.id}", json={"role": "admin"})
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["rows"][0]["role"] == "admin"


@pytest.mark.asyncio
async def test_update_missing_record(client: AsyncClient, test_users):
    response = await client.patch("/User/9999", json={"role": "admin"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_many_partial_match(client: AsyncClient, test_users):
    """Partial match across a known id set returns 422 and changes nothing"""
    payload = {"ids": [test_users[0].id, 9999], "data": {"role": "admin"}}
    response = await client.patch("/User", json=payload)
    assert response.status_code == 422

    # Verify nothing changed
    get_response = await client.get(f"/User/{test_users[0].id}")
    assert get_response.json()["role"] == "user"


@pytest.mark.asyncio
async def test_delete_record(client: AsyncClient, test_accounts):
    response = await client.delete(f"/Account/{test_accounts[0].id}")
    assert response.status_code == 200
    assert response.json()["count"] == 1

    # Verify it's gone
    get_response = await client.get(f"/Account/{test_accounts[0].id}")
    assert get_response.status_code == 404

