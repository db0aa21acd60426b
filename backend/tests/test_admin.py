"""
Testes das ações de administração: aprovação, estados, destaques,
varredura manual e gestão de roles.
"""
from datetime import datetime, timedelta, timezone

import pytest


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client, owner):
    response = await client.get("/admin/properties", headers=owner["headers"])
    assert response.status_code == 403

    response = await client.get("/admin/properties")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_pending_includes_legacy_status(client, admin, make_property, owner):
    legacy = await make_property(owner["id"], status="pending_approval", verified=False)
    pending = await make_property(owner["id"], status="pending", verified=False)
    await make_property(owner["id"])

    response = await client.get("/admin/properties", params={"status": "pending"}, headers=admin["headers"])
    assert response.status_code == 200
    ids = {p["id"] for p in response.json()}
    assert ids == {legacy["id"], pending["id"]}
    assert all(p["status"] == "pending" for p in response.json())


@pytest.mark.asyncio
async def test_approve_property(client, admin, make_property, owner):
    prop = await make_property(owner["id"], status="pending", verified=False, is_owner_direct=True)

    response = await client.post(f"/admin/properties/{prop['id']}/approve", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["verified"] is True

    # Já aprovado
    response = await client.post(f"/admin/properties/{prop['id']}/approve", headers=admin["headers"])
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_pause_and_resume(client, admin, make_property, owner):
    prop = await make_property(owner["id"])

    response = await client.post(
        f"/admin/properties/{prop['id']}/status", json={"status": "paused"}, headers=admin["headers"]
    )
    assert response.status_code == 200
    assert response.json()["status"] == "paused"

    response = await client.post(
        f"/admin/properties/{prop['id']}/status", json={"status": "expired"}, headers=admin["headers"]
    )
    assert response.status_code == 409
    assert "Transição inválida" in response.json()["detail"]

    response = await client.post(
        f"/admin/properties/{prop['id']}/status", json={"status": "active"}, headers=admin["headers"]
    )
    assert response.json()["status"] == "active"


@pytest.mark.asyncio
async def test_seventh_featured_is_rejected(client, admin, make_property, db_client):
    props = [await make_property(admin["id"]) for _ in range(7)]

    for prop in props[:6]:
        response = await client.put(
            f"/admin/properties/{prop['id']}/featured", json={"value": True}, headers=admin["headers"]
        )
        assert response.status_code == 200

    response = await client.put(
        f"/admin/properties/{props[6]['id']}/featured", json={"value": True}, headers=admin["headers"]
    )
    assert response.status_code == 409
    assert await db_client.properties.count_documents({"featured": True}) == 6

    # Desligar um abre vaga
    response = await client.put(
        f"/admin/properties/{props[0]['id']}/featured", json={"value": False}, headers=admin["headers"]
    )
    assert response.status_code == 200
    response = await client.put(
        f"/admin/properties/{props[6]['id']}/featured", json={"value": True}, headers=admin["headers"]
    )
    assert response.status_code == 200

    featured = await client.get("/properties/featured")
    assert len(featured.json()) == 6


@pytest.mark.asyncio
async def test_carousel_and_verified_flags(client, admin, make_property, owner):
    prop = await make_property(owner["id"], verified=False)

    response = await client.put(
        f"/admin/properties/{prop['id']}/show_in_carousel", json={"value": True}, headers=admin["headers"]
    )
    assert response.status_code == 200
    carousel = await client.get("/properties/carousel")
    assert [p["id"] for p in carousel.json()] == [prop["id"]]

    response = await client.put(
        f"/admin/properties/{prop['id']}/verified", json={"value": True}, headers=admin["headers"]
    )
    assert response.json()["verified"] is True

    response = await client.put(
        f"/admin/properties/{prop['id']}/owner_id", json={"value": True}, headers=admin["headers"]
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_manual_sweep(client, admin, make_property, owner):
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    prop = await make_property(owner["id"], is_owner_direct=True, expires_at=past)

    response = await client.post("/admin/sweep", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["expired_properties"] == 1

    detail = await client.get(f"/properties/{prop['id']}", headers=owner["headers"])
    assert detail.json()["status"] == "expired"


@pytest.mark.asyncio
async def test_reopening_expired_listing_gives_new_window(client, admin, make_property, owner, db_client):
    past = (datetime.now(timezone.utc) - timedelta(days=2)).isoformat()
    prop = await make_property(owner["id"], status="expired", is_owner_direct=True, expires_at=past)

    response = await client.post(
        f"/admin/properties/{prop['id']}/status", json={"status": "pending"}, headers=admin["headers"]
    )
    assert response.status_code == 200
    expires_at = datetime.fromisoformat(response.json()["expires_at"])
    assert expires_at > datetime.now(timezone.utc) + timedelta(days=29)

    await client.post(f"/admin/properties/{prop['id']}/approve", headers=admin["headers"])

    # A varredura seguinte não o volta a expirar
    response = await client.post("/admin/sweep", headers=admin["headers"])
    assert response.json()["expired_properties"] == 0
    stored = await db_client.properties.find_one({"id": prop["id"]})
    assert stored["status"] == "active"


@pytest.mark.asyncio
async def test_grant_and_revoke_role(client, admin, buyer):
    response = await client.post(f"/admin/users/{buyer['id']}/roles/owner", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["roles"] == ["buyer", "owner"]

    response = await client.delete(f"/admin/users/{buyer['id']}/roles/owner", headers=admin["headers"])
    assert response.json()["roles"] == ["buyer"]

    response = await client.post(f"/admin/users/{buyer['id']}/roles/superuser", headers=admin["headers"])
    assert response.status_code == 422
