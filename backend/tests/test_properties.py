"""
Testes dos anúncios: criação por perfil, permissões, leitura pública,
renovação, remoção e fotos.
"""
from datetime import datetime, timedelta, timezone

import pytest


def _payload(city, casa_type, **overrides):
    data = {
        "type_id": casa_type["id"],
        "finalidade": "buy",
        "address": "Rua das Flores, 120",
        "neighborhood": "Jardins",
        "city_id": city["id"],
        "price": 650000,
        "area": 95.5,
        "bedrooms": 2,
        "bathrooms": 1,
        "parking_spaces": 1,
        "description": "Apartamento reformado",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_owner_creates_pending_owner_direct(client, owner, city, casa_type):
    response = await client.post("/properties", json=_payload(city, casa_type), headers=owner["headers"])
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "pending"
    assert data["verified"] is False
    assert data["is_owner_direct"] is True
    assert data["featured"] is False
    assert data["property_code"] == "CA-0001"

    expires_at = datetime.fromisoformat(data["expires_at"])
    expected = datetime.now(timezone.utc) + timedelta(days=30)
    assert abs((expires_at - expected).total_seconds()) < 60


@pytest.mark.asyncio
async def test_admin_creates_active_verified(client, admin, city, casa_type):
    response = await client.post("/properties", json=_payload(city, casa_type), headers=admin["headers"])
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "active"
    assert data["verified"] is True
    assert data["is_owner_direct"] is False
    assert data["expires_at"] is None


@pytest.mark.asyncio
async def test_property_codes_are_sequential(client, admin, city, casa_type):
    codes = []
    for _ in range(3):
        response = await client.post("/properties", json=_payload(city, casa_type), headers=admin["headers"])
        codes.append(response.json()["property_code"])
    assert codes == ["CA-0001", "CA-0002", "CA-0003"]


@pytest.mark.asyncio
async def test_buyer_cannot_create(client, buyer, city, casa_type, db_client):
    response = await client.post("/properties", json=_payload(city, casa_type), headers=buyer["headers"])
    assert response.status_code == 403
    assert response.json()["detail"] == "Acesso negado"
    assert await db_client.properties.count_documents({}) == 0


@pytest.mark.asyncio
async def test_anonymous_cannot_create(client, city, casa_type, db_client):
    response = await client.post("/properties", json=_payload(city, casa_type))
    assert response.status_code == 401
    assert await db_client.properties.count_documents({}) == 0


@pytest.mark.asyncio
async def test_create_with_unknown_city(client, owner, casa_type, city):
    response = await client.post(
        "/properties", json=_payload(city, casa_type, city_id="nao-existe"), headers=owner["headers"]
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_public_list_only_active(client, make_property, owner):
    active = await make_property(owner["id"])
    await make_property(owner["id"], status="pending")
    await make_property(owner["id"], status="expired")

    response = await client.get("/properties")
    assert response.status_code == 200
    items = response.json()
    assert [p["id"] for p in items] == [active["id"]]
    assert items[0]["city_name"] == "São Paulo"
    assert items[0]["city_state"] == "SP"


@pytest.mark.asyncio
async def test_public_list_filters(client, make_property, owner):
    cheap = await make_property(owner["id"], price=300000.0)
    await make_property(owner["id"], price=900000.0)

    response = await client.get("/properties", params={"max_price": 500000})
    assert [p["id"] for p in response.json()] == [cheap["id"]]

    response = await client.get("/properties", params={"search": cheap["property_code"]})
    assert [p["id"] for p in response.json()] == [cheap["id"]]


@pytest.mark.asyncio
async def test_pending_detail_hidden_from_public(client, make_property, owner):
    prop = await make_property(owner["id"], status="pending")

    assert (await client.get(f"/properties/{prop['id']}")).status_code == 404

    response = await client.get(f"/properties/{prop['id']}", headers=owner["headers"])
    assert response.status_code == 200
    assert response.json()["city"]["name"] == "São Paulo"


@pytest.mark.asyncio
async def test_non_owner_cannot_edit(client, make_property, owner, other_owner, db_client):
    prop = await make_property(owner["id"])
    response = await client.patch(
        f"/properties/{prop['id']}", json={"price": 1}, headers=other_owner["headers"]
    )
    assert response.status_code == 403
    stored = await db_client.properties.find_one({"id": prop["id"]})
    assert stored["price"] == 850000.0


@pytest.mark.asyncio
async def test_owner_edits_own_property(client, make_property, owner):
    prop = await make_property(owner["id"])
    response = await client.patch(
        f"/properties/{prop['id']}", json={"price": 799000, "bedrooms": 4}, headers=owner["headers"]
    )
    assert response.status_code == 200
    assert response.json()["price"] == 799000
    assert response.json()["bedrooms"] == 4


@pytest.mark.asyncio
async def test_delete_keeps_leads(client, make_property, owner, db_client):
    prop = await make_property(owner["id"])
    await db_client.leads.insert_one({"id": "lead-1", "property_id": prop["id"]})
    await db_client.property_plans.insert_one({"id": "pp-1", "property_id": prop["id"], "status": "active"})
    await db_client.property_photos.insert_one({"id": "ph-1", "property_id": prop["id"], "url": "x"})

    response = await client.delete(f"/properties/{prop['id']}", headers=owner["headers"])
    assert response.status_code == 200

    assert await db_client.properties.count_documents({"id": prop["id"]}) == 0
    assert await db_client.property_plans.count_documents({"property_id": prop["id"]}) == 0
    assert await db_client.property_photos.count_documents({"property_id": prop["id"]}) == 0
    assert await db_client.leads.count_documents({"property_id": prop["id"]}) == 1


@pytest.mark.asyncio
async def test_renew_endpoint(client, make_property, owner):
    prop = await make_property(
        owner["id"], status="expired", verified=False, is_owner_direct=True,
        expires_at=(datetime.now(timezone.utc) - timedelta(days=2)).isoformat()
    )
    response = await client.post(f"/properties/{prop['id']}/renew", headers=owner["headers"])
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pending"
    expires_at = datetime.fromisoformat(data["expires_at"])
    assert expires_at > datetime.now(timezone.utc) + timedelta(days=29)


@pytest.mark.asyncio
async def test_renew_active_is_conflict(client, make_property, owner):
    prop = await make_property(owner["id"], is_owner_direct=True)
    response = await client.post(f"/properties/{prop['id']}/renew", headers=owner["headers"])
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_my_properties_show_days_remaining(client, make_property, owner, other_owner):
    await make_property(
        owner["id"], status="pending", is_owner_direct=True,
        expires_at=(datetime.now(timezone.utc) + timedelta(days=10)).isoformat()
    )
    await make_property(other_owner["id"])

    response = await client.get("/properties/mine", headers=owner["headers"])
    assert response.status_code == 200
    items = response.json()["properties"]
    assert len(items) == 1
    assert items[0]["days_remaining"] == 10


@pytest.mark.asyncio
async def test_photo_upload_first_is_main(client, make_property, owner, storage, png):
    prop = await make_property(owner["id"])

    for name in ("sala.png", "quarto.png"):
        response = await client.post(
            f"/properties/{prop['id']}/photos",
            files={"file": (name, png, "image/png")},
            headers=owner["headers"],
        )
        assert response.status_code == 201, response.text

    photos = (await client.get(f"/properties/{prop['id']}/photos")).json()
    assert [p["is_main"] for p in photos] == [True, False]
    assert len(storage.objects) == 2

    response = await client.put(
        f"/properties/{prop['id']}/photos/{photos[1]['id']}/main", headers=owner["headers"]
    )
    assert response.status_code == 200
    photos = (await client.get(f"/properties/{prop['id']}/photos")).json()
    assert [p["is_main"] for p in photos] == [False, True]


@pytest.mark.asyncio
async def test_photo_upload_rejects_non_image(client, make_property, owner, storage):
    prop = await make_property(owner["id"])
    response = await client.post(
        f"/properties/{prop['id']}/photos",
        files={"file": ("notas.png", b"isto nao e imagem", "image/png")},
        headers=owner["headers"],
    )
    assert response.status_code == 400
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_photo_upload_over_limit_is_rejected(client, make_property, owner, storage, png, monkeypatch):
    monkeypatch.setattr("services.storage.STORAGE_MAX_IMAGE_MB", 1)
    prop = await make_property(owner["id"])

    response = await client.post(
        f"/properties/{prop['id']}/photos",
        files={"file": ("grande.png", png + b"\0" * (1024 * 1024), "image/png")},
        headers=owner["headers"],
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Imagem excede o limite de 1 MB"
    assert storage.objects == {}
