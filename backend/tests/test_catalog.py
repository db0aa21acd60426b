"""
Testes do catálogo (cidades, tipos, planos), checkout e serviços extra.
"""
import asyncio

import pytest

from services.db_indexes import INDEXES, create_indexes


PLAN = {
    "name": "Destaque 30 dias",
    "slug": "destaque-30",
    "price": 49.9,
    "duration_days": 30,
    "features": ["Topo da busca", "Selo de destaque"],
}


@pytest.mark.asyncio
async def test_city_crud(client, admin):
    response = await client.post(
        "/cities", json={"name": "São José dos Campos", "state": "sp"}, headers=admin["headers"]
    )
    assert response.status_code == 201
    city = response.json()
    assert city["state"] == "SP"
    assert city["slug"] == "sao-jose-dos-campos"

    duplicate = await client.post(
        "/cities", json={"name": "São José dos Campos", "state": "SP"}, headers=admin["headers"]
    )
    assert duplicate.status_code == 409

    response = await client.put(
        f"/cities/{city['id']}", json={"description": "Vale do Paraíba"}, headers=admin["headers"]
    )
    assert response.json()["description"] == "Vale do Paraíba"

    assert (await client.get("/cities")).json()[0]["id"] == city["id"]

    response = await client.delete(f"/cities/{city['id']}", headers=admin["headers"])
    assert response.status_code == 200
    assert (await client.get("/cities")).json() == []


@pytest.mark.asyncio
async def test_city_with_properties_cannot_be_deleted(client, admin, make_property, city):
    await make_property(admin["id"])
    response = await client.delete(f"/cities/{city['id']}", headers=admin["headers"])
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_owner_cannot_manage_cities(client, owner, db_client):
    response = await client.post("/cities", json={"name": "Campinas", "state": "SP"}, headers=owner["headers"])
    assert response.status_code == 403
    assert await db_client.cities.count_documents({}) == 0


@pytest.mark.asyncio
async def test_default_property_types_ordered(client):
    response = await client.get("/property-types")
    assert [t["slug"] for t in response.json()] == ["casa", "apartamento", "terreno", "comercial", "rural"]


@pytest.mark.asyncio
async def test_inactive_type_hidden_and_rejected(client, admin, owner, city, casa_type):
    response = await client.post(f"/property-types/{casa_type['id']}/toggle", headers=admin["headers"])
    assert response.json()["active"] is False
    assert "casa" not in [t["slug"] for t in (await client.get("/property-types")).json()]

    response = await client.post("/properties", json={
        "type_id": casa_type["id"], "address": "Rua Um, 100", "city_id": city["id"], "price": 1000,
    }, headers=owner["headers"])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_new_type_prefix_drives_codes(client, admin, city):
    response = await client.post(
        "/property-types", json={"name": "Sobrado", "code_prefix": "so"}, headers=admin["headers"]
    )
    assert response.status_code == 201
    sobrado = response.json()
    assert sobrado["slug"] == "sobrado"
    assert sobrado["code_prefix"] == "SO"

    response = await client.post("/properties", json={
        "type_id": sobrado["id"], "address": "Rua Dois, 200", "city_id": city["id"], "price": 500000,
    }, headers=admin["headers"])
    assert response.json()["property_code"] == "SO-0001"


@pytest.mark.asyncio
async def test_plans_public_list_hides_inactive(client, admin):
    created = await client.post("/plans", json=PLAN, headers=admin["headers"])
    assert created.status_code == 201
    await client.post("/plans", json={**PLAN, "slug": "antigo", "active": False}, headers=admin["headers"])

    response = await client.get("/plans")
    assert [p["slug"] for p in response.json()] == ["destaque-30"]


@pytest.mark.asyncio
async def test_checkout_creates_single_active_plan(client, admin, owner, make_property, db_client):
    plan = (await client.post("/plans", json=PLAN, headers=admin["headers"])).json()
    prop = await make_property(owner["id"])

    response = await client.post(
        f"/plans/{plan['id']}/checkout", json={"property_id": prop["id"]}, headers=owner["headers"]
    )
    assert response.status_code == 201, response.text
    property_plan = response.json()
    assert property_plan["status"] == "active"
    assert property_plan["user_id"] == owner["id"]

    again = await client.post(
        f"/plans/{plan['id']}/checkout", json={"property_id": prop["id"]}, headers=owner["headers"]
    )
    assert again.status_code == 409
    assert await db_client.property_plans.count_documents({"property_id": prop["id"]}) == 1


@pytest.mark.asyncio
async def test_concurrent_checkouts_activate_one_plan(client, admin, owner, make_property, db_client):
    await create_indexes(db_client)
    plan = (await client.post("/plans", json=PLAN, headers=admin["headers"])).json()
    prop = await make_property(owner["id"])

    responses = await asyncio.gather(*(
        client.post(f"/plans/{plan['id']}/checkout", json={"property_id": prop["id"]}, headers=owner["headers"])
        for _ in range(2)
    ))

    assert sorted(r.status_code for r in responses) == [201, 409]
    assert await db_client.property_plans.count_documents({"property_id": prop["id"], "status": "active"}) == 1


def test_active_plan_index_is_unique_per_property():
    [index] = [i for i in INDEXES["property_plans"] if i["name"] == "idx_one_active_plan"]
    assert index["keys"] == [("property_id", 1)]
    assert index["unique"] is True
    assert index["partial"] == {"status": "active"}


@pytest.mark.asyncio
async def test_checkout_rules(client, admin, owner, other_owner, make_property):
    plan = (await client.post("/plans", json=PLAN, headers=admin["headers"])).json()
    pending = await make_property(owner["id"], status="pending")
    foreign = await make_property(other_owner["id"])

    response = await client.post(
        f"/plans/{plan['id']}/checkout", json={"property_id": pending["id"]}, headers=owner["headers"]
    )
    assert response.status_code == 409

    response = await client.post(
        f"/plans/{plan['id']}/checkout", json={"property_id": foreign["id"]}, headers=owner["headers"]
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_service_order_flow(client, admin, owner, make_property):
    service = await client.post(
        "/services",
        json={"name": "Fotos profissionais", "price": 350, "photos_included": True},
        headers=admin["headers"],
    )
    assert service.status_code == 201
    prop = await make_property(owner["id"])

    order = await client.post(
        "/service-orders",
        json={"service_id": service.json()["id"], "property_id": prop["id"]},
        headers=owner["headers"],
    )
    assert order.status_code == 201
    assert order.json()["status"] == "pending"

    response = await client.patch(
        f"/service-orders/{order.json()['id']}", json={"status": "completed"}, headers=admin["headers"]
    )
    assert response.json()["status"] == "completed"

    response = await client.patch(
        f"/service-orders/{order.json()['id']}", json={"status": "cancelled"}, headers=admin["headers"]
    )
    assert response.status_code == 409

    response = await client.patch(
        f"/service-orders/{order.json()['id']}", json={"status": "pending"}, headers=admin["headers"]
    )
    assert response.status_code == 422
