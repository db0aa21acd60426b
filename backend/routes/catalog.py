"""
Catálogo gerido pelo admin: cidades e tipos de imóvel.
Leitura pública; escrita só para admin.
"""
import uuid
import logging
from typing import List
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException

from database import db
from models.auth import CurrentUser
from models.catalog import (
    City, CityCreate, CityUpdate,
    PropertyType, PropertyTypeCreate, PropertyTypeUpdate
)
from services.auth import require_admin
from utils.input_sanitization import sanitize_string, slugify

router = APIRouter(tags=["Catalog"])
logger = logging.getLogger(__name__)


# ============== CIDADES ==============

@router.get("/cities", response_model=List[City])
async def list_cities():
    return await db.cities.find({}, {"_id": 0}).sort("name", 1).to_list(1000)


@router.post("/cities", response_model=City, status_code=201)
async def create_city(data: CityCreate, user: CurrentUser = Depends(require_admin)):
    name = sanitize_string(data.name, 100)
    if await db.cities.find_one({"name": name, "state": data.state}):
        raise HTTPException(status_code=409, detail="Cidade já cadastrada")

    city = {
        "id": str(uuid.uuid4()),
        "name": name,
        "state": data.state,
        "slug": slugify(data.slug or name),
        "description": data.description,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    await db.cities.insert_one(city)
    city.pop("_id", None)
    logger.info(f"Cidade criada: {name}/{data.state} por {user.email}")
    return city


@router.put("/cities/{city_id}", response_model=City)
async def update_city(city_id: str, data: CityUpdate, user: CurrentUser = Depends(require_admin)):
    city = await db.cities.find_one({"id": city_id}, {"_id": 0})
    if not city:
        raise HTTPException(status_code=404, detail="Cidade não encontrada")

    update = data.model_dump(exclude_none=True)
    if "name" in update:
        update["name"] = sanitize_string(update["name"], 100)
    if "slug" in update:
        update["slug"] = slugify(update["slug"])

    name = update.get("name", city["name"])
    state = update.get("state", city["state"])
    if await db.cities.find_one({"name": name, "state": state, "id": {"$ne": city_id}}):
        raise HTTPException(status_code=409, detail="Cidade já cadastrada")

    if update:
        await db.cities.update_one({"id": city_id}, {"$set": update})
    return await db.cities.find_one({"id": city_id}, {"_id": 0})


@router.delete("/cities/{city_id}")
async def delete_city(city_id: str, user: CurrentUser = Depends(require_admin)):
    if await db.properties.find_one({"city_id": city_id}):
        raise HTTPException(status_code=409, detail="Existem imóveis nesta cidade")
    result = await db.cities.delete_one({"id": city_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Cidade não encontrada")
    return {"success": True}


# ============== TIPOS DE IMÓVEL ==============

@router.get("/property-types", response_model=List[PropertyType])
async def list_property_types(include_inactive: bool = False):
    query = {} if include_inactive else {"active": True}
    return await db.property_types.find(query, {"_id": 0}).sort("display_order", 1).to_list(100)


@router.post("/property-types", response_model=PropertyType, status_code=201)
async def create_property_type(data: PropertyTypeCreate, user: CurrentUser = Depends(require_admin)):
    slug = slugify(data.slug or data.name)
    if await db.property_types.find_one({"slug": slug}):
        raise HTTPException(status_code=409, detail="Tipo de imóvel já existe")

    doc = data.model_dump()
    doc.update({
        "id": str(uuid.uuid4()),
        "slug": slug,
        "code_prefix": data.code_prefix.upper(),
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    await db.property_types.insert_one(doc)
    doc.pop("_id", None)
    logger.info(f"Tipo de imóvel criado: {slug} por {user.email}")
    return doc


@router.put("/property-types/{type_id}", response_model=PropertyType)
async def update_property_type(type_id: str, data: PropertyTypeUpdate, user: CurrentUser = Depends(require_admin)):
    if not await db.property_types.find_one({"id": type_id}):
        raise HTTPException(status_code=404, detail="Tipo de imóvel não encontrado")

    update = data.model_dump(exclude_none=True)
    if "slug" in update:
        update["slug"] = slugify(update["slug"])
        if await db.property_types.find_one({"slug": update["slug"], "id": {"$ne": type_id}}):
            raise HTTPException(status_code=409, detail="Tipo de imóvel já existe")
    if "code_prefix" in update:
        update["code_prefix"] = update["code_prefix"].upper()

    if update:
        await db.property_types.update_one({"id": type_id}, {"$set": update})
    return await db.property_types.find_one({"id": type_id}, {"_id": 0})


@router.post("/property-types/{type_id}/toggle", response_model=PropertyType)
async def toggle_property_type(type_id: str, user: CurrentUser = Depends(require_admin)):
    property_type = await db.property_types.find_one({"id": type_id}, {"_id": 0})
    if not property_type:
        raise HTTPException(status_code=404, detail="Tipo de imóvel não encontrado")

    active = not property_type.get("active", True)
    await db.property_types.update_one({"id": type_id}, {"$set": {"active": active}})
    property_type["active"] = active
    return property_type
