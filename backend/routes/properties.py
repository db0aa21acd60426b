"""
Rotas dos imóveis anunciados
Listagem pública, anúncios do proprietário, renovação e fotos
"""
import re
import uuid
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from config import FEATURED_LIMIT
from database import db
from models.auth import CurrentUser
from models.property import (
    Finalidade, PropertyCreate, PropertyUpdate, PropertyListItem,
    PropertyPhoto, PropertyStatus
)
from services.auth import get_optional_user, require_owner
from services.lifecycle import days_remaining, renew_property, utcnow
from services.properties import (
    create_property, update_property, delete_property, get_owned_property
)
from services.storage import get_storage, inspect_image, read_upload
from middleware.rate_limit import limit_upload

router = APIRouter(prefix="/properties", tags=["Properties"])
logger = logging.getLogger(__name__)


async def to_list_items(properties: List[dict]) -> List[PropertyListItem]:
    """Junta cidade e foto principal a cada imóvel."""
    if not properties:
        return []

    city_ids = list({p["city_id"] for p in properties})
    cities = await db.cities.find({"id": {"$in": city_ids}}, {"_id": 0}).to_list(len(city_ids))
    city_map = {c["id"]: c for c in cities}

    property_ids = [p["id"] for p in properties]
    photos = await db.property_photos.find(
        {"property_id": {"$in": property_ids}}, {"_id": 0}
    ).sort("created_at", 1).to_list(1000)
    photo_map = {}
    for photo in photos:
        current = photo_map.get(photo["property_id"])
        if current is None or (photo.get("is_main") and not current.get("is_main")):
            photo_map[photo["property_id"]] = photo

    result = []
    for p in properties:
        city = city_map.get(p["city_id"], {})
        photo = photo_map.get(p["id"])
        result.append(PropertyListItem(
            id=p["id"],
            property_code=p.get("property_code"),
            type=p.get("type"),
            finalidade=p["finalidade"],
            address=p["address"],
            neighborhood=p.get("neighborhood"),
            city_id=p["city_id"],
            city_name=city.get("name"),
            city_state=city.get("state"),
            price=p["price"],
            area=p.get("area"),
            bedrooms=p.get("bedrooms"),
            bathrooms=p.get("bathrooms"),
            parking_spaces=p.get("parking_spaces"),
            status=PropertyStatus.normalize(p["status"]),
            verified=p.get("verified", False),
            is_owner_direct=p.get("is_owner_direct", False),
            featured=p.get("featured", False),
            photo_url=photo["url"] if photo else None,
            expires_at=p.get("expires_at"),
            days_remaining=days_remaining(p.get("expires_at")) if p.get("is_owner_direct") else None,
            created_at=p["created_at"],
        ))
    return result


# ====================================================================
# LEITURA PÚBLICA
# ====================================================================

@router.get("", response_model=List[PropertyListItem])
async def list_properties(
    city_id: Optional[str] = None,
    type: Optional[str] = None,
    finalidade: Optional[Finalidade] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    min_bedrooms: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = 100,
):
    """Imóveis ativos, mais recentes primeiro."""
    query = {"status": PropertyStatus.ACTIVE.value}

    if city_id:
        query["city_id"] = city_id
    if type:
        query["type"] = type
    if finalidade:
        query["finalidade"] = finalidade.value
    if min_price is not None:
        query["price"] = {"$gte": min_price}
    if max_price is not None:
        query.setdefault("price", {})["$lte"] = max_price
    if min_bedrooms:
        query["bedrooms"] = {"$gte": min_bedrooms}
    if search:
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"property_code": {"$regex": pattern, "$options": "i"}},
            {"address": {"$regex": pattern, "$options": "i"}},
            {"neighborhood": {"$regex": pattern, "$options": "i"}},
        ]

    limit = max(1, min(limit, 500))
    properties = await db.properties.find(query, {"_id": 0}).sort("created_at", -1).to_list(limit)
    return await to_list_items(properties)


@router.get("/featured", response_model=List[PropertyListItem])
async def list_featured():
    properties = await db.properties.find(
        {"status": PropertyStatus.ACTIVE.value, "featured": True}, {"_id": 0}
    ).sort("updated_at", -1).to_list(FEATURED_LIMIT)
    return await to_list_items(properties)


@router.get("/carousel", response_model=List[PropertyListItem])
async def list_carousel():
    properties = await db.properties.find(
        {"status": PropertyStatus.ACTIVE.value, "show_in_carousel": True}, {"_id": 0}
    ).sort("updated_at", -1).to_list(20)
    return await to_list_items(properties)


@router.get("/mine")
async def list_my_properties(user: CurrentUser = Depends(require_owner)):
    """Anúncios do utilizador com dias restantes e leads recebidos."""
    properties = await db.properties.find(
        {"owner_id": user.id}, {"_id": 0}
    ).sort("created_at", -1).to_list(500)

    property_ids = [p["id"] for p in properties]
    leads = []
    if property_ids:
        leads = await db.leads.find(
            {"property_id": {"$in": property_ids}}, {"_id": 0}
        ).sort("created_at", -1).to_list(500)

    return {
        "properties": await to_list_items(properties),
        "leads": leads,
    }


@router.get("/{property_id}")
async def get_property(property_id: str, user: Optional[CurrentUser] = Depends(get_optional_user)):
    """Detalhe. Imóveis não ativos só são visíveis ao dono e ao admin."""
    prop = await db.properties.find_one({"id": property_id}, {"_id": 0})
    if not prop:
        raise HTTPException(status_code=404, detail="Imóvel não encontrado")

    is_active = PropertyStatus.normalize(prop["status"]) == PropertyStatus.ACTIVE
    can_see_hidden = user is not None and (user.is_admin or prop["owner_id"] == user.id)
    if not is_active and not can_see_hidden:
        raise HTTPException(status_code=404, detail="Imóvel não encontrado")

    prop["status"] = PropertyStatus.normalize(prop["status"]).value
    prop["city"] = await db.cities.find_one({"id": prop["city_id"]}, {"_id": 0})
    prop["photos"] = await db.property_photos.find(
        {"property_id": property_id}, {"_id": 0}
    ).sort("created_at", 1).to_list(100)
    if prop.get("is_owner_direct"):
        prop["days_remaining"] = days_remaining(prop.get("expires_at"))
    return prop


# ====================================================================
# ANÚNCIOS DO PROPRIETÁRIO
# ====================================================================

@router.post("", status_code=201)
async def create(data: PropertyCreate, user: CurrentUser = Depends(require_owner)):
    return await create_property(db, user, data)


@router.patch("/{property_id}")
async def update(property_id: str, data: PropertyUpdate, user: CurrentUser = Depends(require_owner)):
    return await update_property(db, property_id, user, data)


@router.delete("/{property_id}")
async def delete(property_id: str, user: CurrentUser = Depends(require_owner), storage=Depends(get_storage)):
    await delete_property(db, property_id, user, storage)
    return {"success": True}


@router.post("/{property_id}/renew")
async def renew(property_id: str, user: CurrentUser = Depends(require_owner)):
    """Anúncio direto expirado volta para aprovação com novo prazo."""
    return await renew_property(db, property_id, user.id)


# ====================================================================
# FOTOS
# ====================================================================

@router.get("/{property_id}/photos", response_model=List[PropertyPhoto])
async def list_photos(property_id: str):
    return await db.property_photos.find(
        {"property_id": property_id}, {"_id": 0}
    ).sort("created_at", 1).to_list(100)


@router.post("/{property_id}/photos", response_model=PropertyPhoto, status_code=201)
@limit_upload()
async def upload_photo(
    request: Request,
    property_id: str,
    file: UploadFile = File(...),
    user: CurrentUser = Depends(require_owner),
    storage=Depends(get_storage),
):
    await get_owned_property(db, property_id, user)

    content = await read_upload(file)
    extension, content_type = inspect_image(content)

    existing = await db.property_photos.count_documents({"property_id": property_id})
    now = utcnow()
    key = f"{property_id}/{int(now.timestamp() * 1000)}-{existing + 1}.{extension}"
    url = await storage.upload(key, content, content_type)

    photo = {
        "id": str(uuid.uuid4()),
        "property_id": property_id,
        "url": url,
        "storage_key": key,
        "is_main": existing == 0,
        "created_at": now.isoformat(),
    }
    await db.property_photos.insert_one(photo)
    photo.pop("_id", None)
    logger.info(f"Foto adicionada ao imóvel {property_id} por {user.email}")
    return photo


@router.put("/{property_id}/photos/{photo_id}/main", response_model=PropertyPhoto)
async def set_main_photo(property_id: str, photo_id: str, user: CurrentUser = Depends(require_owner)):
    await get_owned_property(db, property_id, user)
    photo = await db.property_photos.find_one({"id": photo_id, "property_id": property_id}, {"_id": 0})
    if not photo:
        raise HTTPException(status_code=404, detail="Foto não encontrada")

    await db.property_photos.update_many(
        {"property_id": property_id, "id": {"$ne": photo_id}},
        {"$set": {"is_main": False}}
    )
    await db.property_photos.update_one({"id": photo_id}, {"$set": {"is_main": True}})
    photo["is_main"] = True
    return photo


@router.delete("/{property_id}/photos/{photo_id}")
async def delete_photo(
    property_id: str,
    photo_id: str,
    user: CurrentUser = Depends(require_owner),
    storage=Depends(get_storage),
):
    await get_owned_property(db, property_id, user)
    photo = await db.property_photos.find_one({"id": photo_id, "property_id": property_id}, {"_id": 0})
    if not photo:
        raise HTTPException(status_code=404, detail="Foto não encontrada")

    if photo.get("storage_key"):
        await storage.delete(photo["storage_key"])
    await db.property_photos.delete_one({"id": photo_id})

    # A foto seguinte passa a principal
    if photo.get("is_main"):
        next_photo = await db.property_photos.find_one(
            {"property_id": property_id}, {"_id": 0}, sort=[("created_at", 1)]
        )
        if next_photo:
            await db.property_photos.update_one({"id": next_photo["id"]}, {"$set": {"is_main": True}})

    return {"success": True}
