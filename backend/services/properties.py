"""
Operações de escrita sobre imóveis partilhadas pelas rotas e pelo
fluxo de captação: geração do código, criação, edição e remoção.
"""
import uuid
import logging
from typing import Optional

from pymongo import ReturnDocument

from models.auth import CurrentUser
from models.property import PropertyCreate, PropertyUpdate
from services.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from services.lifecycle import initial_state, release_featured_slot, utcnow

logger = logging.getLogger(__name__)

DEFAULT_CODE_PREFIX = "IMV"


async def next_property_code(db, prefix: str) -> str:
    """Próximo código legível para o prefixo (CA-0001, CA-0002...)."""
    prefix = (prefix or DEFAULT_CODE_PREFIX).upper()
    counter = await db.counters.find_one_and_update(
        {"_id": f"property_code:{prefix}"},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return f"{prefix}-{counter['seq']:04d}"


async def get_owned_property(db, property_id: str, user: CurrentUser) -> dict:
    """Imóvel do utilizador (ou qualquer imóvel, para admin)."""
    prop = await db.properties.find_one({"id": property_id}, {"_id": 0})
    if not prop:
        raise NotFoundError("Imóvel não encontrado")
    if prop["owner_id"] != user.id and not user.is_admin:
        raise PermissionDeniedError("Acesso negado")
    return prop


async def insert_property(db, owner_id: str, fields: dict, property_type: dict, state: dict) -> dict:
    now = utcnow().isoformat()
    code = await next_property_code(db, property_type.get("code_prefix"))
    doc = {
        "id": str(uuid.uuid4()),
        "property_code": code,
        "owner_id": owner_id,
        "type_id": property_type["id"],
        "type": property_type["slug"],
        "featured": False,
        "show_in_carousel": False,
        "created_at": now,
        "updated_at": now,
        **fields,
        **state,
    }
    await db.properties.insert_one(doc)
    doc.pop("_id", None)
    return doc


async def create_property(db, user: CurrentUser, data: PropertyCreate) -> dict:
    city = await db.cities.find_one({"id": data.city_id}, {"_id": 0})
    if not city:
        raise InvalidInputError("Cidade não encontrada")
    property_type = await db.property_types.find_one({"id": data.type_id}, {"_id": 0})
    if not property_type or not property_type.get("active", True):
        raise InvalidInputError("Tipo de imóvel inválido")

    fields = data.model_dump(exclude={"type_id"}, mode="json")
    state = initial_state(user.role_set)
    doc = await insert_property(db, user.id, fields, property_type, state)

    logger.info(
        f"Imóvel criado: {doc['property_code']} ({doc['status']}) por {user.email}"
    )
    return doc


async def update_property(db, property_id: str, user: CurrentUser, data: PropertyUpdate) -> dict:
    await get_owned_property(db, property_id, user)

    update = data.model_dump(exclude_none=True, mode="json")
    if "city_id" in update and not await db.cities.find_one({"id": update["city_id"]}):
        raise InvalidInputError("Cidade não encontrada")
    if "type_id" in update:
        property_type = await db.property_types.find_one({"id": update["type_id"]})
        if not property_type:
            raise InvalidInputError("Tipo de imóvel inválido")
        update["type"] = property_type["slug"]

    update["updated_at"] = utcnow().isoformat()
    await db.properties.update_one({"id": property_id}, {"$set": update})
    return await db.properties.find_one({"id": property_id}, {"_id": 0})


async def delete_property(db, property_id: str, user: CurrentUser, storage=None) -> Optional[dict]:
    """
    Remove o imóvel, as fotos e as associações de plano. Leads e
    formulários assinados ficam como registo.
    """
    prop = await get_owned_property(db, property_id, user)

    photos = await db.property_photos.find({"property_id": property_id}, {"_id": 0}).to_list(100)
    if storage is not None:
        for photo in photos:
            if photo.get("storage_key"):
                await storage.delete(photo["storage_key"])

    await db.property_photos.delete_many({"property_id": property_id})
    await db.property_plans.delete_many({"property_id": property_id})
    deleted = await db.properties.find_one_and_delete({"id": property_id})
    # Imóvel em destaque liberta a vaga
    if deleted and deleted.get("featured"):
        await release_featured_slot(db)

    logger.info(f"Imóvel {prop.get('property_code') or property_id} eliminado por {user.email}")
    return prop
