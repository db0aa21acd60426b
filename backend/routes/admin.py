import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException

from database import db
from models.auth import AppRole, CurrentUser
from models.property import ApproveRequest, FlagUpdate, PropertyStatus, StatusChangeRequest
from services.auth import grant_role, get_user_roles, require_admin
from services.lifecycle import (
    ADMIN_FLAGS, approve_property, change_status, set_flag,
    expire_owner_direct_properties, expire_property_plans
)
from routes.properties import to_list_items


router = APIRouter(prefix="/admin", tags=["Admin"])
logger = logging.getLogger(__name__)


# ============== IMÓVEIS ==============

@router.get("/properties")
async def list_all_properties(
    status: Optional[PropertyStatus] = None,
    owner_direct: Optional[bool] = None,
    user: CurrentUser = Depends(require_admin)
):
    """Todos os imóveis, incluindo pendentes, pausados e expirados."""
    query = {}
    if status == PropertyStatus.PENDING:
        query["status"] = {"$in": ["pending", "pending_approval"]}
    elif status:
        query["status"] = status.value
    if owner_direct is not None:
        query["is_owner_direct"] = owner_direct

    properties = await db.properties.find(query, {"_id": 0}).sort("created_at", -1).to_list(1000)
    return await to_list_items(properties)


@router.post("/properties/{property_id}/approve")
async def approve(property_id: str, data: ApproveRequest = ApproveRequest(), user: CurrentUser = Depends(require_admin)):
    return await approve_property(db, property_id, user.email, verify=data.verify)


@router.post("/properties/{property_id}/status")
async def set_status(property_id: str, data: StatusChangeRequest, user: CurrentUser = Depends(require_admin)):
    return await change_status(db, property_id, data.status, user.email)


@router.put("/properties/{property_id}/{flag}")
async def toggle_flag(property_id: str, flag: str, data: FlagUpdate, user: CurrentUser = Depends(require_admin)):
    """Liga/desliga verified, featured ou show_in_carousel."""
    if flag not in ADMIN_FLAGS:
        raise HTTPException(status_code=404, detail="Flag desconhecida")
    return await set_flag(db, property_id, flag, data.value, user.email)


@router.post("/sweep")
async def run_expiration_sweep(user: CurrentUser = Depends(require_admin)):
    """Corre as varreduras de expiração sem esperar pelo agendamento."""
    expired_properties = await expire_owner_direct_properties(db)
    expired_plans = await expire_property_plans(db)
    logger.info(
        f"Varredura manual por {user.email}: {expired_properties} imóveis, {expired_plans} planos"
    )
    return {"expired_properties": expired_properties, "expired_plans": expired_plans}


# ============== UTILIZADORES ==============

@router.get("/users")
async def list_users(user: CurrentUser = Depends(require_admin)):
    profiles = await db.profiles.find({}, {"_id": 0, "password": 0}).sort("created_at", -1).to_list(1000)
    for profile in profiles:
        profile["roles"] = (await get_user_roles(profile["id"])).as_list()
    return profiles


@router.post("/users/{user_id}/roles/{role}")
async def add_role(user_id: str, role: AppRole, user: CurrentUser = Depends(require_admin)):
    if not await db.profiles.find_one({"id": user_id}):
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    inserted = await grant_role(user_id, role)
    return {"success": True, "inserted": inserted, "roles": (await get_user_roles(user_id)).as_list()}


@router.delete("/users/{user_id}/roles/{role}")
async def remove_role(user_id: str, role: AppRole, user: CurrentUser = Depends(require_admin)):
    if user_id == user.id and role == AppRole.ADMIN:
        raise HTTPException(status_code=400, detail="Não pode remover o seu próprio acesso de administrador")
    result = await db.user_roles.delete_one({"user_id": user_id, "role": role.value})
    if result.deleted_count:
        logger.info(f"Role '{role.value}' removida do utilizador {user_id} por {user.email}")
    return {"success": True, "roles": (await get_user_roles(user_id)).as_list()}
