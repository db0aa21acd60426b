"""
Planos de anúncio e contratação de plano para um imóvel.
"""
import uuid
import logging
from typing import List
from datetime import datetime, timezone, timedelta
from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from database import db
from models.auth import CurrentUser
from models.catalog import CheckoutRequest, Plan, PlanCreate, PlanUpdate, PropertyPlan
from models.property import PropertyStatus
from services.auth import require_admin, require_owner
from utils.input_sanitization import slugify

router = APIRouter(prefix="/plans", tags=["Plans"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[Plan])
async def list_plans():
    return await db.plans.find({"active": True}, {"_id": 0}).sort("display_order", 1).to_list(100)


@router.get("/all", response_model=List[Plan])
async def list_all_plans(user: CurrentUser = Depends(require_admin)):
    return await db.plans.find({}, {"_id": 0}).sort("display_order", 1).to_list(100)


@router.post("", response_model=Plan, status_code=201)
async def create_plan(data: PlanCreate, user: CurrentUser = Depends(require_admin)):
    slug = slugify(data.slug)
    if await db.plans.find_one({"slug": slug}):
        raise HTTPException(status_code=409, detail="Já existe um plano com este slug")

    now = datetime.now(timezone.utc).isoformat()
    plan = data.model_dump()
    plan.update({"id": str(uuid.uuid4()), "slug": slug, "created_at": now, "updated_at": now})
    await db.plans.insert_one(plan)
    plan.pop("_id", None)
    logger.info(f"Plano criado: {slug} por {user.email}")
    return plan


@router.put("/{plan_id}", response_model=Plan)
async def update_plan(plan_id: str, data: PlanUpdate, user: CurrentUser = Depends(require_admin)):
    if not await db.plans.find_one({"id": plan_id}):
        raise HTTPException(status_code=404, detail="Plano não encontrado")

    update = data.model_dump(exclude_none=True)
    if "slug" in update:
        update["slug"] = slugify(update["slug"])
        if await db.plans.find_one({"slug": update["slug"], "id": {"$ne": plan_id}}):
            raise HTTPException(status_code=409, detail="Já existe um plano com este slug")
    update["updated_at"] = datetime.now(timezone.utc).isoformat()

    await db.plans.update_one({"id": plan_id}, {"$set": update})
    return await db.plans.find_one({"id": plan_id}, {"_id": 0})


@router.delete("/{plan_id}")
async def delete_plan(plan_id: str, user: CurrentUser = Depends(require_admin)):
    if await db.property_plans.find_one({"plan_id": plan_id, "status": "active"}):
        raise HTTPException(status_code=409, detail="Plano em uso por imóveis ativos")
    result = await db.plans.delete_one({"id": plan_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Plano não encontrado")
    return {"success": True}


@router.post("/{plan_id}/checkout", response_model=PropertyPlan, status_code=201)
async def checkout(plan_id: str, data: CheckoutRequest, user: CurrentUser = Depends(require_owner)):
    """
    Associa o plano a um imóvel ativo do utilizador.
    Um imóvel tem no máximo um plano ativo de cada vez.
    """
    plan = await db.plans.find_one({"id": plan_id}, {"_id": 0})
    if not plan or not plan.get("active", True):
        raise HTTPException(status_code=404, detail="Plano não encontrado")

    prop = await db.properties.find_one({"id": data.property_id}, {"_id": 0})
    if not prop:
        raise HTTPException(status_code=404, detail="Imóvel não encontrado")
    if prop["owner_id"] != user.id:
        raise HTTPException(status_code=403, detail="Acesso negado")
    if PropertyStatus.normalize(prop["status"]) != PropertyStatus.ACTIVE:
        raise HTTPException(status_code=409, detail="Apenas imóveis ativos podem contratar um plano")

    if await db.property_plans.find_one({"property_id": prop["id"], "status": "active"}):
        raise HTTPException(status_code=409, detail="Este imóvel já tem um plano ativo")

    now = datetime.now(timezone.utc)
    property_plan = {
        "id": str(uuid.uuid4()),
        "property_id": prop["id"],
        "plan_id": plan_id,
        "user_id": user.id,
        "status": "active",
        "started_at": now.isoformat(),
        "expires_at": (now + timedelta(days=plan["duration_days"])).isoformat(),
        "auto_renew": False,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
    }
    try:
        await db.property_plans.insert_one(property_plan)
    except DuplicateKeyError:
        # Pedido concorrente ativou um plano entretanto
        raise HTTPException(status_code=409, detail="Este imóvel já tem um plano ativo")
    property_plan.pop("_id", None)
    logger.info(f"Plano {plan['slug']} contratado para {prop.get('property_code')} por {user.email}")
    return property_plan
