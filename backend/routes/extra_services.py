"""
Serviços extra (fotos profissionais, vídeo, assessoria jurídica)
contratados pelo proprietário para um imóvel.
"""
import uuid
import logging
from typing import List
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException

from database import db
from models.auth import CurrentUser
from models.catalog import ServiceCreate, ServiceOrderCreate, ServiceOrderStatusUpdate
from services.auth import require_admin, require_owner
from services.properties import get_owned_property

router = APIRouter(tags=["Services"])
logger = logging.getLogger(__name__)


@router.get("/services")
async def list_services():
    return await db.services.find({}, {"_id": 0}).sort("price", 1).to_list(100)


@router.post("/services", status_code=201)
async def create_service(data: ServiceCreate, user: CurrentUser = Depends(require_admin)):
    service = data.model_dump()
    service.update({
        "id": str(uuid.uuid4()),
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    await db.services.insert_one(service)
    service.pop("_id", None)
    logger.info(f"Serviço criado: {data.name} por {user.email}")
    return service


@router.post("/service-orders", status_code=201)
async def order_service(data: ServiceOrderCreate, user: CurrentUser = Depends(require_owner)):
    service = await db.services.find_one({"id": data.service_id}, {"_id": 0})
    if not service:
        raise HTTPException(status_code=404, detail="Serviço não encontrado")
    prop = await get_owned_property(db, data.property_id, user)

    now = datetime.now(timezone.utc).isoformat()
    order = {
        "id": str(uuid.uuid4()),
        "service_id": service["id"],
        "property_id": prop["id"],
        "user_id": user.id,
        "price": service["price"],
        "status": "pending",
        "created_at": now,
        "updated_at": now,
    }
    await db.service_orders.insert_one(order)
    order.pop("_id", None)
    logger.info(f"Serviço '{service['name']}' pedido para {prop.get('property_code')} por {user.email}")
    return order


@router.get("/service-orders")
async def list_service_orders(user: CurrentUser = Depends(require_owner)) -> List[dict]:
    """Admin vê todos os pedidos; proprietário só os seus."""
    query = {} if user.is_admin else {"user_id": user.id}
    return await db.service_orders.find(query, {"_id": 0}).sort("created_at", -1).to_list(500)


@router.patch("/service-orders/{order_id}")
async def update_service_order(
    order_id: str,
    data: ServiceOrderStatusUpdate,
    user: CurrentUser = Depends(require_admin)
):
    order = await db.service_orders.find_one({"id": order_id}, {"_id": 0})
    if not order:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")
    if order["status"] != "pending":
        raise HTTPException(status_code=409, detail="Apenas pedidos pendentes podem ser alterados")

    now = datetime.now(timezone.utc).isoformat()
    await db.service_orders.update_one(
        {"id": order_id, "status": "pending"},
        {"$set": {"status": data.status, "updated_at": now}}
    )
    order.update({"status": data.status, "updated_at": now})
    return order
