"""
Rotas de Leads ("Tenho Interesse")
O visitante deixa o contato e é encaminhado para o WhatsApp comercial.
"""
import uuid
import logging
from typing import List, Optional
from urllib.parse import quote
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request

from config import WHATSAPP_NUMBER, SITE_NAME
from database import db
from models.auth import CurrentUser
from models.lead import Lead, LeadCreate, LeadCreatedResponse
from models.property import PropertyStatus
from services.auth import get_optional_user, require_owner
from middleware.rate_limit import limit_public_write
from utils.input_sanitization import sanitize_string, sanitize_multiline

router = APIRouter(prefix="/leads", tags=["Leads"])
logger = logging.getLogger(__name__)


def build_whatsapp_url(prop: dict, number: str = WHATSAPP_NUMBER) -> str:
    reference = prop.get("property_code") or prop["id"]
    message = (
        f"Olá! Tenho interesse no imóvel:\n{prop['address']}\n"
        f"(Código: {reference})\n\nVi no site {SITE_NAME}."
    )
    return f"https://wa.me/{number}?text={quote(message)}"


@router.post("", response_model=LeadCreatedResponse, status_code=201)
@limit_public_write()
async def create_lead(
    request: Request,
    data: LeadCreate,
    user: Optional[CurrentUser] = Depends(get_optional_user)
):
    """Público; se houver sessão, o lead fica associado ao utilizador."""
    prop = await db.properties.find_one({"id": data.property_id}, {"_id": 0})
    # Imóveis fora do ar não aparecem ao público
    if not prop or PropertyStatus.normalize(prop["status"]) != PropertyStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Imóvel não encontrado")

    name = sanitize_string(data.name, 100)
    if len(name) < 2:
        raise HTTPException(status_code=400, detail="Nome muito curto")

    lead = {
        "id": str(uuid.uuid4()),
        "property_id": prop["id"],
        "user_id": user.id if user else None,
        "name": name,
        "phone": data.phone,
        "email": data.email.lower(),
        "message": sanitize_multiline(data.message, 500),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    await db.leads.insert_one(lead)
    lead.pop("_id", None)

    logger.info(f"Novo lead para {prop.get('property_code') or prop['id']}")
    return LeadCreatedResponse(lead=Lead(**lead), whatsapp_url=build_whatsapp_url(prop))


@router.get("/mine", response_model=List[Lead])
async def list_my_leads(user: CurrentUser = Depends(require_owner)):
    """Leads recebidos nos imóveis do utilizador."""
    properties = await db.properties.find({"owner_id": user.id}, {"_id": 0, "id": 1}).to_list(1000)
    property_ids = [p["id"] for p in properties]
    if not property_ids:
        return []
    return await db.leads.find(
        {"property_id": {"$in": property_ids}}, {"_id": 0}
    ).sort("created_at", -1).to_list(1000)


@router.get("", response_model=List[Lead])
async def list_leads(property_id: Optional[str] = None, user: CurrentUser = Depends(require_owner)):
    """Admin vê todos; proprietário só os dos seus imóveis."""
    if not user.is_admin:
        return await list_my_leads(user)
    query = {"property_id": property_id} if property_id else {}
    return await db.leads.find(query, {"_id": 0}).sort("created_at", -1).to_list(1000)
