"""
====================================================================
CICLO DE VIDA DOS ANÚNCIOS
====================================================================
Máquina de estados dos imóveis:

    pending ──aprovar──▶ active ──pausar──▶ paused
       ▲                   │  ◀──retomar───┘
       │                expirar
       └────renovar──── expired

- Anúncios de admin nascem 'active' e verificados.
- Anúncios diretos do proprietário nascem 'pending' com prazo de teste
  e expiram pela varredura agendada.
- No máximo FEATURED_LIMIT imóveis em destaque.
====================================================================
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, FrozenSet, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from config import OWNER_TRIAL_DAYS, RENEWAL_DAYS, FEATURED_LIMIT
from models.auth import RoleSet
from models.property import PropertyStatus
from services.errors import ConflictError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[PropertyStatus, FrozenSet[PropertyStatus]] = {
    PropertyStatus.PENDING: frozenset({PropertyStatus.ACTIVE}),
    PropertyStatus.ACTIVE: frozenset({PropertyStatus.PAUSED, PropertyStatus.EXPIRED}),
    PropertyStatus.PAUSED: frozenset({PropertyStatus.ACTIVE}),
    PropertyStatus.EXPIRED: frozenset({PropertyStatus.PENDING}),
}

STATUS_LABELS = {
    PropertyStatus.PENDING: "Pendente",
    PropertyStatus.ACTIVE: "Ativo",
    PropertyStatus.EXPIRED: "Expirado",
    PropertyStatus.PAUSED: "Pausado",
}

# Flags que o admin pode ligar/desligar diretamente
ADMIN_FLAGS = ("verified", "featured", "show_in_carousel")

# Documento em 'counters' com o número de imóveis em destaque
FEATURED_COUNTER_ID = "featured_slots"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: PropertyStatus, target: PropertyStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def assert_transition(current: PropertyStatus, target: PropertyStatus):
    if not can_transition(current, target):
        raise ConflictError(
            f"Transição inválida: {STATUS_LABELS[current]} → {STATUS_LABELS[target]}"
        )


def initial_state(roles: RoleSet, now: Optional[datetime] = None) -> dict:
    """Campos de estado de um anúncio recém-criado, conforme o criador."""
    now = now or utcnow()
    if roles.is_admin:
        return {
            "status": PropertyStatus.ACTIVE.value,
            "verified": True,
            "is_owner_direct": False,
            "expires_at": None,
        }
    return {
        "status": PropertyStatus.PENDING.value,
        "verified": False,
        "is_owner_direct": True,
        "expires_at": (now + timedelta(days=OWNER_TRIAL_DAYS)).isoformat(),
    }


def days_remaining(expires_at: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Dias até expirar (arredondado para cima); negativo se já expirou."""
    if not expires_at:
        return None
    now = now or utcnow()
    try:
        expiry = datetime.fromisoformat(expires_at.replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None
    seconds = (expiry - now).total_seconds()
    days = int(seconds // 86400)
    if seconds % 86400:
        days += 1
    return days


async def _get_property(db, property_id: str) -> dict:
    prop = await db.properties.find_one({"id": property_id}, {"_id": 0})
    if not prop:
        raise NotFoundError("Imóvel não encontrado")
    return prop


async def change_status(db, property_id: str, target: PropertyStatus, actor: str, extra: dict = None) -> dict:
    prop = await _get_property(db, property_id)
    current = PropertyStatus.normalize(prop["status"])
    assert_transition(current, target)

    now = utcnow()
    update = {"status": target.value, "updated_at": now.isoformat()}
    if extra:
        update.update(extra)
    # Expirado de volta à aprovação recebe sempre nova janela
    if (current == PropertyStatus.EXPIRED and prop.get("is_owner_direct")
            and "expires_at" not in update):
        update["expires_at"] = (now + timedelta(days=RENEWAL_DAYS)).isoformat()

    # Só aplica se ninguém mudou o estado entretanto
    result = await db.properties.update_one(
        {"id": property_id, "status": prop["status"]},
        {"$set": update}
    )
    if result.matched_count == 0:
        raise ConflictError("O imóvel foi alterado por outro pedido. Tente novamente.")

    logger.info(f"Imóvel {prop.get('property_code') or property_id}: {current.value} → {target.value} por {actor}")
    prop.update(update)
    return prop


async def approve_property(db, property_id: str, actor: str, verify: bool = True) -> dict:
    prop = await _get_property(db, property_id)
    if PropertyStatus.normalize(prop["status"]) != PropertyStatus.PENDING:
        raise ConflictError("Apenas imóveis pendentes podem ser aprovados")
    extra = {"verified": True} if verify else None
    return await change_status(db, property_id, PropertyStatus.ACTIVE, actor, extra)


async def renew_property(db, property_id: str, user_id: str, now: Optional[datetime] = None) -> dict:
    """
    Renova um anúncio direto expirado: volta a 'pending' (precisa de nova
    aprovação) com novo prazo de RENEWAL_DAYS.
    """
    now = now or utcnow()
    prop = await _get_property(db, property_id)
    if prop["owner_id"] != user_id:
        raise PermissionDeniedError("Apenas o proprietário pode renovar o anúncio")
    if not prop.get("is_owner_direct"):
        raise ConflictError("Apenas anúncios diretos do proprietário podem ser renovados")
    if PropertyStatus.normalize(prop["status"]) != PropertyStatus.EXPIRED:
        raise ConflictError("Apenas anúncios expirados podem ser renovados")

    expires_at = (now + timedelta(days=RENEWAL_DAYS)).isoformat()
    return await change_status(
        db, property_id, PropertyStatus.PENDING, user_id,
        {"expires_at": expires_at}
    )


async def set_flag(db, property_id: str, field: str, value: bool, actor: str) -> dict:
    """Liga/desliga verified, featured ou show_in_carousel."""
    if field not in ADMIN_FLAGS:
        raise ValueError(f"Flag desconhecida: {field}")

    prop = await _get_property(db, property_id)
    if bool(prop.get(field)) == value:
        return prop

    now = utcnow().isoformat()
    if field == "featured":
        await _set_featured(db, property_id, value, now, actor)
    else:
        await db.properties.update_one(
            {"id": property_id},
            {"$set": {field: value, "updated_at": now}}
        )
    logger.info(f"Imóvel {prop.get('property_code') or property_id}: {field}={value} por {actor}")
    prop[field] = value
    prop["updated_at"] = now
    return prop


async def _ensure_featured_counter(db):
    """Contador de destaques, criado a partir do estado atual no primeiro uso."""
    if await db.counters.find_one({"_id": FEATURED_COUNTER_ID}):
        return
    current = await db.properties.count_documents({"featured": True})
    try:
        await db.counters.insert_one({"_id": FEATURED_COUNTER_ID, "count": current})
    except DuplicateKeyError:
        # Outro pedido criou-o primeiro
        logger.debug("Contador de destaques já existia")


async def reserve_featured_slot(db) -> bool:
    """Ocupa uma vaga de destaque num único passo; False se o limite foi atingido."""
    await _ensure_featured_counter(db)
    slot = await db.counters.find_one_and_update(
        {"_id": FEATURED_COUNTER_ID, "count": {"$lt": FEATURED_LIMIT}},
        {"$inc": {"count": 1}},
        return_document=ReturnDocument.AFTER,
    )
    return slot is not None


async def release_featured_slot(db):
    await _ensure_featured_counter(db)
    await db.counters.update_one(
        {"_id": FEATURED_COUNTER_ID, "count": {"$gt": 0}},
        {"$inc": {"count": -1}}
    )


async def _set_featured(db, property_id: str, value: bool, now: str, actor: str):
    if not value:
        result = await db.properties.update_one(
            {"id": property_id, "featured": True},
            {"$set": {"featured": False, "updated_at": now}}
        )
        if result.modified_count:
            await release_featured_slot(db)
        return

    if not await reserve_featured_slot(db):
        logger.warning(f"Limite de destaques atingido ({FEATURED_LIMIT}) - pedido de {actor}")
        raise ConflictError(
            f"Você já tem {FEATURED_LIMIT} imóveis em destaque. Remova um antes de adicionar outro."
        )

    result = await db.properties.update_one(
        {"id": property_id, "featured": {"$ne": True}},
        {"$set": {"featured": True, "updated_at": now}}
    )
    # Já tinha sido destacado por um pedido concorrente
    if result.modified_count == 0:
        await release_featured_slot(db)


async def expire_owner_direct_properties(db, now: Optional[datetime] = None) -> int:
    """Varredura: anúncios diretos ativos com prazo vencido passam a 'expired'."""
    now_iso = (now or utcnow()).isoformat()
    result = await db.properties.update_many(
        {
            "status": PropertyStatus.ACTIVE.value,
            "is_owner_direct": True,
            "expires_at": {"$ne": None, "$lt": now_iso},
        },
        {"$set": {"status": PropertyStatus.EXPIRED.value, "updated_at": now_iso}}
    )
    if result.modified_count:
        logger.info(f"Anúncios diretos expirados: {result.modified_count}")
    return result.modified_count


async def expire_property_plans(db, now: Optional[datetime] = None) -> int:
    """Varredura: associações de plano vencidas passam a 'expired'."""
    now_iso = (now or utcnow()).isoformat()
    result = await db.property_plans.update_many(
        {"status": "active", "expires_at": {"$lt": now_iso}},
        {"$set": {"status": "expired", "updated_at": now_iso}}
    )
    if result.modified_count:
        logger.info(f"Planos expirados: {result.modified_count}")
    return result.modified_count
