"""
Dados base sem os quais o marketplace não funciona: tipos de imóvel
(prefixo do código) e os templates dos formulários assinados.

Idempotente; corre no arranque da aplicação e no seed.py.
"""
import uuid
import logging
from datetime import datetime, timezone

from models.form import CAPTACAO_TEMPLATE_SLUG, AUTORIZACAO_TEMPLATE_SLUG

logger = logging.getLogger(__name__)


DEFAULT_PROPERTY_TYPES = [
    {"name": "Casa", "slug": "casa", "code_prefix": "CA", "icon": "home", "display_order": 1},
    {"name": "Apartamento", "slug": "apartamento", "code_prefix": "AP", "icon": "building", "display_order": 2},
    {"name": "Terreno", "slug": "terreno", "code_prefix": "TE", "icon": "map", "display_order": 3},
    {"name": "Comercial", "slug": "comercial", "code_prefix": "CO", "icon": "store", "display_order": 4},
    {"name": "Rural", "slug": "rural", "code_prefix": "RU", "icon": "trees", "display_order": 5},
]

DEFAULT_FORM_TEMPLATES = [
    {
        "name": "Ficha de Captação de Imóvel",
        "slug": CAPTACAO_TEMPLATE_SLUG,
        "description": "Dados do imóvel e do proprietário recolhidos pelo captador",
        "requires_signature": True,
    },
    {
        "name": "Autorização de Comercialização",
        "slug": AUTORIZACAO_TEMPLATE_SLUG,
        "description": "Autorização do proprietário para venda ou locação do imóvel",
        "requires_signature": True,
    },
]


async def ensure_defaults(db) -> dict:
    """Insere os tipos e templates em falta. Devolve quantos foram criados."""
    now = datetime.now(timezone.utc).isoformat()
    created = {"property_types": 0, "form_templates": 0}

    for property_type in DEFAULT_PROPERTY_TYPES:
        if await db.property_types.find_one({"slug": property_type["slug"]}):
            continue
        await db.property_types.insert_one({
            "id": str(uuid.uuid4()),
            "description": None,
            "active": True,
            "created_at": now,
            **property_type,
        })
        created["property_types"] += 1

    for template in DEFAULT_FORM_TEMPLATES:
        if await db.form_templates.find_one({"slug": template["slug"]}):
            continue
        await db.form_templates.insert_one({
            "id": str(uuid.uuid4()),
            "form_fields": [],
            "is_active": True,
            "created_at": now,
            **template,
        })
        created["form_templates"] += 1

    if any(created.values()):
        logger.info(f"Dados base criados: {created}")
    return created
