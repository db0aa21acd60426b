#!/usr/bin/env python3
"""
==============================================
SEED DATABASE - KÈSO Imóveis
==============================================
Cria índices, tipos de imóvel, templates dos formulários,
cidades iniciais e o administrador.
Pode ser executado mais de uma vez: o que já existe é ignorado.

Uso:
    cd backend
    python seed.py
    python seed.py --admin-email admin@kesoimoveis.com.br --admin-password ...
==============================================
"""

import asyncio
import argparse
import logging
import uuid
from datetime import datetime, timezone

from database import db, client
from models.auth import AppRole
from services.auth import grant_role, hash_password
from services.db_indexes import create_indexes
from services.defaults import ensure_defaults
from utils.input_sanitization import slugify

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


DEFAULT_CITIES = [
    {"name": "São Paulo", "state": "SP"},
    {"name": "Santos", "state": "SP"},
    {"name": "Guarujá", "state": "SP"},
    {"name": "São Vicente", "state": "SP"},
    {"name": "Praia Grande", "state": "SP"},
]


async def seed_cities() -> int:
    created = 0
    for city in DEFAULT_CITIES:
        if await db.cities.find_one({"name": city["name"], "state": city["state"]}):
            continue
        await db.cities.insert_one({
            "id": str(uuid.uuid4()),
            "name": city["name"],
            "state": city["state"],
            "slug": slugify(city["name"]),
            "description": None,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        created += 1
    return created


async def seed_admin(email: str, password: str, name: str) -> bool:
    """Cria o administrador (ou só atribui a role se o perfil já existir)."""
    email = email.lower()
    profile = await db.profiles.find_one({"email": email})
    if profile:
        logger.info(f"[SKIP] {email} já existe")
        user_id = profile["id"]
    else:
        user_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        await db.profiles.insert_one({
            "id": user_id,
            "email": email,
            "password": hash_password(password),
            "name": name,
            "phone": None,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"[OK] Administrador criado: {email}")

    await grant_role(user_id, AppRole.BUYER)
    return await grant_role(user_id, AppRole.ADMIN)


async def main():
    parser = argparse.ArgumentParser(description='KÈSO Imóveis - Seed da base de dados')
    parser.add_argument('--admin-email', default='admin@kesoimoveis.com.br')
    parser.add_argument('--admin-password', default='keso2026')  # ALTERAR EM PRODUÇÃO
    parser.add_argument('--admin-name', default='Administrador')
    parser.add_argument('--skip-cities', action='store_true', help='Não criar as cidades iniciais')
    args = parser.parse_args()

    try:
        await create_indexes(db)
        created = await ensure_defaults(db)
        logger.info(f"Tipos de imóvel criados: {created['property_types']}")
        logger.info(f"Templates criados: {created['form_templates']}")

        if not args.skip_cities:
            logger.info(f"Cidades criadas: {await seed_cities()}")

        await seed_admin(args.admin_email, args.admin_password, args.admin_name)
        logger.info("IMPORTANTE: Altere a password padrão do administrador em produção!")
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
