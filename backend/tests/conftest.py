"""
Tests for KÈSO Imóveis API
Configuração central dos testes.

A app corre em memória (ASGITransport) contra um MongoDB simulado
(mongomock-motor); o armazenamento S3 e o ViaCEP são substituídos
por duplos de teste.
"""
import os
import sys
import io
import base64
import uuid
from pathlib import Path
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

# Variáveis obrigatórias ANTES de importar a app
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-keso")
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "keso_test")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")

# Adicionar backend ao path
sys.path.insert(0, str(Path(__file__).parent.parent))

import database
from server import app
from middleware.rate_limit import limiter
from models.auth import AppRole
from services.auth import create_token, grant_role, hash_password
from services.defaults import ensure_defaults
from services.properties import insert_property
from services.storage import get_storage

# URL fictício para os testes
API_URL = "http://testserver/api"


class FakeStorage:
    """Armazenamento em memória com a mesma interface do S3Storage."""

    def __init__(self):
        self.objects = {}

    def is_configured(self) -> bool:
        return True

    def public_url(self, key: str) -> str:
        return f"https://storage.test/{key}"

    async def upload(self, key: str, content: bytes, content_type: str) -> str:
        self.objects[key] = (content, content_type)
        return self.public_url(key)

    async def delete(self, key: str) -> bool:
        return self.objects.pop(key, None) is not None


@pytest_asyncio.fixture(autouse=True)
async def db_client():
    """DB limpa por teste, com tipos de imóvel e templates de base."""
    database._client = AsyncMongoMockClient()
    database._db = database._client[os.environ["DB_NAME"]]
    await ensure_defaults(database.db)
    yield database.db
    database._client = None
    database._db = None


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage, None)


@pytest_asyncio.fixture
async def client(storage):
    """Cliente HTTP assíncrono que fala DIRETAMENTE com a app."""
    limiter.enabled = False

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=API_URL,
        timeout=30.0
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(db, email: str, roles, name: str = "Utilizador Teste", password: str = "senha123") -> dict:
    """Cria perfil + roles diretamente na DB e devolve {id, email, token, headers}."""
    user_id = str(uuid.uuid4())
    await db.profiles.insert_one({
        "id": user_id,
        "email": email,
        "password": hash_password(password),
        "name": name,
        "phone": None,
        "is_active": True,
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    for role in roles:
        await grant_role(user_id, role)
    token = create_token(user_id, email)
    return {
        "id": user_id,
        "email": email,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


# --- Fixtures de Autenticação ---

@pytest_asyncio.fixture
async def admin(db_client):
    return await create_user(db_client, "admin@kesoimoveis.com.br", [AppRole.BUYER, AppRole.ADMIN], "Admin Teste")


@pytest_asyncio.fixture
async def owner(db_client):
    return await create_user(db_client, "proprietario@email.com.br", [AppRole.BUYER, AppRole.OWNER], "Proprietário Teste")


@pytest_asyncio.fixture
async def other_owner(db_client):
    return await create_user(db_client, "outro@email.com.br", [AppRole.BUYER, AppRole.OWNER], "Outro Proprietário")


@pytest_asyncio.fixture
async def buyer(db_client):
    return await create_user(db_client, "comprador@email.com.br", [AppRole.BUYER], "Comprador Teste")


# --- Fixtures de catálogo ---

@pytest_asyncio.fixture
async def city(db_client):
    doc = {
        "id": str(uuid.uuid4()),
        "name": "São Paulo",
        "state": "SP",
        "slug": "sao-paulo",
        "description": None,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    await db_client.cities.insert_one(doc)
    doc.pop("_id", None)
    return doc


@pytest_asyncio.fixture
async def casa_type(db_client):
    return await db_client.property_types.find_one({"slug": "casa"}, {"_id": 0})


@pytest.fixture
def make_property(db_client, city, casa_type):
    """Insere um imóvel diretamente, sem passar pelas regras de criação."""
    async def _make(owner_id: str, **state) -> dict:
        fields = {
            "city_id": city["id"],
            "finalidade": "buy",
            "address": "Rua Augusta, 1500",
            "neighborhood": "Consolação",
            "price": 850000.0,
            "area": 120.0,
            "bedrooms": 3,
            "bathrooms": 2,
            "parking_spaces": 1,
            "description": "Casa ampla",
        }
        defaults = {
            "status": "active",
            "verified": True,
            "is_owner_direct": False,
            "expires_at": None,
        }
        defaults.update(state)
        return await insert_property(db_client, owner_id, fields, casa_type, defaults)
    return _make


def png_bytes(size=(40, 20)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png() -> bytes:
    return png_bytes()


@pytest.fixture
def signature_data_url(png) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
