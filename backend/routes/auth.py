import uuid
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request

from database import db
from models.auth import (
    AppRole, CurrentUser, UserRegister, UserLogin, UserResponse,
    TokenResponse, ProfileUpdate
)
from services.auth import (
    hash_password, verify_password, create_token, get_current_user,
    get_user_roles, grant_role
)
from middleware.rate_limit import limit_auth, limit_register
from utils.input_sanitization import sanitize_string


router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


def _user_response(profile: dict, roles) -> UserResponse:
    return UserResponse(
        id=profile["id"],
        email=profile["email"],
        name=profile["name"],
        phone=profile.get("phone"),
        roles=roles.as_list(),
        created_at=profile.get("created_at"),
    )


@router.post("/register", response_model=TokenResponse)
@limit_register()
async def register(request: Request, data: UserRegister):
    email = data.email.lower()
    existing = await db.profiles.find_one({"email": email})
    if existing:
        raise HTTPException(status_code=400, detail="Email já cadastrado")

    user_id = str(uuid.uuid4())
    now = datetime.now(timezone.utc).isoformat()

    profile = {
        "id": user_id,
        "email": email,
        "password": hash_password(data.password),
        "name": sanitize_string(data.name, 100),
        "phone": data.phone,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    await db.profiles.insert_one(profile)
    # Todo utilizador registado começa como comprador
    await grant_role(user_id, AppRole.BUYER)

    logger.info(f"Novo utilizador registado: {email}")
    roles = await get_user_roles(user_id)
    return TokenResponse(
        access_token=create_token(user_id, email),
        user=_user_response(profile, roles),
    )


@router.post("/login", response_model=TokenResponse)
@limit_auth()
async def login(request: Request, data: UserLogin):
    profile = await db.profiles.find_one({"email": data.email.lower()}, {"_id": 0})
    if not profile or not verify_password(data.password, profile.get("password", "")):
        logger.warning(f"Tentativa de login falhada: {data.email}")
        raise HTTPException(status_code=401, detail="Credenciais inválidas")

    if not profile.get("is_active", True):
        raise HTTPException(status_code=401, detail="Conta desativada")

    roles = await get_user_roles(profile["id"])
    return TokenResponse(
        access_token=create_token(profile["id"], profile["email"]),
        user=_user_response(profile, roles),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(user: CurrentUser = Depends(get_current_user)):
    profile = await db.profiles.find_one({"id": user.id}, {"_id": 0, "password": 0})
    return _user_response(profile, user.role_set)


@router.put("/profile", response_model=UserResponse)
async def update_profile(data: ProfileUpdate, user: CurrentUser = Depends(get_current_user)):
    update = {
        "name": sanitize_string(data.name, 100),
        "phone": data.phone,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    await db.profiles.update_one({"id": user.id}, {"$set": update})
    profile = await db.profiles.find_one({"id": user.id}, {"_id": 0, "password": 0})
    return _user_response(profile, user.role_set)


@router.post("/become-owner")
async def become_owner(user: CurrentUser = Depends(get_current_user)):
    """
    Torna o utilizador proprietário para poder anunciar imóveis.
    Sem aprovação; repetir o pedido não tem efeito.
    """
    if AppRole.OWNER in user.role_set:
        return {"success": True, "already_owner": True}

    await grant_role(user.id, AppRole.OWNER)
    logger.info(f"Utilizador {user.email} passou a proprietário")
    roles = await get_user_roles(user.id)
    return {"success": True, "already_owner": False, "roles": roles.as_list()}
