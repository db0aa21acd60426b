import uuid
import logging
from datetime import datetime, timezone, timedelta
from typing import List, Optional
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
import bcrypt

from config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRATION_HOURS
from database import db
from models.auth import AppRole, CurrentUser, RoleSet


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))


def create_token(user_id: str, email: str) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRATION_HOURS)
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


async def get_user_roles(user_id: str) -> RoleSet:
    rows = await db.user_roles.find({"user_id": user_id}, {"_id": 0, "role": 1}).to_list(10)
    return RoleSet.from_strings(r["role"] for r in rows)


async def grant_role(user_id: str, role: AppRole) -> bool:
    """Insere a role se ainda não existir. Devolve True se inseriu."""
    existing = await db.user_roles.find_one({"user_id": user_id, "role": role.value})
    if existing:
        return False
    await db.user_roles.insert_one({
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "role": role.value,
        "created_at": datetime.now(timezone.utc).isoformat()
    })
    logger.info(f"Role '{role.value}' atribuída ao utilizador {user_id}")
    return True


async def _resolve_user(token: str) -> CurrentUser:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expirado")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Token inválido")

    profile = await db.profiles.find_one({"id": payload["sub"]}, {"_id": 0, "password": 0})
    if not profile:
        raise HTTPException(status_code=401, detail="Usuário não encontrado")
    if not profile.get("is_active", True):
        raise HTTPException(status_code=401, detail="Conta desativada")

    roles = await get_user_roles(profile["id"])
    return CurrentUser(
        id=profile["id"],
        email=profile["email"],
        name=profile["name"],
        phone=profile.get("phone"),
        roles=sorted(AppRole(r) for r in roles.as_list()),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Autenticação necessária")
    return await _resolve_user(credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """Para endpoints públicos que registam o utilizador quando existe."""
    if credentials is None:
        return None
    try:
        return await _resolve_user(credentials.credentials)
    except HTTPException:
        return None


def require_roles(allowed_roles: List[AppRole]):
    async def role_checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        role_set = user.role_set
        if not any(role_set.grants(role) for role in allowed_roles):
            logger.warning(f"Acesso negado a {user.email} (roles={role_set.as_list()}, exigido={[r.value for r in allowed_roles]})")
            raise HTTPException(status_code=403, detail="Acesso negado")
        return user
    return role_checker


require_admin = require_roles([AppRole.ADMIN])
require_owner = require_roles([AppRole.OWNER])
