from pydantic import BaseModel, EmailStr, Field
from typing import FrozenSet, Iterable, List, Optional
from enum import Enum


class AppRole(str, Enum):
    """
    Roles da aplicação. Conjunto fechado: um utilizador pode acumular
    vários (união), nunca um valor fora desta lista.
    """
    ADMIN = "admin"
    OWNER = "owner"
    BUYER = "buyer"

    @classmethod
    def parse(cls, role: str) -> Optional["AppRole"]:
        """Converte string vinda da DB; roles desconhecidas são ignoradas."""
        try:
            return cls(role.lower()) if role else None
        except ValueError:
            return None


class RoleSet:
    """
    Conjunto de roles de um utilizador e as decisões de autorização
    derivadas dele.
    """

    def __init__(self, roles: Iterable[AppRole] = ()):
        self._roles: FrozenSet[AppRole] = frozenset(roles)

    @classmethod
    def from_strings(cls, values: Iterable[str]) -> "RoleSet":
        parsed = (AppRole.parse(v) for v in values)
        return cls(r for r in parsed if r is not None)

    def has_role(self, role: AppRole) -> bool:
        return role in self._roles

    @property
    def is_admin(self) -> bool:
        return self.has_role(AppRole.ADMIN)

    @property
    def is_owner(self) -> bool:
        """Proprietário ou admin podem anunciar imóveis."""
        return self.has_role(AppRole.OWNER) or self.is_admin

    @property
    def is_user(self) -> bool:
        return len(self._roles) > 0

    def grants(self, role: AppRole) -> bool:
        if role is AppRole.ADMIN:
            return self.is_admin
        if role is AppRole.OWNER:
            return self.is_owner
        if role is AppRole.BUYER:
            return self.is_user
        raise ValueError(f"Role desconhecida: {role}")

    def as_list(self) -> List[str]:
        return sorted(r.value for r in self._roles)

    def __contains__(self, role: AppRole) -> bool:
        return self.has_role(role)

    def __repr__(self):
        return f"RoleSet({self.as_list()})"


class CurrentUser(BaseModel):
    """Contexto explícito do utilizador autenticado, resolvido por pedido."""
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    roles: List[AppRole] = []

    @property
    def role_set(self) -> RoleSet:
        return RoleSet(self.roles)

    @property
    def is_admin(self) -> bool:
        return self.role_set.is_admin

    @property
    def is_owner(self) -> bool:
        return self.role_set.is_owner


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=2, max_length=100)
    phone: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    roles: List[str] = []
    created_at: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ProfileUpdate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    phone: Optional[str] = None
