"""
Modelo de dados para Imóveis anunciados no marketplace
Inclui anúncios verificados pela equipa e anúncios diretos do proprietário
"""
from typing import Optional, List
from pydantic import BaseModel, Field
from enum import Enum


class PropertyStatus(str, Enum):
    """Estados possíveis de um anúncio"""
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    PAUSED = "paused"

    @classmethod
    def normalize(cls, value: str) -> "PropertyStatus":
        """Formulários antigos gravavam 'pending_approval'."""
        if value == "pending_approval":
            return cls.PENDING
        return cls(value)


class Finalidade(str, Enum):
    """Finalidade do anúncio"""
    BUY = "buy"
    RENT = "rent"


class PropertyCreate(BaseModel):
    """Dados para cadastrar um imóvel"""
    type_id: str
    finalidade: Finalidade = Finalidade.BUY
    address: str = Field(min_length=5)
    neighborhood: Optional[str] = None
    city_id: str
    price: float = Field(ge=0)
    area: Optional[float] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    parking_spaces: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class PropertyUpdate(BaseModel):
    """Campos editáveis pelo proprietário"""
    type_id: Optional[str] = None
    finalidade: Optional[Finalidade] = None
    address: Optional[str] = Field(default=None, min_length=5)
    neighborhood: Optional[str] = None
    city_id: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    area: Optional[float] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    parking_spaces: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class PropertyListItem(BaseModel):
    """Versão resumida para listagens"""
    id: str
    property_code: Optional[str] = None
    type: Optional[str] = None
    finalidade: Finalidade
    address: str
    neighborhood: Optional[str] = None
    city_id: str
    city_name: Optional[str] = None
    city_state: Optional[str] = None
    price: float
    area: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    parking_spaces: Optional[int] = None
    status: PropertyStatus
    verified: bool = False
    is_owner_direct: bool = False
    featured: bool = False
    photo_url: Optional[str] = None
    expires_at: Optional[str] = None
    days_remaining: Optional[int] = None
    created_at: str


class PropertyPhoto(BaseModel):
    id: str
    property_id: str
    url: str
    storage_key: Optional[str] = None
    is_main: bool = False
    created_at: str


class ApproveRequest(BaseModel):
    verify: bool = True


class StatusChangeRequest(BaseModel):
    status: PropertyStatus


class FlagUpdate(BaseModel):
    value: bool
