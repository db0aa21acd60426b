"""
Modelos do catálogo gerido pelo admin: cidades, tipos de imóvel,
planos e serviços extra.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class CityCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    state: str = Field(min_length=2, max_length=2)
    slug: Optional[str] = None
    description: Optional[str] = None

    @field_validator("state")
    @classmethod
    def upper_state(cls, v: str) -> str:
        return v.strip().upper()


class CityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    state: Optional[str] = Field(default=None, min_length=2, max_length=2)
    slug: Optional[str] = None
    description: Optional[str] = None

    @field_validator("state")
    @classmethod
    def upper_state(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class City(BaseModel):
    id: str
    name: str
    state: str
    slug: str
    description: Optional[str] = None
    created_at: str


class PropertyTypeCreate(BaseModel):
    name: str = Field(min_length=2, max_length=60)
    slug: Optional[str] = None
    code_prefix: str = Field(default="IMV", min_length=1, max_length=5)
    description: Optional[str] = None
    icon: Optional[str] = None
    active: bool = True
    display_order: int = 0


class PropertyTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=60)
    slug: Optional[str] = None
    code_prefix: Optional[str] = Field(default=None, min_length=1, max_length=5)
    description: Optional[str] = None
    icon: Optional[str] = None
    active: Optional[bool] = None
    display_order: Optional[int] = None


class PropertyType(BaseModel):
    id: str
    name: str
    slug: str
    code_prefix: str
    description: Optional[str] = None
    icon: Optional[str] = None
    active: bool = True
    display_order: int = 0
    created_at: Optional[str] = None


class PlanCreate(BaseModel):
    name: str = Field(min_length=2)
    slug: str = Field(min_length=2)
    description: Optional[str] = None
    price: float = Field(ge=0)
    duration_days: int = Field(gt=0)
    features: List[str] = []
    max_properties: Optional[int] = Field(default=None, gt=0)
    featured: bool = False
    active: bool = True
    display_order: int = 0


class PlanUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    duration_days: Optional[int] = Field(default=None, gt=0)
    features: Optional[List[str]] = None
    max_properties: Optional[int] = Field(default=None, gt=0)
    featured: Optional[bool] = None
    active: Optional[bool] = None
    display_order: Optional[int] = None


class Plan(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    price: float
    duration_days: int
    features: List[str] = []
    max_properties: Optional[int] = None
    featured: bool = False
    active: bool = True
    display_order: int = 0
    created_at: str
    updated_at: str


class CheckoutRequest(BaseModel):
    property_id: str


class PropertyPlan(BaseModel):
    id: str
    property_id: str
    plan_id: str
    user_id: str
    status: str
    started_at: str
    expires_at: str
    auto_renew: bool = False
    created_at: str
    updated_at: str


class ServiceCreate(BaseModel):
    name: str = Field(min_length=2)
    description: Optional[str] = None
    price: float = Field(ge=0)
    photos_included: bool = False
    video_included: bool = False
    legal_assistance: bool = False


class ServiceOrderCreate(BaseModel):
    service_id: str
    property_id: str


class ServiceOrderStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def known_status(cls, v: str) -> str:
        if v not in ("completed", "cancelled"):
            raise ValueError("Status deve ser 'completed' ou 'cancelled'")
        return v
