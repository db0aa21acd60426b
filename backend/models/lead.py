"""
Modelo de dados para Leads (pedidos de contato sobre um imóvel)
"""
import re
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


class LeadCreate(BaseModel):
    """Formulário público 'Tenho Interesse'"""
    property_id: str
    name: str = Field(min_length=2, max_length=100)
    phone: str
    email: EmailStr = Field(max_length=255)
    message: Optional[str] = Field(default=None, max_length=500)

    @field_validator("phone", mode="before")
    @classmethod
    def digits_only(cls, v):
        digits = re.sub(r"\D", "", str(v or ""))
        if not re.fullmatch(r"\d{10,11}", digits):
            raise ValueError("Telefone inválido (use DDD + número)")
        return digits


class Lead(BaseModel):
    id: str
    property_id: str
    user_id: Optional[str] = None
    name: str
    phone: str
    email: str
    message: Optional[str] = None
    created_at: str


class LeadCreatedResponse(BaseModel):
    lead: Lead
    whatsapp_url: str
