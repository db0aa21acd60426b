"""
Modelos dos formulários assinados: Captação de imóvel e
Autorização de comercialização.
"""
from typing import Optional
from datetime import date
from enum import Enum
from pydantic import BaseModel, EmailStr, Field


CAPTACAO_TEMPLATE_SLUG = "captacao-imovel"
AUTORIZACAO_TEMPLATE_SLUG = "autorizacao-comercializacao"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"
    COMPLETED = "completed"


class CaptacaoForm(BaseModel):
    """Ficha de captação preenchida pelo captador com o proprietário."""
    # Dados do captador
    captador: str = Field(min_length=1)
    data_captacao: str = Field(default_factory=lambda: date.today().isoformat())

    # Dados do proprietário
    owner_name: str = Field(min_length=1)
    owner_email: EmailStr
    owner_phones: str = Field(min_length=1)

    # Informações básicas
    padrao: str = Field(min_length=1)
    finalidade_tipo: str = Field(min_length=1)  # Residencial, Comercial, Terreno
    tem_locacao: str = Field(min_length=1)  # Sim / Não
    financiado: Optional[str] = None
    valor_venda: Optional[str] = None
    valor_locacao: Optional[str] = None

    # Localização
    localizacao_qualidade: str = Field(min_length=1)
    endereco: str = Field(min_length=1)
    bairro: str = Field(min_length=1)
    cidade: str = Field(min_length=1)
    estado: str = Field(min_length=2, max_length=2)
    cep: str = Field(min_length=8)

    # Características físicas
    nome_condominio: Optional[str] = None
    valor_condominio: Optional[str] = None
    area_total: str = Field(min_length=1)
    area_construida: Optional[str] = None
    face: Optional[str] = None
    caracteristicas_vaga: Optional[str] = None

    # Situação e ocupação
    situacao_imovel: str = Field(min_length=1)
    ocupado_ate: Optional[str] = None
    ocupado_pelo: Optional[str] = None
    autorizado_visita: str = Field(min_length=1)

    # Informações comerciais
    exclusividade: str = Field(min_length=1)
    comissao: Optional[str] = None
    inicio_contrato: Optional[str] = None
    validade_contrato: Optional[str] = None
    condicao_comercial: Optional[str] = None

    # Documentação e despesas
    valor_iptu: Optional[str] = None
    iptu_mensal: Optional[str] = None
    eletricidade: Optional[str] = None
    valor_agua: Optional[str] = None
    local_chave: Optional[str] = None
    ano_construcao: Optional[str] = None
    ano_reforma: Optional[str] = None
    placa_local: Optional[str] = None

    # Descrições
    descricao_anuncios: str = Field(min_length=1)
    comentario_interno: Optional[str] = None


class AutorizacaoForm(BaseModel):
    """Autorização de comercialização assinada pelo proprietário."""
    owner_name: str = Field(min_length=1)
    owner_cpf: str = Field(min_length=11)
    owner_rg: str = Field(min_length=1)
    owner_address: str = Field(min_length=1)
    owner_city: str = Field(min_length=1)
    owner_state: str = Field(min_length=2)
    owner_cep: str = Field(min_length=8)
    owner_phone: str = Field(min_length=10)
    owner_email: EmailStr
    property_type: str = Field(min_length=1)
    property_address: str = Field(min_length=1)
    property_neighborhood: str = Field(min_length=1)
    property_city: str = Field(min_length=1)
    property_area: str = Field(min_length=1)
    property_bedrooms: Optional[str] = None
    property_bathrooms: Optional[str] = None
    property_parking: Optional[str] = None
    sale_type: str = Field(min_length=1)
    sale_price: Optional[str] = None
    rent_price: Optional[str] = None
    commission: str = Field(min_length=1)
    exclusive: str = Field(min_length=1)
    contract_duration: str = Field(min_length=1)


class CaptacaoSubmission(BaseModel):
    form: CaptacaoForm
    signature: Optional[str] = None  # data URL produzido pelo SignaturePad


class AutorizacaoSubmission(BaseModel):
    property_id: str
    form: AutorizacaoForm
    signature: Optional[str] = None


class FormSubmission(BaseModel):
    id: str
    property_id: Optional[str] = None
    property_code: str
    template_id: Optional[str] = None
    form_data: dict
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_cpf: Optional[str] = None
    signature_url: Optional[str] = None
    signature_method: Optional[str] = None
    status: SubmissionStatus = SubmissionStatus.PENDING
    signed_at: Optional[str] = None
    submitted_by: Optional[str] = None
    created_at: str
    updated_at: str


class IntakeResult(BaseModel):
    property_id: str
    property_code: str
    submission_id: str
    signature_url: str
    city_created: bool = False
