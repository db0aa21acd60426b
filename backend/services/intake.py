"""
====================================================================
FORMULÁRIOS ASSINADOS - CAPTAÇÃO E AUTORIZAÇÃO
====================================================================
Fluxo da captação:
1. Resolve a cidade por nome + UF (cria se não existir)
2. Resolve o tipo de imóvel pelo slug
3. Cria o imóvel em 'pending'
4. Envia a imagem da assinatura para o armazenamento
5. Resolve o template do formulário
6. Grava a submissão com todos os campos do formulário
7. Devolve o código do imóvel gerado

Cada passo com efeito regista a sua compensação. Se um passo
posterior falhar, as compensações correm em ordem inversa e o
erro original sobe para o cliente: não ficam imóveis órfãos.
====================================================================
"""
import uuid
import logging
from typing import Awaitable, Callable, List, Tuple

from models.auth import CurrentUser
from models.form import (
    CaptacaoForm, AutorizacaoForm, SubmissionStatus, IntakeResult,
    CAPTACAO_TEMPLATE_SLUG, AUTORIZACAO_TEMPLATE_SLUG,
)
from models.property import Finalidade, PropertyStatus
from services.errors import InvalidInputError, NotFoundError
from services.lifecycle import utcnow
from services.properties import insert_property, get_owned_property
from services.storage import decode_data_url, inspect_image
from utils.input_sanitization import slugify, parse_brl_number, sanitize_string

logger = logging.getLogger(__name__)


# Tipo do formulário -> slug do tipo de imóvel
FINALIDADE_TIPO_TO_SLUG = {
    "Residencial": "casa",
    "Comercial": "comercial",
    "Terreno": "terreno",
}
DEFAULT_TYPE_SLUG = "casa"


class Compensations:
    """Pilha de ações de desfazer, executadas em ordem inversa."""

    def __init__(self, label: str):
        self.label = label
        self._steps: List[Tuple[str, Callable[[], Awaitable]]] = []

    def add(self, description: str, undo: Callable[[], Awaitable]):
        self._steps.append((description, undo))

    async def run(self):
        while self._steps:
            description, undo = self._steps.pop()
            try:
                await undo()
                logger.info(f"[{self.label}] Compensado: {description}")
            except Exception:
                logger.exception(f"[{self.label}] Falha ao compensar: {description}")


async def resolve_or_create_city(db, name: str, state: str) -> Tuple[dict, bool]:
    """Cidade com nome e UF exatos; cria se não existir. Devolve (cidade, criada)."""
    name = sanitize_string(name, 100)
    state = state.strip().upper()

    city = await db.cities.find_one({"name": name, "state": state}, {"_id": 0})
    if city:
        return city, False

    city = {
        "id": str(uuid.uuid4()),
        "name": name,
        "state": state,
        "slug": slugify(name),
        "description": None,
        "created_at": utcnow().isoformat(),
    }
    await db.cities.insert_one(city)
    city.pop("_id", None)
    logger.info(f"Cidade criada pela captação: {name}/{state}")
    return city, True


async def resolve_property_type(db, slug: str) -> dict:
    property_type = await db.property_types.find_one({"slug": slug}, {"_id": 0})
    if not property_type:
        raise NotFoundError(f"Tipo de imóvel '{slug}' não encontrado")
    return property_type


async def resolve_template(db, slug: str) -> dict:
    template = await db.form_templates.find_one(
        {"slug": slug, "is_active": {"$ne": False}}, {"_id": 0}
    )
    if not template:
        raise NotFoundError("Template não encontrado")
    return template


def _prepare_signature(signature: str) -> Tuple[bytes, str, str]:
    if not signature:
        raise InvalidInputError("Assinatura obrigatória")
    content = decode_data_url(signature)
    extension, content_type = inspect_image(content)
    return content, extension, content_type


async def _upload_signature(storage, undo: Compensations, property_code: str,
                            content: bytes, extension: str, content_type: str) -> str:
    key = f"signatures/{property_code}_{int(utcnow().timestamp() * 1000)}.{extension}"
    url = await storage.upload(key, content, content_type)
    undo.add(f"assinatura {key}", lambda: storage.delete(key))
    return url


async def _insert_submission(db, *, property_id: str, property_code: str, template: dict,
                             form_data: dict, client_name: str, client_email: str,
                             signature_url: str, user: CurrentUser, client_cpf: str = None) -> dict:
    now = utcnow().isoformat()
    submission = {
        "id": str(uuid.uuid4()),
        "property_id": property_id,
        "property_code": property_code,
        "template_id": template["id"],
        "form_data": form_data,
        "client_name": client_name,
        "client_email": client_email,
        "client_cpf": client_cpf,
        "signature_url": signature_url,
        "signature_method": "digital",
        "status": SubmissionStatus.SIGNED.value,
        "signed_at": now,
        "submitted_by": user.id,
        "created_at": now,
        "updated_at": now,
    }
    await db.form_submissions.insert_one(submission)
    submission.pop("_id", None)
    return submission


async def submit_captacao(db, storage, user: CurrentUser, form: CaptacaoForm, signature: str) -> IntakeResult:
    content, extension, content_type = _prepare_signature(signature)
    undo = Compensations("captação")

    try:
        city, city_created = await resolve_or_create_city(db, form.cidade, form.estado)
        if city_created:
            city_id = city["id"]
            undo.add(f"cidade {city['name']}/{city['state']}",
                     lambda: db.cities.delete_one({"id": city_id}))

        type_slug = FINALIDADE_TIPO_TO_SLUG.get(form.finalidade_tipo, DEFAULT_TYPE_SLUG)
        property_type = await resolve_property_type(db, type_slug)

        fields = {
            "city_id": city["id"],
            "finalidade": (Finalidade.RENT if form.tem_locacao == "Sim" else Finalidade.BUY).value,
            "address": sanitize_string(form.endereco),
            "neighborhood": sanitize_string(form.bairro, 100),
            "price": parse_brl_number(form.valor_venda) or parse_brl_number(form.valor_locacao) or 0.0,
            "area": parse_brl_number(form.area_total),
            "bedrooms": None,
            "bathrooms": None,
            "parking_spaces": None,
            "description": sanitize_string(form.descricao_anuncios, 5000),
        }
        # Captação é curadoria da equipa: não é anúncio direto nem tem prazo de teste
        state = {
            "status": PropertyStatus.PENDING.value,
            "verified": False,
            "is_owner_direct": False,
            "expires_at": None,
        }
        prop = await insert_property(db, user.id, fields, property_type, state)
        property_id = prop["id"]
        undo.add(f"imóvel {prop['property_code']}",
                 lambda: db.properties.delete_one({"id": property_id}))

        signature_url = await _upload_signature(
            storage, undo, prop["property_code"], content, extension, content_type
        )

        template = await resolve_template(db, CAPTACAO_TEMPLATE_SLUG)

        submission = await _insert_submission(
            db,
            property_id=prop["id"],
            property_code=prop["property_code"],
            template=template,
            form_data=form.model_dump(mode="json"),
            client_name=form.owner_name,
            client_email=form.owner_email,
            signature_url=signature_url,
            user=user,
        )
    except Exception:
        logger.warning(f"Captação falhou para {user.email}; a desfazer passos concluídos")
        await undo.run()
        raise

    logger.info(f"Captação registada: imóvel {prop['property_code']} por {user.email}")
    return IntakeResult(
        property_id=prop["id"],
        property_code=prop["property_code"],
        submission_id=submission["id"],
        signature_url=signature_url,
        city_created=city_created,
    )


async def submit_autorizacao(db, storage, user: CurrentUser, property_id: str,
                             form: AutorizacaoForm, signature: str) -> dict:
    content, extension, content_type = _prepare_signature(signature)
    prop = await get_owned_property(db, property_id, user)
    if not prop.get("property_code"):
        raise InvalidInputError("Imóvel sem código")

    undo = Compensations("autorização")
    try:
        signature_url = await _upload_signature(
            storage, undo, prop["property_code"], content, extension, content_type
        )
        template = await resolve_template(db, AUTORIZACAO_TEMPLATE_SLUG)
        submission = await _insert_submission(
            db,
            property_id=prop["id"],
            property_code=prop["property_code"],
            template=template,
            form_data=form.model_dump(mode="json"),
            client_name=form.owner_name,
            client_email=form.owner_email,
            client_cpf=form.owner_cpf,
            signature_url=signature_url,
            user=user,
        )
    except Exception:
        await undo.run()
        raise

    logger.info(f"Autorização de comercialização registada: {prop['property_code']} por {user.email}")
    return submission
