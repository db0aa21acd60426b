"""
Consulta de endereço por CEP (ViaCEP).

    GET https://viacep.com.br/ws/01310100/json/
    -> {"cep": "01310-100", "logradouro": "Avenida Paulista", "bairro": "Bela Vista",
        "localidade": "São Paulo", "uf": "SP", ...}

CEP inexistente devolve 200 com {"erro": true}.
"""
import re
import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from config import VIACEP_URL, VIACEP_TIMEOUT
from services.errors import ExternalServiceError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


class AddressData(BaseModel):
    cep: str
    street: str
    neighborhood: str
    city: str
    state: str


def clean_cep(cep: str) -> str:
    """Só dígitos; falha se não tiver exatamente 8."""
    digits = re.sub(r'\D', '', cep or '')
    if len(digits) != 8:
        raise InvalidInputError("CEP deve conter 8 dígitos")
    return digits


def format_cep(value: str) -> str:
    """'01310100' -> '01310-100' (aceita valores parciais)."""
    digits = re.sub(r'\D', '', value or '')
    if len(digits) <= 5:
        return digits
    return f"{digits[:5]}-{digits[5:8]}"


class ViaCepClient:
    def __init__(
        self,
        base_url: str = VIACEP_URL,
        timeout: float = VIACEP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.transport = transport

    async def lookup(self, cep: str) -> AddressData:
        # Validação antes de qualquer chamada de rede
        digits = clean_cep(cep)
        url = f"{self.base_url}/{digits}/json/"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"[VIACEP] Falha de rede ao consultar {digits}: {e}")
            raise ExternalServiceError("Erro ao consultar CEP")

        if response.status_code != 200:
            logger.warning(f"[VIACEP] HTTP {response.status_code} para {digits}")
            raise ExternalServiceError("Erro ao consultar CEP")

        try:
            data = response.json()
        except ValueError:
            raise ExternalServiceError("Erro ao consultar CEP")

        if data.get("erro"):
            raise NotFoundError("CEP não encontrado")

        return AddressData(
            cep=data.get("cep") or format_cep(digits),
            street=data.get("logradouro", ""),
            neighborhood=data.get("bairro", ""),
            city=data.get("localidade", ""),
            state=data.get("uf", ""),
        )


_client: Optional[ViaCepClient] = None


def get_cep_client() -> ViaCepClient:
    global _client
    if _client is None:
        _client = ViaCepClient()
    return _client
