"""
====================================================================
ROTAS PÚBLICAS - KÈSO IMÓVEIS
====================================================================
Endpoints sem autenticação usados pelos formulários do site.

SEGURANÇA: Rate limiting aplicado para prevenir abusos.
====================================================================
"""
from fastapi import APIRouter, Depends, Request

from services.viacep import AddressData, ViaCepClient, get_cep_client
from middleware.rate_limit import limit_lookup


router = APIRouter(prefix="/public", tags=["Public"])


@router.get("/cep/{cep}", response_model=AddressData)
@limit_lookup()
async def lookup_cep(request: Request, cep: str, cep_client: ViaCepClient = Depends(get_cep_client)):
    """
    Endereço a partir do CEP (preenchimento automático dos formulários).
    Aceita com ou sem hífen: '01310-100' ou '01310100'.
    """
    return await cep_client.lookup(cep)
