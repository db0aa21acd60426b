import httpx
import pytest

from server import app
from services.viacep import ViaCepClient, format_cep, get_cep_client


VIACEP_PAULISTA = {
    "cep": "01310-100",
    "logradouro": "Avenida Paulista",
    "complemento": "de 612 a 1510 - lado par",
    "bairro": "Bela Vista",
    "localidade": "São Paulo",
    "uf": "SP",
    "ibge": "3550308",
}


@pytest.fixture
def viacep_calls():
    """Substitui o ViaCEP por um MockTransport e regista os pedidos feitos."""
    calls = []
    responses = {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        digits = request.url.path.split("/")[2]
        status, payload = responses.get(digits, (200, {"erro": "true"}))
        return httpx.Response(status, json=payload)

    cep_client = ViaCepClient(base_url="https://viacep.test/ws", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_cep_client] = lambda: cep_client
    yield calls, responses
    app.dependency_overrides.pop(get_cep_client, None)


@pytest.mark.asyncio
async def test_cep_lookup_resolves_address(client, viacep_calls):
    calls, responses = viacep_calls
    responses["01310100"] = (200, VIACEP_PAULISTA)

    response = await client.get("/public/cep/01310-100")
    assert response.status_code == 200
    assert response.json() == {
        "cep": "01310-100",
        "street": "Avenida Paulista",
        "neighborhood": "Bela Vista",
        "city": "São Paulo",
        "state": "SP",
    }
    assert calls == ["https://viacep.test/ws/01310100/json/"]


@pytest.mark.asyncio
async def test_cep_with_seven_digits_never_hits_network(client, viacep_calls):
    calls, _ = viacep_calls

    response = await client.get("/public/cep/0131010")
    assert response.status_code == 400
    assert response.json()["detail"] == "CEP deve conter 8 dígitos"
    assert calls == []


@pytest.mark.asyncio
async def test_unknown_cep(client, viacep_calls):
    response = await client.get("/public/cep/99999999")
    assert response.status_code == 404
    assert response.json()["detail"] == "CEP não encontrado"


@pytest.mark.asyncio
async def test_viacep_failure_is_bad_gateway(client, viacep_calls):
    _, responses = viacep_calls
    responses["01310100"] = (500, {})

    response = await client.get("/public/cep/01310100")
    assert response.status_code == 502
    assert response.json()["detail"] == "Erro ao consultar CEP"


@pytest.mark.asyncio
async def test_viacep_network_error_is_bad_gateway(client):
    def handler(request):
        raise httpx.ConnectError("sem rede", request=request)

    cep_client = ViaCepClient(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_cep_client] = lambda: cep_client

    response = await client.get("/public/cep/01310100")
    assert response.status_code == 502


def test_format_cep():
    assert format_cep("01310100") == "01310-100"
    assert format_cep("01310") == "01310"


@pytest.mark.asyncio
async def test_health_live(client):
    # As sondas de saúde ficam fora do prefixo /api
    response = await client.get("http://testserver/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}
