"""
====================================================================
LOAD TESTS - KÈSO IMÓVEIS API
====================================================================
Testes de carga usando Locust para validar:
- Performance da listagem pública de imóveis
- Funcionamento do Rate Limiting
- Tempos de resposta

ENDPOINTS TESTADOS:
- GET  /api/properties          (Sem rate limit específico)
- GET  /api/properties/featured (Sem rate limit específico)
- GET  /api/public/cep/{cep}    (Rate Limit: 30/minute)
- POST /api/leads               (Rate Limit: 5/minute)
- POST /api/auth/login          (Rate Limit: 10/minute)
- GET  /health                  (Sem rate limit)

COMO EXECUTAR:

1. Interface Web (recomendado):
   cd load_tests && locust -f locustfile.py --host=http://localhost:8001
   Abrir: http://localhost:8089

2. Linha de comando (headless):
   cd load_tests && locust -f locustfile.py \\
       --host=http://localhost:8001 \\
       --users=50 \\
       --spawn-rate=5 \\
       --run-time=60s \\
       --headless

MÉTRICAS A OBSERVAR:
- Requests/s
- Response times (p50, p95, p99)
- Taxa de erros 429 (Too Many Requests)
- Taxa de erros 5xx
====================================================================
"""
import random
import string
from locust import HttpUser, task, between, events


# ====================================================================
# CONFIGURAÇÃO
# ====================================================================
class TestConfig:
    """Configuração dos testes."""

    # Admin criado pelo seed.py
    VALID_EMAIL = "admin@kesoimoveis.com.br"
    VALID_PASSWORD = "keso2026"

    CEPS = ["01310100", "11045400", "11410000", "11320000", "11700000"]


# ====================================================================
# CONTADORES GLOBAIS
# ====================================================================
class RateLimitTracker:
    """Rastreia respostas 429 por grupo de endpoint."""

    GROUPS = ("login", "leads", "cep", "other")

    def __init__(self):
        self.rate_limit_hits = dict.fromkeys(self.GROUPS, 0)
        self.total_requests = dict.fromkeys(self.GROUPS, 0)

    def record_request(self, endpoint: str, status_code: int):
        key = self._get_key(endpoint)
        self.total_requests[key] += 1
        if status_code == 429:
            self.rate_limit_hits[key] += 1

    def _get_key(self, endpoint: str) -> str:
        for group in self.GROUPS[:-1]:
            if group in endpoint:
                return group
        return "other"

    def get_stats(self) -> dict:
        return {
            "rate_limit_hits": self.rate_limit_hits,
            "total_requests": self.total_requests,
            "rate_limit_working": any(
                self.rate_limit_hits[g] > 0 for g in ("login", "leads", "cep")
            ),
        }


rate_limit_tracker = RateLimitTracker()


# ====================================================================
# EVENT HANDLERS
# ====================================================================
@events.request.add_listener
def on_request(request_type, name, response_time, response_length,
               response, context, exception, start_time, url, **kwargs):
    if response is not None and exception is None:
        rate_limit_tracker.record_request(name, response.status_code)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    stats = rate_limit_tracker.get_stats()

    print("\n" + "=" * 60)
    print("RATE LIMITING VALIDATION REPORT")
    print("=" * 60)
    print("\n📊 Requests totais:")
    for endpoint, count in stats["total_requests"].items():
        print(f"   - {endpoint}: {count}")

    print("\n🛑 Rate Limit Hits (429):")
    for endpoint, count in stats["rate_limit_hits"].items():
        print(f"   - {endpoint}: {count}")

    if stats["rate_limit_working"]:
        print("\n✅ RATE LIMITING ESTÁ A FUNCIONAR!")
    else:
        print("\n⚠️  Nenhum 429 detectado - Rate Limit pode não estar ativo ou teste muito curto")

    print("=" * 60 + "\n")


# ====================================================================
# VISITANTE DO SITE
# ====================================================================
class VisitorUser(HttpUser):
    """
    Visitante anónimo: navega na listagem, abre imóveis e
    ocasionalmente deixa um lead.
    """

    wait_time = between(1, 3)
    property_ids = []

    def on_start(self):
        response = self.client.get("/api/properties", params={"limit": 50}, name="/api/properties")
        if response.status_code == 200:
            self.property_ids = [p["id"] for p in response.json()]

    @task(5)
    def list_properties(self):
        params = random.choice([
            {},
            {"finalidade": "buy"},
            {"finalidade": "rent", "min_bedrooms": 2},
            {"max_price": 800000},
        ])
        self.client.get("/api/properties", params=params, name="/api/properties")

    @task(2)
    def featured(self):
        self.client.get("/api/properties/featured", name="/api/properties/featured")

    @task(3)
    def property_detail(self):
        if not self.property_ids:
            return
        property_id = random.choice(self.property_ids)
        with self.client.get(
            f"/api/properties/{property_id}",
            name="/api/properties/[id]",
            catch_response=True
        ) as response:
            # O imóvel pode ter saído de "ativo" durante o teste
            if response.status_code in [200, 404]:
                response.success()
            else:
                response.failure(f"Unexpected status: {response.status_code}")

    @task(1)
    def cep_lookup(self):
        with self.client.get(
            f"/api/public/cep/{random.choice(TestConfig.CEPS)}",
            name="/api/public/cep/[cep]",
            catch_response=True
        ) as response:
            # 502 quando o ViaCEP está indisponível
            if response.status_code in [200, 404, 429, 502]:
                response.success()
            else:
                response.failure(f"Unexpected status: {response.status_code}")

    @task(1)
    def send_lead(self):
        if not self.property_ids:
            return
        unique_id = ''.join(random.choices(string.ascii_lowercase, k=8))
        with self.client.post(
            "/api/leads",
            json={
                "property_id": random.choice(self.property_ids),
                "name": f"Teste Carga {unique_id}",
                "phone": f"119{random.randint(10000000, 99999999)}",
                "email": f"loadtest_{unique_id}@example.com",
                "message": "Teste de carga automatizado",
            },
            name="/api/leads",
            catch_response=True
        ) as response:
            if response.status_code in [201, 404, 429]:
                response.success()
            else:
                response.failure(f"Unexpected status: {response.status_code}")

    @task(1)
    def health_check(self):
        self.client.get("/health", name="/health")


# ====================================================================
# ADMIN (autenticado)
# ====================================================================
class AdminUser(HttpUser):
    """Admin que acompanha a fila de aprovação."""

    wait_time = between(2, 5)
    weight = 1
    token = None

    def on_start(self):
        response = self.client.post(
            "/api/auth/login",
            json={"email": TestConfig.VALID_EMAIL, "password": TestConfig.VALID_PASSWORD},
            name="/api/auth/login (admin)"
        )
        if response.status_code == 200:
            self.token = response.json().get("access_token")

    @task
    def pending_queue(self):
        if not self.token:
            return
        self.client.get(
            "/api/admin/properties",
            params={"status": "pending"},
            headers={"Authorization": f"Bearer {self.token}"},
            name="/api/admin/properties?status=pending"
        )


# ====================================================================
# UTILIZADOR AGRESSIVO (para testar rate limiting)
# ====================================================================
class AggressiveUser(HttpUser):
    """Spam de logins; deve receber 429 rapidamente."""

    wait_time = between(0.1, 0.5)
    weight = 1

    @task
    def spam_login(self):
        with self.client.post(
            "/api/auth/login",
            json={"email": f"spam{random.randint(1, 100)}@test.com", "password": "testpassword"},
            name="/api/auth/login (spam)",
            catch_response=True
        ) as response:
            if response.status_code in [200, 401, 429]:
                response.success()
            else:
                response.failure(f"Unexpected: {response.status_code}")
