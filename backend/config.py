import os
import sys
from pathlib import Path
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


# ====================================================================
# VALIDAÇÃO DE VARIÁVEIS DE AMBIENTE CRÍTICAS
# ====================================================================
def get_required_env(key: str) -> str:
    """Obter variável de ambiente obrigatória. Falha se não existir."""
    value = os.environ.get(key)
    if not value:
        print(f"❌ ERRO FATAL: Variável de ambiente '{key}' não definida!", file=sys.stderr)
        print("   Configure no arquivo .env ou nas variáveis de ambiente do sistema.", file=sys.stderr)
        sys.exit(1)
    return value


# ====================================================================
# JWT CONFIG (OBRIGATÓRIO)
# ====================================================================
JWT_SECRET = get_required_env('JWT_SECRET')
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = int(os.environ.get('JWT_EXPIRATION_HOURS', '24'))

if 'change-in-production' in JWT_SECRET or JWT_SECRET == 'super-secret-key':
    print("⚠️  AVISO: JWT_SECRET parece ser um valor de exemplo. Altere em produção!", file=sys.stderr)


# ====================================================================
# DATABASE CONFIG (OBRIGATÓRIO)
# ====================================================================
MONGO_URL = get_required_env('MONGO_URL')
DB_NAME = get_required_env('DB_NAME')


# ====================================================================
# CORS CONFIG (FAIL-SECURE)
# ====================================================================
# Formato: "https://domain1.com,https://domain2.com"
# ====================================================================
_cors_env = os.environ.get('CORS_ORIGINS', '').strip().strip('"').strip("'")

if not _cors_env:
    raise ValueError(
        "❌ ERRO FATAL: CORS_ORIGINS não definido!\n"
        "   Exemplo: CORS_ORIGINS='https://kesoimoveis.com.br'"
    )

if _cors_env == '*':
    raise ValueError(
        "❌ ERRO FATAL: CORS_ORIGINS='*' não é permitido!\n"
        "   Configure origens específicas: CORS_ORIGINS='https://kesoimoveis.com.br'"
    )

CORS_ORIGINS = []
_invalid_origins = []

for origin in _cors_env.split(','):
    origin = origin.strip()
    if not origin:
        continue

    if origin.startswith('https://'):
        CORS_ORIGINS.append(origin)
    elif origin.startswith('http://localhost') or origin.startswith('http://127.0.0.1'):
        # localhost apenas para desenvolvimento
        CORS_ORIGINS.append(origin)
    elif origin.startswith('http://'):
        _invalid_origins.append(f"{origin} (HTTP não seguro)")
    else:
        _invalid_origins.append(f"{origin} (formato inválido)")

if _invalid_origins:
    print(f"⚠️  Origens CORS ignoradas: {', '.join(_invalid_origins)}", file=sys.stderr)

if not CORS_ORIGINS:
    raise ValueError(
        f"❌ ERRO FATAL: Nenhuma origem CORS válida configurada!\n"
        f"   Origens rejeitadas: {', '.join(_invalid_origins) if _invalid_origins else 'nenhuma fornecida'}"
    )

CORS_ALLOW_CREDENTIALS = os.environ.get('CORS_ALLOW_CREDENTIALS', 'true').lower() == 'true'
CORS_ALLOW_METHODS = os.environ.get('CORS_ALLOW_METHODS', 'GET,POST,PUT,DELETE,OPTIONS,PATCH').split(',')
CORS_ALLOW_HEADERS = os.environ.get('CORS_ALLOW_HEADERS', 'Authorization,Content-Type,Accept,Origin,X-Requested-With').split(',')
CORS_MAX_AGE = int(os.environ.get('CORS_MAX_AGE', '600'))


# ====================================================================
# SENTRY CONFIG (OBSERVABILIDADE)
# ====================================================================
# SENTRY_DSN é opcional - se não definido, Sentry fica desativado
# ====================================================================
SENTRY_DSN = os.environ.get('SENTRY_DSN', '')
SENTRY_ENVIRONMENT = os.environ.get('SENTRY_ENVIRONMENT', 'development')
SENTRY_TRACES_SAMPLE_RATE = float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', '1.0'))
SENTRY_PROFILES_SAMPLE_RATE = float(os.environ.get('SENTRY_PROFILES_SAMPLE_RATE', '0.1'))
SENTRY_SEND_DEFAULT_PII = os.environ.get('SENTRY_SEND_DEFAULT_PII', 'false').lower() == 'true'


# ====================================================================
# ARMAZENAMENTO (S3 / R2 / MinIO)
# ====================================================================
# Fotos dos imóveis e imagens de assinatura dos formulários.
# ====================================================================
AWS_ACCESS_KEY = os.environ.get('AWS_ACCESS_KEY_ID')
AWS_SECRET_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
AWS_BUCKET_NAME = os.environ.get('AWS_BUCKET_NAME', 'property-photos')
AWS_REGION = os.environ.get('AWS_REGION', 'sa-east-1')
AWS_ENDPOINT_URL = os.environ.get('AWS_ENDPOINT_URL') or None
# URL pública base (CDN). Se vazio, usa o endpoint padrão do bucket.
STORAGE_PUBLIC_BASE_URL = os.environ.get('STORAGE_PUBLIC_BASE_URL', '').rstrip('/')
STORAGE_MAX_IMAGE_MB = int(os.environ.get('STORAGE_MAX_IMAGE_MB', '10'))


# ====================================================================
# CONSULTA DE CEP (ViaCEP)
# ====================================================================
VIACEP_URL = os.environ.get('VIACEP_URL', 'https://viacep.com.br/ws').rstrip('/')
VIACEP_TIMEOUT = float(os.environ.get('VIACEP_TIMEOUT', '10'))


# ====================================================================
# REGRAS DE NEGÓCIO DOS ANÚNCIOS
# ====================================================================
# Período de teste de anúncios diretos do proprietário
OWNER_TRIAL_DAYS = int(os.environ.get('OWNER_TRIAL_DAYS', '30'))
# Janela concedida ao renovar um anúncio expirado
RENEWAL_DAYS = int(os.environ.get('RENEWAL_DAYS', '30'))
# Máximo de imóveis em destaque ao mesmo tempo
FEATURED_LIMIT = int(os.environ.get('FEATURED_LIMIT', '6'))

# Número do WhatsApp comercial (formato internacional, só dígitos)
WHATSAPP_NUMBER = os.environ.get('WHATSAPP_NUMBER', '5511951747705')
SITE_NAME = os.environ.get('SITE_NAME', 'KÈSO Imóveis')
