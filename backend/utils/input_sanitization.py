"""
====================================================================
INPUT SANITIZATION UTILITIES
====================================================================
Limpeza de texto livre vindo de formulários públicos (leads, captação)
e normalizações usadas pelo catálogo (slugs, valores em reais).

Utiliza a biblioteca 'bleach' para remoção segura de HTML.
====================================================================
"""
import re
import unicodedata
import logging
import bleach
from typing import Optional

logger = logging.getLogger(__name__)

# Nenhuma tag HTML é aceite em texto livre
ALLOWED_TAGS = []
ALLOWED_ATTRIBUTES = {}
ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']


def sanitize_string(value: str, max_length: int = 200) -> str:
    """
    Sanitiza uma string removendo HTML, caracteres nulos e espaços
    repetidos, truncando a max_length.
    """
    if not value:
        return ""

    if not isinstance(value, str):
        value = str(value)

    value = value.replace('\x00', '')

    value = bleach.clean(
        value,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True
    )

    # Entidades HTML que o bleach deixa escapadas
    value = re.sub(r'&[a-zA-Z]+;', '', value)
    value = re.sub(r'&#\d+;', '', value)
    value = re.sub(r'&#x[0-9a-fA-F]+;', '', value)

    value = ' '.join(value.split())

    if len(value) > max_length:
        value = value[:max_length]

    return value.strip()


def sanitize_multiline(value: Optional[str], max_length: int = 500) -> Optional[str]:
    """Como sanitize_string mas preserva quebras de linha (mensagens)."""
    if not value:
        return None
    lines = [sanitize_string(line, max_length) for line in value.splitlines()]
    cleaned = '\n'.join(line for line in lines if line)
    return cleaned[:max_length] or None


def slugify(value: str) -> str:
    """'São Paulo' -> 'sao-paulo'"""
    if not value:
        return ""
    normalized = unicodedata.normalize('NFKD', value)
    ascii_only = normalized.encode('ascii', 'ignore').decode('ascii')
    ascii_only = re.sub(r'[^\w\s-]', '', ascii_only).strip().lower()
    return re.sub(r'[\s_-]+', '-', ascii_only)


def parse_brl_number(value: Optional[str]) -> Optional[float]:
    """
    Converte valores digitados em formulários ('R$ 450.000,00', '450000',
    '87,5') para float. Devolve None para vazio ou ilegível.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = re.sub(r'[^\d,.-]', '', str(value))
    if not cleaned:
        return None

    if ',' in cleaned:
        # formato brasileiro: ponto de milhar, vírgula decimal
        cleaned = cleaned.replace('.', '').replace(',', '.')
    elif cleaned.count('.') > 1:
        cleaned = cleaned.replace('.', '')
    elif re.fullmatch(r'-?\d{1,3}\.\d{3}', cleaned):
        # '450.000' é milhar, não decimal
        cleaned = cleaned.replace('.', '')

    try:
        return float(cleaned)
    except ValueError:
        logger.warning(f"Valor numérico ilegível ignorado: {value!r}")
        return None
