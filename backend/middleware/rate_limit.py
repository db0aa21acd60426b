"""
====================================================================
RATE LIMITING
====================================================================
Limites por IP nos endpoints públicos (login, registo, leads,
consulta de CEP) e nos uploads.
====================================================================
"""
import os
import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# Formato: "X/period" (second, minute, hour, day)
RATE_LIMITS = {
    # Login: restritivo contra força bruta
    "auth": os.environ.get("RATE_LIMIT_AUTH", "10/minute"),
    "register": os.environ.get("RATE_LIMIT_REGISTER", "5/hour"),
    # Formulário "Tenho Interesse" e demais escritas públicas
    "public_write": os.environ.get("RATE_LIMIT_PUBLIC_WRITE", "5/minute"),
    # Consulta de CEP (repassada ao ViaCEP)
    "lookup": os.environ.get("RATE_LIMIT_LOOKUP", "30/minute"),
    "upload": os.environ.get("RATE_LIMIT_UPLOAD", "20/minute"),
    "default": os.environ.get("RATE_LIMIT_DEFAULT", "200/minute"),
}


def _get_client_ip(request: Request) -> str:
    """IP real do cliente, considerando proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # Nginx
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMITS["default"]],
    headers_enabled=False,
    strategy="fixed-window"
)


def limit_auth():
    return limiter.limit(RATE_LIMITS["auth"])


def limit_register():
    return limiter.limit(RATE_LIMITS["register"])


def limit_public_write():
    return limiter.limit(RATE_LIMITS["public_write"])


def limit_lookup():
    return limiter.limit(RATE_LIMITS["lookup"])


def limit_upload():
    return limiter.limit(RATE_LIMITS["upload"])


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Loga o evento e devolve 429."""
    client_ip = _get_client_ip(request)
    logger.warning(
        f"Rate limit excedido | IP: {client_ip} | Path: {request.url.path} | "
        f"Limite: {exc.detail}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Muitas requisições. Aguarde um momento e tente novamente.",
            "limit": str(exc.detail),
        },
        headers={"Retry-After": "60"}
    )


logger.info(f"Rate limiting configurado: {RATE_LIMITS}")
