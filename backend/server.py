"""
====================================================================
KÈSO IMÓVEIS - BACKEND SERVER
====================================================================
Marketplace de imóveis: anúncios verificados e anúncios diretos do
proprietário, leads, planos e formulários de captação assinados.

Observabilidade: Sentry SDK para error tracking e performance monitoring
====================================================================
"""
import logging
from datetime import datetime, timezone

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.integrations.pymongo import PyMongoIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from config import (
    CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, CORS_ALLOW_METHODS,
    CORS_ALLOW_HEADERS, CORS_MAX_AGE,
    SENTRY_DSN, SENTRY_ENVIRONMENT, SENTRY_TRACES_SAMPLE_RATE,
    SENTRY_PROFILES_SAMPLE_RATE, SENTRY_SEND_DEFAULT_PII
)
from database import db, client
from services.errors import ServiceError
from services.db_indexes import create_indexes
from services.defaults import ensure_defaults
# Usar sempre o limiter do middleware; os decoradores das rotas apontam para ele
from middleware.rate_limit import limiter, rate_limit_exceeded_handler
from routes import (
    auth_router, properties_router, admin_router, catalog_router,
    plans_router, leads_router, forms_router, public_router,
    extra_services_router
)


def _sentry_before_send(event, hint):
    if "exception" in event:
        exc_type = event.get("exception", {}).get("values", [{}])[0].get("type", "")
        if exc_type in ["RateLimitExceeded"]:
            return None
    if "request" in event and "headers" in event["request"]:
        headers = event["request"]["headers"]
        for header in ["authorization", "cookie", "x-api-key"]:
            if header in headers:
                headers[header] = "[FILTERED]"
    return event


# ====================================================================
# SENTRY INITIALIZATION (antes de qualquer outra coisa)
# ====================================================================
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        profiles_sample_rate=SENTRY_PROFILES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            PyMongoIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=SENTRY_SEND_DEFAULT_PII,
        before_send=_sentry_before_send,
        release=f"kesoimoveis@{datetime.now().strftime('%Y.%m.%d')}",
        attach_stacktrace=True,
        debug=SENTRY_ENVIRONMENT == "development",
    )

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="KÈSO Imóveis API")

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(auth_router, prefix="/api")
app.include_router(properties_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(catalog_router, prefix="/api")
app.include_router(plans_router, prefix="/api")
app.include_router(leads_router, prefix="/api")
app.include_router(forms_router, prefix="/api")
app.include_router(public_router, prefix="/api")
app.include_router(extra_services_router, prefix="/api")


# ====================================================================
# HEALTH CHECK ENDPOINTS
# ====================================================================
@app.get("/health")
async def health_check():
    components = {}
    is_healthy = True

    try:
        start = datetime.now(timezone.utc)
        await db.command("ping")
        latency = (datetime.now(timezone.utc) - start).total_seconds() * 1000
        components["mongodb"] = {"status": "up", "latency_ms": round(latency, 2)}
    except Exception as e:
        components["mongodb"] = {"status": "down", "error": str(e)[:100]}
        is_healthy = False
        logger.error(f"[HEALTH] MongoDB down: {str(e)}")

    components["app"] = {
        "sentry_enabled": bool(SENTRY_DSN),
        "environment": SENTRY_ENVIRONMENT if SENTRY_DSN else "unknown",
    }

    response_data = {
        "status": "healthy" if is_healthy else "unhealthy",
        "components": components,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    if not is_healthy:
        return JSONResponse(status_code=503, content=response_data)
    return response_data


@app.get("/health/live")
async def liveness_probe():
    return {"status": "alive"}


@app.get("/health/ready")
async def readiness_probe():
    is_ready = True
    checks = {}
    try:
        await db.command("ping")
        checks["mongodb"] = "ready"
    except Exception:
        checks["mongodb"] = "not_ready"
        is_ready = False

    response = {"status": "ready" if is_ready else "not_ready", "checks": checks}
    if not is_ready:
        return JSONResponse(status_code=503, content=response)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_origins=CORS_ORIGINS,
    allow_methods=CORS_ALLOW_METHODS,
    allow_headers=CORS_ALLOW_HEADERS,
    max_age=CORS_MAX_AGE,
)


@app.on_event("startup")
async def startup():
    logger.info("🚀 Iniciando KÈSO Imóveis API...")
    try:
        await create_indexes(db)
        await ensure_defaults(db)
    except Exception as e:
        logger.error(f"Erro ao preparar a base de dados: {e}")


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
