from routes.auth import router as auth_router
from routes.properties import router as properties_router
from routes.admin import router as admin_router
from routes.catalog import router as catalog_router
from routes.plans import router as plans_router
from routes.leads import router as leads_router
from routes.forms import router as forms_router
from routes.public import router as public_router
from routes.extra_services import router as extra_services_router

__all__ = [
    "auth_router",
    "properties_router",
    "admin_router",
    "catalog_router",
    "plans_router",
    "leads_router",
    "forms_router",
    "public_router",
    "extra_services_router",
]
