"""
====================================================================
ÍNDICES DE BASE DE DADOS
====================================================================
Índices das colecções do marketplace. Os únicos garantem as regras
de integridade (código do imóvel, cidade por UF, roles por utilizador);
os restantes servem as listagens públicas e as varreduras de expiração.

Executado na inicialização da aplicação e pelo seed.py.
====================================================================
"""
import logging

logger = logging.getLogger(__name__)


INDEXES = {
    "properties": [
        {"keys": [("id", 1)], "name": "idx_property_id", "unique": True},
        {"keys": [("property_code", 1)], "name": "idx_property_code", "unique": True, "sparse": True},
        {"keys": [("status", 1), ("created_at", -1)], "name": "idx_status_created"},
        {"keys": [("owner_id", 1)], "name": "idx_owner"},
        {"keys": [("city_id", 1), ("type", 1)], "name": "idx_city_type"},
        {"keys": [("featured", 1)], "name": "idx_featured"},
        # Varredura de anúncios diretos expirados
        {"keys": [("status", 1), ("is_owner_direct", 1), ("expires_at", 1)], "name": "idx_expiration"},
    ],
    "cities": [
        {"keys": [("id", 1)], "name": "idx_city_id", "unique": True},
        {"keys": [("name", 1), ("state", 1)], "name": "idx_name_state", "unique": True},
        {"keys": [("slug", 1)], "name": "idx_city_slug"},
    ],
    "property_types": [
        {"keys": [("slug", 1)], "name": "idx_type_slug", "unique": True},
        {"keys": [("display_order", 1)], "name": "idx_type_order"},
    ],
    "plans": [
        {"keys": [("slug", 1)], "name": "idx_plan_slug", "unique": True},
    ],
    "property_plans": [
        {"keys": [("property_id", 1), ("status", 1)], "name": "idx_property_status"},
        # No máximo um plano ativo por imóvel
        {"keys": [("property_id", 1)], "name": "idx_one_active_plan", "unique": True,
         "partial": {"status": "active"}},
        {"keys": [("status", 1), ("expires_at", 1)], "name": "idx_plan_expiration"},
    ],
    "leads": [
        {"keys": [("property_id", 1), ("created_at", -1)], "name": "idx_lead_property"},
    ],
    "form_templates": [
        {"keys": [("slug", 1)], "name": "idx_template_slug", "unique": True},
    ],
    "form_submissions": [
        {"keys": [("property_id", 1)], "name": "idx_submission_property"},
        {"keys": [("property_code", 1)], "name": "idx_submission_code"},
    ],
    "profiles": [
        {"keys": [("id", 1)], "name": "idx_profile_id", "unique": True},
        {"keys": [("email", 1)], "name": "idx_email", "unique": True},
    ],
    "user_roles": [
        {"keys": [("user_id", 1), ("role", 1)], "name": "idx_user_role", "unique": True},
    ],
    "property_photos": [
        {"keys": [("property_id", 1), ("created_at", 1)], "name": "idx_photo_property"},
    ],
    "service_orders": [
        {"keys": [("user_id", 1)], "name": "idx_order_user"},
    ],
}


async def create_indexes(db) -> dict:
    """
    Cria os índices de todas as colecções.

    Returns:
        dict: Resumo dos índices criados, já existentes e com erro
    """
    results = {"created": [], "errors": [], "skipped": []}

    for collection_name, indexes in INDEXES.items():
        collection = getattr(db, collection_name)
        for idx in indexes:
            label = f"{collection_name}.{idx['name']}"
            try:
                options = {
                    "name": idx["name"],
                    "unique": idx.get("unique", False),
                    "sparse": idx.get("sparse", False),
                }
                if idx.get("partial"):
                    options["partialFilterExpression"] = idx["partial"]
                await collection.create_index(idx["keys"], **options)
                results["created"].append(label)
            except Exception as e:
                if "already exists" in str(e).lower():
                    results["skipped"].append(label)
                else:
                    results["errors"].append(f"{label}: {str(e)}")
                    logger.error(f"Erro ao criar índice {label}: {e}")

    logger.info(
        f"Criação de índices concluída: "
        f"{len(results['created'])} criados, "
        f"{len(results['skipped'])} já existiam, "
        f"{len(results['errors'])} erros"
    )
    return results
