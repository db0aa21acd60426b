"""
Testes da execução das tarefas agendadas contra a DB simulada.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from services.scheduled_tasks import ScheduledTasksService


@pytest.mark.asyncio
async def test_run_all_tasks_expires_listings_and_plans(db_client, make_property, owner):
    now = datetime.now(timezone.utc)
    past = (now - timedelta(days=1)).isoformat()
    future = (now + timedelta(days=1)).isoformat()

    overdue = await make_property(owner["id"], is_owner_direct=True, expires_at=past)
    in_trial = await make_property(owner["id"], is_owner_direct=True, expires_at=future)
    agency = await make_property(owner["id"], expires_at=past)

    for prop, expires_at in ((agency, past), (in_trial, future)):
        await db_client.property_plans.insert_one({
            "id": str(uuid.uuid4()),
            "property_id": prop["id"],
            "plan_id": "plano",
            "user_id": owner["id"],
            "status": "active",
            "started_at": (now - timedelta(days=30)).isoformat(),
            "expires_at": expires_at,
        })

    service = ScheduledTasksService(db=db_client)
    summary = await service.run_all_tasks(now=now)
    assert summary == {"expired_properties": 1, "expired_plans": 1}

    properties = await db_client.properties.find({}, {"_id": 0, "id": 1, "status": 1}).to_list(10)
    statuses = {p["id"]: p["status"] for p in properties}
    assert statuses == {overdue["id"]: "expired", in_trial["id"]: "active", agency["id"]: "active"}

    # A DB injetada não é fechada pelo serviço
    assert service.db is db_client
    assert await service.run_all_tasks(now=now) == {"expired_properties": 0, "expired_plans": 0}
