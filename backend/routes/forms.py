"""
Rotas dos formulários assinados (Captação e Autorização de comercialização)
"""
import re
import logging
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException

from database import db
from models.auth import CurrentUser
from models.form import (
    AutorizacaoSubmission, CaptacaoSubmission, FormSubmission,
    IntakeResult, SubmissionStatus
)
from services.auth import get_current_user, require_admin
from services.intake import submit_autorizacao, submit_captacao
from services.properties import get_owned_property
from services.storage import get_storage

router = APIRouter(prefix="/forms", tags=["Forms"])
logger = logging.getLogger(__name__)


@router.post("/captacao", response_model=IntakeResult, status_code=201)
async def captacao(
    data: CaptacaoSubmission,
    user: CurrentUser = Depends(require_admin),
    storage=Depends(get_storage),
):
    """
    Cria o imóvel (pendente) e guarda a ficha assinada. Só a equipa
    regista captações: o imóvel nasce sem prazo de teste.
    """
    return await submit_captacao(db, storage, user, data.form, data.signature)


@router.post("/autorizacao", response_model=FormSubmission, status_code=201)
async def autorizacao(
    data: AutorizacaoSubmission,
    user: CurrentUser = Depends(get_current_user),
    storage=Depends(get_storage),
):
    return await submit_autorizacao(db, storage, user, data.property_id, data.form, data.signature)


@router.get("/properties/{property_id}/submissions", response_model=List[FormSubmission])
async def list_property_submissions(property_id: str, user: CurrentUser = Depends(get_current_user)):
    await get_owned_property(db, property_id, user)
    return await db.form_submissions.find(
        {"property_id": property_id}, {"_id": 0}
    ).sort("created_at", -1).to_list(100)


@router.get("/submissions", response_model=List[FormSubmission])
async def search_submissions(code: Optional[str] = None, user: CurrentUser = Depends(require_admin)):
    """Pesquisa por código do imóvel (parcial, sem distinguir maiúsculas)."""
    query = {}
    if code:
        query["property_code"] = {"$regex": re.escape(code.strip()), "$options": "i"}
    return await db.form_submissions.find(query, {"_id": 0}).sort("created_at", -1).to_list(500)


@router.patch("/submissions/{submission_id}/complete", response_model=FormSubmission)
async def complete_submission(submission_id: str, user: CurrentUser = Depends(require_admin)):
    submission = await db.form_submissions.find_one({"id": submission_id}, {"_id": 0})
    if not submission:
        raise HTTPException(status_code=404, detail="Formulário não encontrado")
    if submission["status"] != SubmissionStatus.SIGNED.value:
        raise HTTPException(status_code=409, detail="Apenas formulários assinados podem ser concluídos")

    now = datetime.now(timezone.utc).isoformat()
    await db.form_submissions.update_one(
        {"id": submission_id},
        {"$set": {"status": SubmissionStatus.COMPLETED.value, "updated_at": now}}
    )
    logger.info(f"Formulário {submission['property_code']} concluído por {user.email}")
    submission.update({"status": SubmissionStatus.COMPLETED.value, "updated_at": now})
    return submission
