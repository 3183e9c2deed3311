"""Response API: submit answers and keep the session liveness tracker informed."""

import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from formcraft.core.database import get_db
from formcraft.engine.schema import FormSchema
from formcraft.engine.state import FormEngine
from formcraft.models.form import Form
from formcraft.models.response import Response
from formcraft.schemas.responses import ResponseDetail, SubmitRequest
from formcraft.services.responses import SchemaDecodeError, form_schema, submit_response
from formcraft.services.tracking import TrackerRegistry, get_trackers

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_response_or_404(response_id: uuid.UUID, db: Session) -> Response:
    response = db.get(Response, response_id)
    if response is None:
        raise HTTPException(status_code=404, detail="Resposta não encontrada")
    return response


def _load_submission(response_id: uuid.UUID, db: Session) -> tuple[Response, FormSchema]:
    response = _get_response_or_404(response_id, db)
    if response.status == "submitted":
        raise HTTPException(status_code=409, detail="Resposta já enviada")

    form = db.get(Form, response.form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Formulário não encontrado")

    try:
        return response, form_schema(form)
    except SchemaDecodeError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{response_id}/submit", response_model=ResponseDetail)
async def submit(
    response_id: uuid.UUID,
    payload: SubmitRequest,
    db: Session = Depends(get_db),
    trackers: TrackerRegistry = Depends(get_trackers),
):
    """Validate the answers and, when they pass, persist them.

    Invalid answers return 422 with the full ErrorMap under ``detail.errors``.
    """
    response, schema = await asyncio.to_thread(_load_submission, response_id, db)

    engine = FormEngine(
        schema,
        on_submit=lambda answers: asyncio.to_thread(submit_response, db, response, answers),
        reset_on_success=False,
    )
    engine.apply(payload.answers)

    try:
        accepted = await engine.submit()
    except Exception:
        logger.exception("Error submitting response %s", response_id)
        raise HTTPException(status_code=500, detail="Erro ao enviar resposta")

    if not accepted:
        raise HTTPException(
            status_code=422,
            detail={"message": "Respostas inválidas", "errors": engine.errors},
        )

    await trackers.release(str(response.id))
    return await asyncio.to_thread(ResponseDetail.model_validate, response)


@router.post("/{response_id}/heartbeat", status_code=204)
async def heartbeat(
    response_id: uuid.UUID,
    db: Session = Depends(get_db),
    trackers: TrackerRegistry = Depends(get_trackers),
):
    """Activity ping from an open form page."""
    await asyncio.to_thread(_get_response_or_404, response_id, db)
    if not await trackers.heartbeat(str(response_id)):
        logger.debug("Heartbeat for untracked response %s", response_id)


@router.delete("/{response_id}/session", status_code=204)
async def close_session(
    response_id: uuid.UUID,
    trackers: TrackerRegistry = Depends(get_trackers),
):
    """The form page was closed: stop tracking without touching the response."""
    await trackers.release(str(response_id))
