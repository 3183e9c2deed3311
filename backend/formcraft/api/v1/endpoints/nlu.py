"""NLU mapping: turn a respondent's free-text message into field answers."""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from formcraft.engine.mapping import answers_for_nlu, merge_mapped_answers
from formcraft.engine.schema import parse_schema
from formcraft.schemas.forms import NluMapRequest, NluMapResponse
from formcraft.services.llm import NluMapError, nlu_map

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/map", response_model=NluMapResponse)
async def map_message(payload: NluMapRequest):
    try:
        schema = parse_schema(payload.form_schema)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid form schema: {exc.error_count()} error(s)")

    current = answers_for_nlu(schema, payload.current_answers or {})
    try:
        result = await nlu_map(payload.message, schema, current or None)
    except NluMapError:
        logger.exception("NLU mapping failed")
        raise HTTPException(status_code=502, detail="Erro ao interpretar mensagem")

    return NluMapResponse(
        answers=result.answers,
        merged_answers=merge_mapped_answers(schema, current, result.answers),
        intent=result.intent,
        reply=result.reply,
    )
