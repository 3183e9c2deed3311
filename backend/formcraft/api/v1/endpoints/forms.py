"""Form API: generation, storage, rendering, draft responses and CSV export."""

import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from formcraft.core.auth import get_current_user_id, get_optional_user_id
from formcraft.core.config import settings
from formcraft.core.database import get_db
from formcraft.engine.progress import progress_percent
from formcraft.engine.renderer import FormView, render_form
from formcraft.engine.schema import parse_schema
from formcraft.engine.validation import validate_answers
from formcraft.models.form import Form
from formcraft.schemas.forms import (
    FormCreate,
    FormDetail,
    FormListResponse,
    FormViewRequest,
    GenerateRequest,
    GenerateResponse,
)
from formcraft.schemas.responses import FormResponsesOut, ResponseDetail, ResponseOut, ResponseStats
from formcraft.services.llm import SchemaGenerationError, generate_schema
from formcraft.services.responses import (
    SchemaDecodeError,
    create_draft_response,
    export_responses_csv,
    form_schema,
    list_form_responses,
    response_stats,
)
from formcraft.services.tracking import TrackerRegistry, get_trackers

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_public_form_or_404(form_id: uuid.UUID, db: Session) -> Form:
    form = db.get(Form, form_id)
    if form is None or not form.is_public:
        raise HTTPException(status_code=404, detail="Formulário não encontrado")
    return form


def _get_owned_form_or_404(form_id: uuid.UUID, user_id: uuid.UUID, db: Session) -> Form:
    form = db.get(Form, form_id)
    # Not-owned and missing look the same to the caller
    if form is None or form.owner_id != user_id:
        raise HTTPException(status_code=404, detail="Formulário não encontrado")
    return form


def _schema_or_500(form: Form):
    try:
        return form_schema(form)
    except SchemaDecodeError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


def _form_detail(form: Form) -> FormDetail:
    return FormDetail(
        id=form.id,
        owner_id=form.owner_id,
        title=form.title,
        description=form.description,
        is_public=form.is_public,
        created_at=form.created_at,
        updated_at=form.updated_at,
        form_schema=form.schema_json,
    )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


@router.post("/generate", response_model=GenerateResponse)
async def generate_form_schema(payload: GenerateRequest):
    try:
        schema = await generate_schema(payload.description)
    except SchemaGenerationError:
        logger.exception("Schema generation failed")
        raise HTTPException(status_code=502, detail="Erro ao gerar formulário")
    return GenerateResponse(form_schema=schema.to_wire())


# ---------------------------------------------------------------------------
# Form CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=FormDetail, status_code=201)
def create_form(
    payload: FormCreate,
    db: Session = Depends(get_db),
    user_id: uuid.UUID | None = Depends(get_optional_user_id),
):
    try:
        schema = parse_schema(payload.form_schema)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid form schema: {exc.error_count()} error(s)")

    form = Form(
        title=payload.title or schema.title or "Formulário sem título",
        description=schema.description or None,
        schema_json=schema.to_wire(),
        owner_id=user_id,
        is_public=payload.is_public,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("Saved form %s (%d fields, owner=%s)", form.id, len(schema.fields), user_id)
    return _form_detail(form)


@router.get("/public", response_model=FormListResponse)
def list_public_forms(db: Session = Depends(get_db)):
    total = db.execute(select(func.count()).select_from(Form).where(Form.is_public.is_(True))).scalar_one()
    forms = (
        db.execute(
            select(Form)
            .where(Form.is_public.is_(True))
            .order_by(Form.created_at.desc())
            .limit(settings.PUBLIC_FORMS_LIMIT)
        )
        .scalars()
        .all()
    )
    return FormListResponse(items=forms, total=total)


@router.get("/mine", response_model=FormListResponse)
def list_my_forms(
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    total = db.execute(select(func.count()).select_from(Form).where(Form.owner_id == user_id)).scalar_one()
    forms = (
        db.execute(
            select(Form)
            .where(Form.owner_id == user_id)
            .order_by(Form.created_at.desc())
            .limit(settings.PUBLIC_FORMS_LIMIT)
        )
        .scalars()
        .all()
    )
    return FormListResponse(items=forms, total=total)


@router.get("/{form_id}", response_model=FormDetail)
def get_form(form_id: uuid.UUID, db: Session = Depends(get_db)):
    return _form_detail(_get_public_form_or_404(form_id, db))


@router.post("/{form_id}/view", response_model=FormView)
def render_form_view(form_id: uuid.UUID, payload: FormViewRequest, db: Session = Depends(get_db)):
    """Describe every control of the form for the given answers."""
    form = _get_public_form_or_404(form_id, db)
    schema = _schema_or_500(form)

    errors = validate_answers(schema, payload.answers) if payload.validate_answers else payload.errors
    return render_form(
        schema,
        payload.answers,
        errors,
        progress=progress_percent(schema, payload.answers),
        loading=payload.loading,
    )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def _open_draft(form_id: uuid.UUID, db: Session) -> ResponseOut:
    form = _get_public_form_or_404(form_id, db)
    return ResponseOut.model_validate(create_draft_response(db, form))


@router.post("/{form_id}/responses", response_model=ResponseOut, status_code=201)
async def start_response(
    form_id: uuid.UUID,
    db: Session = Depends(get_db),
    trackers: TrackerRegistry = Depends(get_trackers),
):
    """Open a draft response and start tracking its session liveness."""
    response = await asyncio.to_thread(_open_draft, form_id, db)

    try:
        await trackers.mount(str(form_id), str(response.id))
    except Exception:
        logger.exception("Could not start tracking response %s", response.id)

    return response


@router.get("/{form_id}/responses", response_model=FormResponsesOut)
def list_responses(
    form_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    form = _get_owned_form_or_404(form_id, user_id, db)
    responses = list_form_responses(db, form.id)
    return FormResponsesOut(
        form=_form_detail(form),
        stats=ResponseStats(**response_stats(responses)),
        items=[ResponseDetail.model_validate(r) for r in responses],
    )


@router.get("/{form_id}/responses/download")
def download_responses(
    form_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Export all responses of an owned form as CSV."""
    form = _get_owned_form_or_404(form_id, user_id, db)
    schema = _schema_or_500(form)
    responses = list_form_responses(db, form.id)
    if not responses:
        raise HTTPException(status_code=404, detail="Nenhuma resposta ainda")

    content = export_responses_csv(schema, responses)
    filename = f"{form.title.replace(' ', '_')}_respostas.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
