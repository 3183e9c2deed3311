"""Response lifecycle: drafts, submit-then-persist, statistics and CSV export."""

import csv
import io
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from formcraft.engine.mapping import answers_to_items, items_to_answers
from formcraft.engine.schema import AnswerMap, FormSchema, parse_schema
from formcraft.models.form import Form
from formcraft.models.response import Response
from formcraft.models.response_item import ResponseItem

logger = logging.getLogger(__name__)

CSV_DATE_FORMAT = "%d/%m/%Y %H:%M:%S"


class SchemaDecodeError(Exception):
    """Raised when a stored form's schema_json cannot be decoded."""


def form_schema(form: Form) -> FormSchema:
    """Decode the stored schema of a form."""
    try:
        return parse_schema(form.schema_json or {})
    except ValidationError as exc:
        logger.error("Stored schema for form %s is malformed: %s", form.id, exc)
        raise SchemaDecodeError(f"Form {form.id} has a malformed schema") from exc


def create_draft_response(db: Session, form: Form) -> Response:
    response = Response(form_id=form.id, status="draft")
    db.add(response)
    db.commit()
    db.refresh(response)
    logger.info("Created draft response %s for form %s", response.id, form.id)
    return response


def submit_response(db: Session, response: Response, answers: Mapping[str, Any]) -> Response:
    """Mark a response submitted and store one item per answer.

    Both writes happen in one transaction: either the response is submitted
    with all its items or nothing changes.
    """
    try:
        response.status = "submitted"
        for payload in answers_to_items(answers):
            db.add(ResponseItem(response_id=response.id, **payload))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Error submitting response %s", response.id)
        raise

    db.refresh(response)
    logger.info("Response %s submitted with %d answer(s)", response.id, len(answers))
    return response


def response_answers(response: Response) -> AnswerMap:
    return items_to_answers(response.items)


def list_form_responses(db: Session, form_id) -> list[Response]:
    return list(
        db.execute(
            select(Response)
            .where(Response.form_id == form_id)
            .options(selectinload(Response.items))
            .order_by(Response.created_at.desc())
        )
        .scalars()
        .all()
    )


def response_stats(responses: Sequence[Response]) -> dict[str, int]:
    total = len(responses)
    submitted = sum(1 for r in responses if r.status == "submitted")
    abandoned = sum(1 for r in responses if r.abandoned_at is not None)
    completion_rate = round(submitted / total * 100) if total > 0 else 0
    return {
        "total": total,
        "submitted": submitted,
        "abandoned": abandoned,
        "completionRate": completion_rate,
    }


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    return json.dumps(value, ensure_ascii=False)


def export_responses_csv(schema: FormSchema, responses: Sequence[Response]) -> str:
    """Render responses as CSV: fixed metadata columns, then one column per field."""
    output = io.StringIO()
    writer = csv.writer(output)

    header = ["ID", "Status", "Data de Criação", "Data de Atualização", "Abandonado"]
    header.extend(field.label or field.key for field in schema.fields)
    writer.writerow(header)

    for response in responses:
        answers = response_answers(response)
        row = [
            str(response.id),
            response.status,
            response.created_at.strftime(CSV_DATE_FORMAT) if response.created_at else "",
            response.updated_at.strftime(CSV_DATE_FORMAT) if response.updated_at else "",
            "Sim" if response.abandoned_at else "Não",
        ]
        row.extend(_csv_value(answers.get(field.key)) for field in schema.fields)
        writer.writerow(row)

    return output.getvalue()
