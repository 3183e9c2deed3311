"""Conversions between an AnswerMap and the shapes its collaborators expect.

- The nlu-map edge function takes ``current_answers`` and returns partial
  answers keyed by field key.
- Persistence stores one ``response_items`` row per answered field.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from formcraft.engine.renderer import coerce_input
from formcraft.engine.schema import AnswerMap, FormSchema

logger = logging.getLogger(__name__)


def answers_for_nlu(schema: FormSchema, answers: Mapping[str, Any]) -> AnswerMap:
    """Current answers restricted to schema keys, dropping empty entries."""
    known = set(schema.keys)
    return {k: v for k, v in answers.items() if k in known and v is not None and v != ""}


def merge_mapped_answers(
    schema: FormSchema,
    answers: Mapping[str, Any],
    mapped: Mapping[str, Any],
) -> AnswerMap:
    """Overlay answers returned by the NLU mapper onto ``answers``.

    Keys the schema does not define are dropped; values are coerced to the
    field's answer type the same way a control's input would be.
    """
    merged: AnswerMap = dict(answers)
    for key, value in mapped.items():
        spec = schema.field(key)
        if spec is None:
            logger.warning("Dropping mapped answer for unknown field %r", key)
            continue
        merged[key] = coerce_input(spec, value)
    return merged


def answers_to_items(answers: Mapping[str, Any]) -> list[dict[str, Any]]:
    """One response-item payload per answer, in answer order."""
    return [{"field_key": key, "value_json": value, "valid": True} for key, value in answers.items()]


def items_to_answers(items: Iterable[Any]) -> AnswerMap:
    """Rebuild an AnswerMap from stored response items (later rows win)."""
    return {item.field_key: item.value_json for item in items}
