"""Per-field answer validation.

Rules run in a fixed order and the first failing rule wins. Messages are in
Portuguese, matching the rest of the respondent-facing UI.
"""

import re
from collections.abc import Mapping
from typing import Any

from formcraft.engine.schema import ErrorMap, FieldSpec, FormSchema


def is_blank(value: Any) -> bool:
    """True for an absent answer or a string with nothing but whitespace."""
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _fmt(threshold: int | float) -> str:
    if isinstance(threshold, float) and threshold.is_integer():
        return str(int(threshold))
    return str(threshold)


def validate_field(field: FieldSpec, value: Any) -> str | None:
    """Return an error message for ``value``, or None when it is acceptable."""
    if field.required and is_blank(value):
        return f"{field.label} é obrigatório"

    if value is None or value == "":
        return None

    rules = field.validation
    if rules is None:
        return None

    if rules.min_length is not None and isinstance(value, str) and len(value) < rules.min_length:
        return f"{field.label} deve ter pelo menos {rules.min_length} caracteres"

    if rules.max_length is not None and isinstance(value, str) and len(value) > rules.max_length:
        return f"{field.label} deve ter no máximo {rules.max_length} caracteres"

    if rules.min is not None and _is_number(value) and value < rules.min:
        return f"{field.label} deve ser pelo menos {_fmt(rules.min)}"

    if rules.max is not None and _is_number(value) and value > rules.max:
        return f"{field.label} deve ser no máximo {_fmt(rules.max)}"

    if rules.pattern is not None and isinstance(value, str) and re.search(rules.pattern, value) is None:
        return f"{field.label} tem formato inválido"

    return None


def validate_answers(schema: FormSchema, answers: Mapping[str, Any]) -> ErrorMap:
    """Validate every field in schema order and collect all failures."""
    errors: ErrorMap = {}
    for field in schema.fields:
        message = validate_field(field, answers.get(field.key))
        if message is not None:
            errors[field.key] = message
    return errors
