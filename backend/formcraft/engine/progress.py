from collections.abc import Mapping
from typing import Any

from formcraft.engine.schema import FormSchema


def is_answered(value: Any) -> bool:
    return value is not None and value != ""


def compute_progress(schema: FormSchema, answers: Mapping[str, Any]) -> float:
    """Percentage (0-100) of schema fields that hold an answer.

    Only keys present in the schema count. An empty schema is 0% complete.
    """
    total = len(schema.fields)
    if total == 0:
        return 0.0
    answered = sum(1 for field in schema.fields if is_answered(answers.get(field.key)))
    return answered / total * 100


def progress_percent(schema: FormSchema, answers: Mapping[str, Any]) -> int:
    """compute_progress rounded for display (half rounds up)."""
    return int(compute_progress(schema, answers) + 0.5)
