"""Edge-function client: natural language → form schema, and message → answers."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from formcraft.core.config import settings
from formcraft.engine.schema import AnswerMap, FormSchema, parse_schema

logger = logging.getLogger(__name__)

GENERATE_SCHEMA_FUNCTION = "generate-schema"
NLU_MAP_FUNCTION = "nlu-map"


class EdgeFunctionError(Exception):
    """Raised when an edge function call fails (transport, status or payload)."""

    def __init__(self, function: str, message: str) -> None:
        self.function = function
        super().__init__(f"[{function}] {message}")


class SchemaGenerationError(EdgeFunctionError):
    """Raised when generate-schema does not produce a usable schema."""


class NluMapError(EdgeFunctionError):
    """Raised when nlu-map fails."""


class NluResult:
    """Partial answers and/or an intent returned by nlu-map."""

    __slots__ = ("answers", "intent", "reply")

    def __init__(self, answers: AnswerMap | None = None, intent: str | None = None, reply: str | None = None) -> None:
        self.answers = answers or {}
        self.intent = intent
        self.reply = reply


def _function_url(name: str) -> str:
    return f"{settings.SUPABASE_URL.rstrip('/')}/functions/v1/{name}"


async def invoke_function(name: str, body: dict[str, Any], error_cls: type[EdgeFunctionError]) -> Any:
    """POST ``body`` to an edge function and return its decoded JSON reply."""
    if not settings.SUPABASE_URL:
        raise error_cls(name, "SUPABASE_URL not configured")

    try:
        async with httpx.AsyncClient(timeout=settings.EDGE_FUNCTION_TIMEOUT_SECONDS) as client:
            response = await client.post(
                _function_url(name),
                json=body,
                headers={
                    "Authorization": f"Bearer {settings.SUPABASE_ANON_KEY}",
                    "apikey": settings.SUPABASE_ANON_KEY,
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(
            "Edge function %s returned %d: %s",
            name,
            exc.response.status_code,
            exc.response.text,
        )
        raise error_cls(name, f"HTTP {exc.response.status_code}") from exc
    except httpx.RequestError as exc:
        logger.error("Edge function %s request failed: %s", name, exc)
        raise error_cls(name, f"request failed: {exc}") from exc

    try:
        return response.json()
    except ValueError as exc:
        logger.error("Edge function %s returned invalid JSON: %s", name, exc)
        raise error_cls(name, "invalid JSON reply") from exc


async def generate_schema(description: str) -> FormSchema:
    """Turn a natural-language description into a FormSchema.

    Raises:
        SchemaGenerationError: On any transport, service or decoding failure.
    """
    if not description or not description.strip():
        raise SchemaGenerationError(GENERATE_SCHEMA_FUNCTION, "Empty description")

    data = await invoke_function(GENERATE_SCHEMA_FUNCTION, {"description": description}, SchemaGenerationError)

    raw = data.get("schema") if isinstance(data, dict) else None
    if raw is None:
        raise SchemaGenerationError(GENERATE_SCHEMA_FUNCTION, "reply has no schema")

    try:
        schema = parse_schema(raw)
    except ValidationError as exc:
        logger.error("Generated schema could not be decoded: %s", exc)
        raise SchemaGenerationError(GENERATE_SCHEMA_FUNCTION, "malformed schema") from exc

    logger.info("Generated schema %r with %d field(s)", schema.title, len(schema.fields))
    return schema


async def nlu_map(
    message: str,
    schema: FormSchema,
    current_answers: Mapping[str, Any] | None = None,
) -> NluResult:
    """Map a free-text message onto the schema's fields.

    Raises:
        NluMapError: On any transport, service or decoding failure.
    """
    body = {
        "message": message,
        "schema_json": schema.to_wire(),
        "current_answers": dict(current_answers) if current_answers is not None else None,
    }
    data = await invoke_function(NLU_MAP_FUNCTION, body, NluMapError)

    if not isinstance(data, dict):
        raise NluMapError(NLU_MAP_FUNCTION, "reply is not an object")

    answers = data.get("answers") or data.get("mapped_answers") or {}
    if not isinstance(answers, dict):
        raise NluMapError(NLU_MAP_FUNCTION, "answers is not an object")

    intent = data.get("intent")
    return NluResult(
        answers=answers,
        intent=str(intent) if intent is not None else None,
        reply=data.get("reply"),
    )
