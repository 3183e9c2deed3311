import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class GenerateRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=5000)


class GenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form_schema: dict[str, Any] = Field(..., alias="schema")


# ---------------------------------------------------------------------------
# Form CRUD schemas
# ---------------------------------------------------------------------------


class FormCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(None, max_length=255)
    form_schema: dict[str, Any] = Field(..., alias="schema")
    is_public: bool = True


class FormOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID | None
    title: str
    description: str | None
    is_public: bool
    created_at: datetime
    updated_at: datetime


class FormDetail(FormOut):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    form_schema: dict[str, Any] = Field(..., alias="schema")


class FormListResponse(BaseModel):
    items: list[FormOut]
    total: int


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class FormViewRequest(BaseModel):
    answers: dict[str, Any] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    loading: bool = False
    validate_answers: bool = Field(
        False,
        description="Recompute errors from the answers instead of using the given errors",
    )


# ---------------------------------------------------------------------------
# NLU mapping
# ---------------------------------------------------------------------------


class NluMapRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    form_schema: dict[str, Any] = Field(..., alias="schema")
    current_answers: dict[str, Any] | None = Field(None, alias="currentAnswers")


class NluMapResponse(BaseModel):
    answers: dict[str, Any]
    merged_answers: dict[str, Any] = Field(..., serialization_alias="mergedAnswers")
    intent: str | None = None
    reply: str | None = None
