import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from formcraft.schemas.forms import FormDetail

ResponseStatus = Literal["draft", "submitted"]


class ResponseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    form_id: uuid.UUID
    status: ResponseStatus
    abandoned_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ResponseItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    field_key: str
    value_json: Any
    valid: bool
    confidence: float | None
    created_at: datetime


class ResponseDetail(ResponseOut):
    items: list[ResponseItemOut] = Field(default_factory=list)


class ResponseStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    submitted: int
    abandoned: int
    completion_rate: int = Field(..., alias="completionRate")


class FormResponsesOut(BaseModel):
    form: FormDetail
    stats: ResponseStats
    items: list[ResponseDetail]


class SubmitRequest(BaseModel):
    """Answers for a draft response, keyed by field key."""

    answers: dict[str, Any] = Field(default_factory=dict)
