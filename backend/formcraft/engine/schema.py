"""Form schema types and the boundary decoder for generated/stored schemas.

Schemas arrive as loosely-typed JSON (from the generate-schema edge function
or from ``forms.schema_json``). They are decoded here once; the rest of the
engine works with these models only. Decoding is lenient: a malformed schema
degrades instead of being rejected.
"""

import logging
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

AnswerValue = str | int | float | bool | list[str]
AnswerMap = dict[str, AnswerValue]
ErrorMap = dict[str, str]


class FieldType(str, Enum):
    """Closed set of field types, valued by their wire names."""

    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    PHONE = "tel"
    DATE = "date"
    LONG_TEXT = "textarea"
    SINGLE_SELECT = "select"
    MULTI_SELECT = "multiselect"
    BOOLEAN = "checkbox"
    SINGLE_CHOICE_LIST = "radio"


SELECTION_TYPES = frozenset({FieldType.SINGLE_SELECT, FieldType.MULTI_SELECT, FieldType.SINGLE_CHOICE_LIST})
TEXT_LIKE_TYPES = frozenset(
    {FieldType.TEXT, FieldType.EMAIL, FieldType.PHONE, FieldType.DATE, FieldType.LONG_TEXT}
)


class _WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class FieldOption(_WireModel):
    value: str
    label: str

    @field_validator("value", "label", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        if isinstance(v, (int, float, bool)):
            return str(v)
        return v


class FieldValidation(_WireModel):
    min: int | float | None = None
    max: int | float | None = None
    min_length: int | None = Field(None, alias="minLength")
    max_length: int | None = Field(None, alias="maxLength")
    pattern: str | None = None

    @field_validator("pattern")
    @classmethod
    def _drop_invalid_pattern(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as exc:
            logger.warning("Ignoring invalid validation pattern %r: %s", v, exc)
            return None
        return v


class FieldSpec(_WireModel):
    """One form field."""

    key: str
    type: FieldType = FieldType.TEXT
    label: str = ""
    placeholder: str | None = None
    description: str | None = None
    required: bool = False
    validation: FieldValidation | None = None
    options: list[FieldOption] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_type_is_text(cls, v: Any) -> Any:
        if isinstance(v, FieldType):
            return v
        try:
            return FieldType(v)
        except ValueError:
            logger.warning("Unknown field type %r, rendering as plain text", v)
            return FieldType.TEXT

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, v: Any) -> Any:
        # Generators sometimes emit bare strings instead of {value, label}
        if not isinstance(v, list):
            return v
        return [{"value": o, "label": o} if isinstance(o, (str, int, float)) else o for o in v]

    @property
    def is_selection(self) -> bool:
        return self.type in SELECTION_TYPES

    @property
    def option_values(self) -> list[str]:
        return [o.value for o in self.options or []]


class FormSettings(_WireModel):
    allow_anonymous: bool = Field(True, alias="allowAnonymous")
    show_progress: bool = Field(True, alias="showProgress")
    submit_text: str = Field("Enviar", alias="submitText")


class FormSchema(_WireModel):
    """A whole form definition, immutable for one render session."""

    title: str = ""
    description: str = ""
    fields: list[FieldSpec] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)

    def field(self, key: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.key == key:
                return spec
        return None

    @property
    def keys(self) -> list[str]:
        return [spec.key for spec in self.fields]

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to the camelCase JSON shape used for storage."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def parse_schema(raw: Any) -> FormSchema:
    """Decode an external schema payload.

    Raises:
        pydantic.ValidationError: If the payload is not a schema at all
            (not an object, fields not a list, a field without a key).
    """
    if isinstance(raw, FormSchema):
        return raw
    return FormSchema.model_validate(raw)
