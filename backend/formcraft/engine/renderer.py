"""Field renderer: maps a FieldSpec to a declarative control description.

Rendering is a pure function of (field, value, error). The returned Control
tells a UI which widget to draw and with what state; value changes flow back
into the engine as events (see ``formcraft.engine.state``).
"""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field

from formcraft.engine.schema import AnswerValue, FieldOption, FieldSpec, FieldType, FormSchema

LONG_TEXT_ROWS = 4
SUBMITTING_TEXT = "Enviando..."


class Widget(str, Enum):
    INPUT = "input"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX_GROUP = "checkbox_group"
    CHECKBOX = "checkbox"
    RADIO_GROUP = "radio_group"


class Control(BaseModel):
    """Everything a UI needs to draw one field."""

    key: str
    widget: Widget
    input_type: str | None = None  # native type hint for INPUT widgets
    label: str
    description: str | None = None
    placeholder: str | None = None
    required: bool = False
    value: Any = ""
    error: str | None = None
    options: list[FieldOption] = Field(default_factory=list)
    selected: list[str] = Field(default_factory=list)
    checked: bool = False
    min: int | float | None = None
    max: int | float | None = None
    rows: int | None = None

    @computed_field
    @property
    def invalid(self) -> bool:
        return bool(self.error)


class FormView(BaseModel):
    title: str
    description: str
    show_progress: bool
    progress: int
    controls: list[Control]
    submit_text: str
    submit_disabled: bool


def _base(field: FieldSpec, value: Any, error: str | None, widget: Widget, **extra: Any) -> Control:
    return Control(
        key=field.key,
        widget=widget,
        label=field.label,
        description=field.description,
        placeholder=field.placeholder,
        required=field.required,
        value="" if value is None else value,
        error=error or None,
        **extra,
    )


def _render_input(field: FieldSpec, value: Any, error: str | None) -> Control:
    return _base(field, value, error, Widget.INPUT, input_type=field.type.value)


def _render_number(field: FieldSpec, value: Any, error: str | None) -> Control:
    rules = field.validation
    return _base(
        field,
        value,
        error,
        Widget.INPUT,
        input_type="number",
        min=rules.min if rules else None,
        max=rules.max if rules else None,
    )


def _render_date(field: FieldSpec, value: Any, error: str | None) -> Control:
    return _base(field, value, error, Widget.INPUT, input_type="date")


def _render_long_text(field: FieldSpec, value: Any, error: str | None) -> Control:
    return _base(field, value, error, Widget.TEXTAREA, rows=LONG_TEXT_ROWS)


def _render_select(field: FieldSpec, value: Any, error: str | None) -> Control:
    control = _base(field, value, error, Widget.SELECT, options=list(field.options or []))
    if not control.placeholder:
        control.placeholder = f"Selecione {field.label.lower()}"
    return control


def _render_multi_select(field: FieldSpec, value: Any, error: str | None) -> Control:
    selected = list(value) if isinstance(value, list) else []
    return _base(
        field,
        selected,
        error,
        Widget.CHECKBOX_GROUP,
        options=list(field.options or []),
        selected=selected,
    )


def _render_boolean(field: FieldSpec, value: Any, error: str | None) -> Control:
    return _base(field, bool(value), error, Widget.CHECKBOX, checked=bool(value))


def _render_radio(field: FieldSpec, value: Any, error: str | None) -> Control:
    return _base(field, value, error, Widget.RADIO_GROUP, options=list(field.options or []))


RENDERERS: dict[FieldType, Callable[[FieldSpec, Any, str | None], Control]] = {
    FieldType.TEXT: _render_input,
    FieldType.EMAIL: _render_input,
    FieldType.PHONE: _render_input,
    FieldType.NUMBER: _render_number,
    FieldType.DATE: _render_date,
    FieldType.LONG_TEXT: _render_long_text,
    FieldType.SINGLE_SELECT: _render_select,
    FieldType.MULTI_SELECT: _render_multi_select,
    FieldType.BOOLEAN: _render_boolean,
    FieldType.SINGLE_CHOICE_LIST: _render_radio,
}


def render_field(field: FieldSpec, value: Any = None, error: str | None = None) -> Control:
    """Describe the control for ``field``. Unknown types get a plain text input."""
    renderer = RENDERERS.get(field.type)
    if renderer is None:
        return _base(field, value, error, Widget.INPUT, input_type="text")
    return renderer(field, value, error)


def render_form(
    schema: FormSchema,
    answers: Mapping[str, Any],
    errors: Mapping[str, str],
    *,
    progress: int,
    loading: bool = False,
) -> FormView:
    return FormView(
        title=schema.title,
        description=schema.description,
        show_progress=schema.settings.show_progress,
        progress=progress,
        controls=[render_field(f, answers.get(f.key), errors.get(f.key)) for f in schema.fields],
        submit_text=SUBMITTING_TEXT if loading else schema.settings.submit_text,
        submit_disabled=loading,
    )


# ---------------------------------------------------------------------------
# Value-change helpers used by the controls
# ---------------------------------------------------------------------------


def toggle_option(current: Any, option_value: str, checked: bool) -> list[str]:
    """New multi-select value after (un)checking one option.

    Keeps first-seen order and never produces duplicates.
    """
    selected = [v for v in current if isinstance(v, str)] if isinstance(current, list) else []
    if checked:
        if option_value in selected:
            return selected
        return [*selected, option_value]
    return [v for v in selected if v != option_value]


_TRUE_STRINGS = {"true", "on", "yes", "1", "sim"}


def coerce_input(field: FieldSpec, raw: Any) -> AnswerValue | None:
    """Turn a raw control value into the answer type the field expects.

    Number inputs parse to int/float; an unparsable number is kept as the raw
    string so the validator still sees it. Blank input clears the answer.
    """
    if field.type is FieldType.NUMBER:
        if raw is None or isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)):
            return raw
        text = str(raw).strip()
        if text == "":
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return str(raw)

    if field.type is FieldType.BOOLEAN:
        if isinstance(raw, str):
            return raw.strip().lower() in _TRUE_STRINGS
        return bool(raw)

    if field.type is FieldType.MULTI_SELECT:
        if raw is None:
            return None
        if isinstance(raw, list):
            return toggle_many(raw)
        return [str(raw)]

    return raw


def toggle_many(values: list[Any]) -> list[str]:
    """Normalize a whole multi-select value: strings only, first-seen order, no duplicates."""
    result: list[str] = []
    for value in values:
        result = toggle_option(result, str(value), True)
    return result
