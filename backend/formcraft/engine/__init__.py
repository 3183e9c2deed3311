"""Form rendering & validation engine.

Public API:
    - FormSchema / FieldSpec / FieldType: decoded schema types (parse_schema).
    - render_field / render_form: field-type dispatch to control descriptions.
    - validate_field / validate_answers: per-field rules and the submit pass.
    - compute_progress / progress_percent: completion percentage.
    - reduce / FormEngine: pure state transitions and the adapter around them.
    - SessionTracker / LivenessStore: best-effort heartbeat and abandonment.
"""

from formcraft.engine.liveness import LivenessStore, SessionTracker, TrackerState
from formcraft.engine.mapping import (
    answers_for_nlu,
    answers_to_items,
    items_to_answers,
    merge_mapped_answers,
)
from formcraft.engine.progress import compute_progress, progress_percent
from formcraft.engine.renderer import (
    Control,
    FormView,
    Widget,
    coerce_input,
    render_field,
    render_form,
    toggle_option,
)
from formcraft.engine.schema import (
    AnswerMap,
    ErrorMap,
    FieldOption,
    FieldSpec,
    FieldType,
    FieldValidation,
    FormSchema,
    FormSettings,
    parse_schema,
)
from formcraft.engine.state import (
    FieldChanged,
    FormEngine,
    FormState,
    OptionToggled,
    SubmitAttempted,
    SubmitFailed,
    SubmitSucceeded,
    reduce,
)
from formcraft.engine.validation import validate_answers, validate_field

__all__ = [
    "AnswerMap",
    "Control",
    "ErrorMap",
    "FieldChanged",
    "FieldOption",
    "FieldSpec",
    "FieldType",
    "FieldValidation",
    "FormEngine",
    "FormSchema",
    "FormSettings",
    "FormState",
    "FormView",
    "LivenessStore",
    "OptionToggled",
    "SessionTracker",
    "SubmitAttempted",
    "SubmitFailed",
    "SubmitSucceeded",
    "TrackerState",
    "Widget",
    "answers_for_nlu",
    "answers_to_items",
    "coerce_input",
    "compute_progress",
    "items_to_answers",
    "merge_mapped_answers",
    "parse_schema",
    "progress_percent",
    "reduce",
    "render_field",
    "render_form",
    "toggle_option",
    "validate_answers",
    "validate_field",
]
