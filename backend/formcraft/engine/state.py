"""Form-fill state machine.

``reduce(state, event)`` is the whole render/validate logic as a pure
function. ``FormEngine`` is the thin adapter a UI or API handler holds on to:
it dispatches events, exposes the derived view, and calls the submission
callback once per successful validation pass.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from formcraft.engine.progress import progress_percent
from formcraft.engine.renderer import FormView, coerce_input, render_form, toggle_option
from formcraft.engine.schema import AnswerMap, ErrorMap, FormSchema
from formcraft.engine.validation import validate_answers

logger = logging.getLogger(__name__)

SubmitCallback = Callable[[AnswerMap], Awaitable[Any] | Any]


# ---------------------------------------------------------------------------
# State and events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormState:
    schema: FormSchema
    answers: AnswerMap = field(default_factory=dict)
    errors: ErrorMap = field(default_factory=dict)
    submitting: bool = False
    # Answers accepted by the last submit attempt, waiting for the callback
    pending: AnswerMap | None = None
    submissions: int = 0


@dataclass(frozen=True)
class FieldChanged:
    key: str
    value: Any


@dataclass(frozen=True)
class OptionToggled:
    key: str
    option_value: str
    checked: bool


@dataclass(frozen=True)
class SubmitAttempted:
    pass


@dataclass(frozen=True)
class SubmitSucceeded:
    reset: bool = True


@dataclass(frozen=True)
class SubmitFailed:
    pass


Event = FieldChanged | OptionToggled | SubmitAttempted | SubmitSucceeded | SubmitFailed


def _set_answer(state: FormState, key: str, value: Any) -> FormState:
    answers = {**state.answers, key: value}
    errors = {k: v for k, v in state.errors.items() if k != key}
    return replace(state, answers=answers, errors=errors)


def reduce(state: FormState, event: Event) -> FormState:
    if isinstance(event, FieldChanged):
        return _set_answer(state, event.key, event.value)

    if isinstance(event, OptionToggled):
        value = toggle_option(state.answers.get(event.key), event.option_value, event.checked)
        return _set_answer(state, event.key, value)

    if isinstance(event, SubmitAttempted):
        if state.submitting:
            return state
        errors = validate_answers(state.schema, state.answers)
        if errors:
            return replace(state, errors=errors, pending=None)
        return replace(state, errors={}, submitting=True, pending=dict(state.answers))

    if isinstance(event, SubmitSucceeded):
        done = replace(state, submitting=False, pending=None, submissions=state.submissions + 1)
        if event.reset:
            return replace(done, answers={}, errors={})
        return done

    if isinstance(event, SubmitFailed):
        return replace(state, submitting=False, pending=None)

    raise TypeError(f"Unknown form event: {event!r}")


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class FormEngine:
    """Holds one form-fill session's state.

    Usage::

        engine = FormEngine(schema, on_submit=save_answers)
        engine.change("email", "a@b.com")
        engine.toggle("topics", "billing", True)
        if not await engine.submit():
            show(engine.errors)
    """

    def __init__(
        self,
        schema: FormSchema,
        on_submit: SubmitCallback,
        *,
        reset_on_success: bool = True,
    ) -> None:
        self._state = FormState(schema=schema)
        self._on_submit = on_submit
        self._reset_on_success = reset_on_success

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def schema(self) -> FormSchema:
        return self._state.schema

    @property
    def answers(self) -> AnswerMap:
        return dict(self._state.answers)

    @property
    def errors(self) -> ErrorMap:
        return dict(self._state.errors)

    @property
    def submitting(self) -> bool:
        return self._state.submitting

    @property
    def progress(self) -> int:
        return progress_percent(self._state.schema, self._state.answers)

    def dispatch(self, event: Event) -> FormState:
        self._state = reduce(self._state, event)
        return self._state

    def change(self, key: str, raw: Any) -> None:
        """Store a control's value, coerced to the field's answer type."""
        spec = self.schema.field(key)
        value = coerce_input(spec, raw) if spec is not None else raw
        self.dispatch(FieldChanged(key, value))

    def toggle(self, key: str, option_value: str, checked: bool) -> None:
        self.dispatch(OptionToggled(key, option_value, checked))

    def apply(self, answers: Mapping[str, Any]) -> None:
        """Feed several answers at once, e.g. a stored draft or mapped NLU output."""
        for key, value in answers.items():
            self.change(key, value)

    def view(self, loading: bool = False) -> FormView:
        return render_form(
            self._state.schema,
            self._state.answers,
            self._state.errors,
            progress=self.progress,
            loading=loading or self._state.submitting,
        )

    async def submit(self) -> bool:
        """Validate everything and hand the answers to the callback.

        Returns False when validation failed or a submission is already in
        flight. A callback failure restores the actionable state and
        propagates to the caller.
        """
        if self._state.submitting:
            logger.debug("Submit ignored: a submission is already in flight")
            return False

        self.dispatch(SubmitAttempted())
        answers = self._state.pending
        if answers is None:
            return False

        try:
            result = self._on_submit(answers)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self.dispatch(SubmitFailed())
            raise

        self.dispatch(SubmitSucceeded(reset=self._reset_on_success))
        return True
