"""Form engine: the runtime owner of one form session's state.

The FormEngine coordinates the field schema, the validation engine, the
submission state machine and the success-banner timer. A renderer forwards
user events to it (field change, field blur, submit click, reset click) and
reads back values, errors and the submission phase to decide what to draw.

Usage:
    >>> from formstate.engine import FormEngine
    >>> from formstate.schema import FieldDescriptor
    >>> from formstate.validation import required
    >>> submitted = []
    >>> engine = FormEngine(
    ...     [FieldDescriptor(name="name", label="Full Name", validate=required("Name is required"))],
    ...     on_submit=submitted.append,
    ... )
    >>> engine.submit().errors
    {'name': 'Name is required'}
    >>> engine.on_field_change("name", "Ada")
    >>> engine.submit().is_valid
    True
    >>> submitted
    [{'name': 'Ada'}]
    >>> engine.close()
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from formstate.config import FormConfig
from formstate.controls import ControlSpec, describe_control
from formstate.errors import FormClosedError
from formstate.events import EventEmitter, FormEvent
from formstate.scheduler import Scheduler, ThreadingScheduler, TimerHandle
from formstate.schema import FieldDescriptor, FieldSchema
from formstate.state_machine import SubmissionStateMachine
from formstate.types import EventType, FormPhase
from formstate.validation import ValidationEngine, ValidationResult

logger = logging.getLogger(__name__)


SubmitHook = Callable[[Dict[str, str]], None]
FieldChangeHook = Callable[[str, str, Dict[str, str]], None]
ResetHook = Callable[[], None]
ThemeToggleHook = Callable[[bool], None]

SchemaLike = Union[FieldSchema, Iterable[Union[FieldDescriptor, Dict[str, Any]]]]


@dataclass
class FormState:
    """Mutable runtime snapshot of one form session.

    Attributes:
        values: Field name to current value, one entry per schema field
        errors: Field name to message, present only for currently invalid fields
        machine: Submission state machine holding the pending flag
    """
    values: Dict[str, str]
    machine: SubmissionStateMachine
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def submission_pending(self) -> bool:
        return self.machine.is_pending


def _coerce_schema(schema: SchemaLike) -> FieldSchema:
    if isinstance(schema, FieldSchema):
        return schema
    return FieldSchema(
        item if isinstance(item, FieldDescriptor) else FieldDescriptor.from_dict(item)
        for item in schema
    )


class FormEngine:
    """Owner of one form session's values, errors and submission phase.

    All operations run synchronously to completion. The only deferred work is
    the success-banner timer, which is cancelled by ``close()``. Its expiry
    never touches the session from the timer's thread; see ``poll()``.

    Attributes:
        form_id: Identifier used on emitted events
        schema: The field schema (read-only)
        config: Construction-time options
        emitter: Dispatches every recorded FormEvent to subscribers
    """

    def __init__(
        self,
        schema: SchemaLike,
        initial_values: Optional[Mapping[str, str]] = None,
        config: Optional[FormConfig] = None,
        on_submit: Optional[SubmitHook] = None,
        on_field_change: Optional[FieldChangeHook] = None,
        on_reset: Optional[ResetHook] = None,
        on_theme_toggle: Optional[ThemeToggleHook] = None,
        scheduler: Optional[Scheduler] = None,
        emitter: Optional[EventEmitter] = None,
        form_id: Optional[str] = None,
    ):
        """Create a form session.

        Args:
            schema: FieldSchema, or descriptors / widget-style dicts
            initial_values: Starting values; fields not listed start as ""
            config: Options; defaults to FormConfig()
            on_submit: Called with the full values once per accepted submit
            on_field_change: Called with (name, value, all_values) after a change
            on_reset: Called after reset
            on_theme_toggle: Called with the new dark-mode flag
            scheduler: Runs the success-banner timer; defaults to threads
            emitter: Receives recorded events; a fresh one is created if omitted
            form_id: Event identifier; generated if omitted

        Raises:
            UnknownFieldError: If initial_values names a field outside the schema
        """
        self.schema = _coerce_schema(schema)
        self.config = config or FormConfig()
        self.form_id = form_id or f"form_{uuid.uuid4().hex[:16]}"
        self.emitter = emitter or EventEmitter()

        self._on_submit = on_submit
        self._on_field_change = on_field_change
        self._on_reset = on_reset
        self._on_theme_toggle = on_theme_toggle

        self._scheduler: Scheduler = scheduler or ThreadingScheduler()
        self._banner: Optional[TimerHandle] = None
        self._dark_mode = self.config.dark_mode
        self._closed = False
        self._validation = ValidationEngine(self.schema)

        initial_values = dict(initial_values or {})
        for name in initial_values:
            self.schema.get(name)

        self._state = FormState(
            values={name: initial_values.get(name, "") for name in self.schema.names()},
            machine=SubmissionStateMachine(
                form_id=self.form_id,
                emitter=self.emitter,
                max_events=self.config.max_events,
            ),
        )

    # Read side

    @property
    def values(self) -> Dict[str, str]:
        return dict(self._state.values)

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self._state.errors)

    @property
    def phase(self) -> FormPhase:
        return self._state.machine.phase

    @property
    def submission_pending(self) -> bool:
        return self._state.submission_pending

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def success_banner_visible(self) -> bool:
        """True while a success-banner timer is running."""
        self.poll()
        return self._banner is not None and self._banner.active

    def poll(self) -> None:
        """Report an elapsed success-banner timer.

        Timers may elapse on another thread; the ``banner.expired`` event is
        recorded and dispatched here, on the thread that drives the engine.
        Every operation polls first, and renderers with their own loop can
        call this once per frame.
        """
        if self._closed or self._banner is None or not self._banner.fired:
            return
        self._banner = None
        self._state.machine.record(EventType.BANNER_EXPIRED)

    def value(self, name: str) -> str:
        """Current value of one field.

        Raises:
            UnknownFieldError: If ``name`` is not in the schema
        """
        self.schema.get(name)
        return self._state.values.get(name, "")

    def error(self, name: str) -> Optional[str]:
        """Current error message of one field, or None when it is valid."""
        self.schema.get(name)
        return self._state.errors.get(name)

    def get_events(self) -> List[FormEvent]:
        return self._state.machine.get_events()

    def controls(self) -> List[ControlSpec]:
        """Control descriptions for every field, in schema order."""
        return [
            describe_control(
                descriptor,
                self._state.values.get(descriptor.name, ""),
                self._state.errors.get(descriptor.name),
            )
            for descriptor in self.schema
        ]

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of the session for renderers and debugging."""
        return {
            "formId": self.form_id,
            "phase": self.phase.value,
            "values": self.values,
            "errors": self.errors,
            "darkMode": self._dark_mode,
            "successBannerVisible": self.success_banner_visible,
        }

    # Operations

    def on_field_change(self, name: str, raw_value: str) -> None:
        """Commit a new value for one field and revalidate that field only.

        The validator sees the value mapping after the change, so cross-field
        rules (such as a confirmation field) compare against fresh values.

        Raises:
            UnknownFieldError: If ``name`` is not in the schema
        """
        self._ensure_open()
        descriptor = self.schema.get(name)

        self._state.values[name] = raw_value
        updated_values = dict(self._state.values)

        if descriptor.validate is not None:
            self._set_error(name, self._validation.validate_field(name, raw_value, updated_values))

        logger.debug("Form %s: field %s changed", self.form_id, name)
        self._state.machine.record(
            EventType.FIELD_CHANGED,
            {"field": name, "error": self._state.errors.get(name)},
        )

        if self._on_field_change is not None:
            self._on_field_change(name, raw_value, updated_values)

    def on_field_blur(self, name: str, raw_value: str) -> None:
        """Revalidate one field when it loses focus.

        ``raw_value`` is validated against the committed value mapping as it
        stood before this event; stored values are never modified here.

        Raises:
            UnknownFieldError: If ``name`` is not in the schema
        """
        self._ensure_open()
        descriptor = self.schema.get(name)

        if descriptor.validate is not None:
            committed_values = dict(self._state.values)
            self._set_error(name, self._validation.validate_field(name, raw_value, committed_values))

        logger.debug("Form %s: field %s blurred", self.form_id, name)
        self._state.machine.record(
            EventType.FIELD_BLURRED,
            {"field": name, "error": self._state.errors.get(name)},
        )

    def submit(self) -> ValidationResult:
        """Validate every field and, if all pass, confirm the submission.

        The error mapping is replaced as a whole, so errors of fields that are
        now valid do not survive. With no errors the form passes through
        PENDING_CONFIRMATION and the submit hook fires exactly once.

        Returns:
            The validation result of this submit
        """
        self._ensure_open()
        result = self._validation.validate_all(self._state.values)
        self._state.errors = dict(result.errors)

        if not result.is_valid:
            logger.debug(
                "Form %s: submit rejected, invalid fields: %s",
                self.form_id, ", ".join(result.invalid_fields),
            )
            self._state.machine.record(EventType.VALIDATION_FAILED, {"errors": dict(result.errors)})
            return result

        self._state.machine.record(EventType.VALIDATION_PASSED)
        self._state.machine.transition_to(FormPhase.PENDING_CONFIRMATION)
        self._confirm_submission()
        return result

    def reset(self) -> None:
        """Restore default values, clear errors and drop any pending submission.

        Validators are not run: defaults are taken as they are.
        """
        self._ensure_open()
        self._cancel_banner()
        self._state.values = self.schema.default_values()
        self._state.errors = {}
        self._state.machine.clear()

        logger.info("Form %s: reset", self.form_id)
        self._state.machine.record(EventType.FORM_RESET)

        if self._on_reset is not None:
            self._on_reset()

    def toggle_theme(self) -> bool:
        """Flip dark mode and report the new mode to the theme hook.

        Returns:
            The new dark-mode flag
        """
        self._ensure_open()
        self._dark_mode = not self._dark_mode
        self._state.machine.record(EventType.THEME_TOGGLED, {"darkMode": self._dark_mode})

        if self._on_theme_toggle is not None:
            self._on_theme_toggle(self._dark_mode)
        return self._dark_mode

    def close(self) -> None:
        """Release the session; a running banner timer is cancelled."""
        if self._closed:
            return
        self._cancel_banner()
        self._closed = True
        logger.debug("Form %s: closed", self.form_id)

    def __enter__(self) -> "FormEngine":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # Internals

    def _confirm_submission(self) -> None:
        """Second phase of submit: fire the submit hook once, then start the banner."""
        machine = self._state.machine
        if not machine.is_pending:
            return

        if self._state.errors:
            logger.warning(
                "Form %s: errors appeared while submission was pending; dropping it",
                self.form_id,
            )
            machine.clear()
            return

        submitted_values = dict(self._state.values)
        machine.transition_to(FormPhase.IDLE, {"values": submitted_values})
        logger.info("Form %s: submission accepted", self.form_id)

        if self._on_submit is not None:
            self._on_submit(submitted_values)

        if self.config.banner_enabled:
            self._start_banner()

    def _set_error(self, name: str, message: str) -> None:
        if message:
            self._state.errors[name] = message
        else:
            self._state.errors.pop(name, None)

    def _start_banner(self) -> None:
        self._cancel_banner()
        # The timer only marks its handle as fired; poll() reports the expiry
        # on the engine's own thread.
        self._banner = self._scheduler.schedule(self.config.success_duration_ms, _banner_elapsed)

    def _cancel_banner(self) -> None:
        if self._banner is not None:
            self._banner.cancel()
            self._banner = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise FormClosedError(f"Form {self.form_id} is closed")
        self.poll()


def _banner_elapsed() -> None:
    pass


__all__ = [
    "FormState",
    "FormEngine",
]
