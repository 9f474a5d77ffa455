"""Core type definitions for the formstate engine.

This module defines the enumerations shared across the package:
- FieldKind: Control kinds a field descriptor can declare
- FormPhase: Phases of the submission confirmation sequence
- EventType: Observable event types emitted by the engine

These types form the contract between a renderer and the form engine.
"""

from enum import Enum


class FieldKind(str, Enum):
    """Kind of input control a field renders as.

    ``textarea`` and ``select`` have dedicated renderer branches; every other
    kind is a primitive ``<input type=...>`` control.
    """
    TEXT = "text"
    EMAIL = "email"
    PASSWORD = "password"
    NUMBER = "number"
    TEL = "tel"
    URL = "url"
    DATE = "date"
    TEXTAREA = "textarea"
    SELECT = "select"

    @property
    def is_primitive_input(self) -> bool:
        return self not in (FieldKind.TEXTAREA, FieldKind.SELECT)


class FormPhase(str, Enum):
    """Phases of the submission confirmation sequence.

    IDLE is the resting phase. PENDING_CONFIRMATION is entered when a submit
    passes validation and left once the submit hook has fired.
    """
    IDLE = "idle"
    PENDING_CONFIRMATION = "pending_confirmation"


class EventType(str, Enum):
    """Event types emitted by the form engine."""
    FIELD_CHANGED = "field.changed"
    FIELD_BLURRED = "field.blurred"
    VALIDATION_PASSED = "validation.passed"
    VALIDATION_FAILED = "validation.failed"
    SUBMISSION_PENDING = "submission.pending"
    SUBMISSION_CONFIRMED = "submission.confirmed"
    FORM_RESET = "form.reset"
    THEME_TOGGLED = "theme.toggled"
    BANNER_EXPIRED = "banner.expired"


__all__ = [
    "FieldKind",
    "FormPhase",
    "EventType",
]
