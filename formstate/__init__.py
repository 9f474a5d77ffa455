"""formstate: form state and validation engine.

formstate tracks the values and validation errors of a declaratively
described form and gates submission on every field passing validation:
- Field schema of immutable descriptors with pure validators
- Per-field validation on change and blur, full validation on submit
- Idle / PendingConfirmation submission state machine
- Reset to default values
- Event stream and control descriptions for renderers

Basic usage:
    >>> from formstate import FormEngine, FieldDescriptor, required
    >>> engine = FormEngine([FieldDescriptor(name="name", validate=required())])
    >>> engine.on_field_change("name", "")
    >>> engine.errors
    {'name': 'This field is required'}
    >>> engine.close()
"""

__version__ = "0.1.0"
__author__ = "formstate developers"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formstate.config import FormConfig
from formstate.engine import FormEngine, FormState
from formstate.errors import (
    ConfigurationError,
    DuplicateFieldError,
    FormClosedError,
    FormError,
    SchemaDefinitionError,
    UnknownFieldError,
)
from formstate.schema import FieldDescriptor, FieldOption, FieldSchema
from formstate.types import EventType, FieldKind, FormPhase
from formstate.validation import (
    chain,
    email,
    json_schema_validator,
    matches_field,
    max_length,
    min_length,
    one_of,
    required,
)

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormEngine",
    "FormState",
    "FormConfig",
    "FieldDescriptor",
    "FieldOption",
    "FieldSchema",
    "FieldKind",
    "FormPhase",
    "EventType",
    "FormError",
    "UnknownFieldError",
    "DuplicateFieldError",
    "SchemaDefinitionError",
    "ConfigurationError",
    "FormClosedError",
    "required",
    "email",
    "min_length",
    "max_length",
    "matches_field",
    "one_of",
    "chain",
    "json_schema_validator",
]
