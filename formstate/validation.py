"""Validation helpers and orchestration for the formstate engine.

A validator is a pure function ``(value, all_values) -> message`` where an
empty string or ``None`` means the value is valid. This module provides:

- Factories for the common validators (required, email, length limits,
  cross-field equality, allowed values) and ``chain`` to combine them
- ``json_schema_validator`` which builds a validator from a JSON Schema
  fragment using the jsonschema library
- ``ValidationEngine`` which runs the validators declared in a FieldSchema,
  for a single field or for the whole form

Validators are caller code: any exception they raise is propagated unchanged.
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional

import jsonschema
from jsonschema import Draft7Validator

if TYPE_CHECKING:
    from formstate.schema import FieldSchema


Validator = Callable[[str, Mapping[str, str]], Optional[str]]
"""Type alias for field validators.

Called with the field's value and the full value mapping; returns an error
message, or ``""``/``None`` when the value is valid.
"""

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


def required(message: str = "This field is required") -> Validator:
    """Fail when the value is empty.

    Examples:
        >>> check = required("Name is required")
        >>> check("", {})
        'Name is required'
        >>> check("Ada", {})
        ''
    """
    def check(value: str, all_values: Mapping[str, str]) -> str:
        return "" if value else message
    return check


def email(message: str = "Invalid email format") -> Validator:
    """Fail when a non-empty value does not look like an email address.

    Empty values pass; combine with ``required`` to reject them.
    """
    def check(value: str, all_values: Mapping[str, str]) -> str:
        if not value or EMAIL_PATTERN.search(value):
            return ""
        return message
    return check


def min_length(length: int, message: Optional[str] = None) -> Validator:
    """Fail when a non-empty value is shorter than ``length`` characters."""
    message = message or f"Minimum {length} chars"

    def check(value: str, all_values: Mapping[str, str]) -> str:
        if value and len(value) < length:
            return message
        return ""
    return check


def max_length(length: int, message: Optional[str] = None) -> Validator:
    """Fail when the value is longer than ``length`` characters."""
    message = message or f"Maximum {length} chars"

    def check(value: str, all_values: Mapping[str, str]) -> str:
        if value and len(value) > length:
            return message
        return ""
    return check


def matches_field(other: str, message: Optional[str] = None) -> Validator:
    """Fail when the value differs from the current value of field ``other``.

    Examples:
        >>> check = matches_field("password", "Passwords do not match")
        >>> check("secret", {"password": "secret"})
        ''
        >>> check("secrit", {"password": "secret"})
        'Passwords do not match'
    """
    message = message or f"Must match {other}"

    def check(value: str, all_values: Mapping[str, str]) -> str:
        return "" if value == all_values.get(other, "") else message
    return check


def one_of(allowed: Iterable[str], message: Optional[str] = None) -> Validator:
    """Fail when a non-empty value is not one of ``allowed``."""
    choices = tuple(allowed)
    message = message or f"Must be one of: {', '.join(choices)}"

    def check(value: str, all_values: Mapping[str, str]) -> str:
        if value and value not in choices:
            return message
        return ""
    return check


def chain(*validators: Validator) -> Validator:
    """Combine validators; the first non-empty message wins.

    Examples:
        >>> check = chain(required("Email is required"), email("Invalid email format"))
        >>> check("", {})
        'Email is required'
        >>> check("nope", {})
        'Invalid email format'
        >>> check("a@b.com", {})
        ''
    """
    def check(value: str, all_values: Mapping[str, str]) -> str:
        for validator in validators:
            message = validator(value, all_values)
            if message:
                return message
        return ""
    return check


def json_schema_validator(fragment: Dict[str, Any], label: str = "Value") -> Validator:
    """Build a validator from a JSON Schema fragment describing a string.

    The fragment is checked with ``Draft7Validator.check_schema`` up front.
    An empty value is treated as missing: it fails only when the fragment sets
    ``"required": true`` (a formstate extension, stripped before compiling).

    Args:
        fragment: JSON Schema keywords applied to the string value, e.g.
            ``{"minLength": 10, "maxLength": 100}``
        label: Human-readable field label used in messages

    Raises:
        jsonschema.SchemaError: If the fragment is not a valid schema

    Examples:
        >>> check = json_schema_validator({"minLength": 10}, label="About You")
        >>> check("short", {})
        'About You is too short. Minimum length: 10, got: 5'
        >>> check("long enough text", {})
        ''
    """
    rules = dict(fragment)
    is_required = bool(rules.pop("required", False))
    schema = {"type": "string", **rules}
    Draft7Validator.check_schema(schema)
    validator = Draft7Validator(schema, format_checker=Draft7Validator.FORMAT_CHECKER)

    def check(value: str, all_values: Mapping[str, str]) -> str:
        if not value:
            return f"{label} is required" if is_required else ""
        error = next(iter(validator.iter_errors(value)), None)
        if error is None:
            return ""
        return _translate_error(error, label)
    return check


def _translate_error(error: jsonschema.ValidationError, label: str) -> str:
    """Translate a jsonschema ValidationError into a display message."""
    if error.validator == "minLength":
        actual_length = len(error.instance) if error.instance else 0
        return f"{label} is too short. Minimum length: {error.validator_value}, got: {actual_length}"

    if error.validator == "maxLength":
        actual_length = len(error.instance) if error.instance else 0
        return f"{label} is too long. Maximum length: {error.validator_value}, got: {actual_length}"

    if error.validator == "pattern":
        return f"{label} does not match required pattern: {error.validator_value}"

    if error.validator == "format":
        return f"{label} has invalid format. Expected format: {error.validator_value}"

    if error.validator in ("enum", "const"):
        return f"{label} has invalid value. Must be one of: {error.validator_value}"

    return f"{label} validation failed: {error.message}"


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating every field of a form.

    Attributes:
        errors: Field name to message, only for fields that failed
        values: The value snapshot that was validated

    Examples:
        >>> result = ValidationResult(errors={})
        >>> result.is_valid
        True
    """
    errors: Dict[str, str]
    values: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def invalid_fields(self) -> List[str]:
        return list(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": dict(self.errors),
            "invalidFields": self.invalid_fields,
        }


class ValidationEngine:
    """Runs the validators declared in a FieldSchema.

    The engine holds no form state: it is given the value mapping on every
    call and returns messages, leaving the caller to decide where they go.

    Examples:
        >>> from formstate.schema import FieldDescriptor, FieldSchema
        >>> schema = FieldSchema([
        ...     FieldDescriptor(name="name", label="Name", validate=required("Name is required")),
        ... ])
        >>> engine = ValidationEngine(schema)
        >>> engine.validate_all({"name": ""}).errors
        {'name': 'Name is required'}
    """

    def __init__(self, schema: "FieldSchema") -> None:
        self.schema = schema

    def validate_field(self, name: str, value: str, all_values: Mapping[str, str]) -> str:
        """Run one field's validator.

        Args:
            name: Field name; must exist in the schema
            value: Value to validate
            all_values: Value mapping passed as cross-field context

        Returns:
            The error message, or ``""`` when valid or when the field
            declares no validator

        Raises:
            UnknownFieldError: If ``name`` is not in the schema
        """
        descriptor = self.schema.get(name)
        if descriptor.validate is None:
            return ""
        return descriptor.validate(value, all_values) or ""

    def validate_all(self, values: Mapping[str, str]) -> ValidationResult:
        """Validate every field against one value snapshot.

        Fields missing from ``values`` are validated as ``""``.
        """
        snapshot = dict(values)
        errors: Dict[str, str] = {}
        for descriptor in self.schema:
            message = self.validate_field(descriptor.name, snapshot.get(descriptor.name, ""), snapshot)
            if message:
                errors[descriptor.name] = message
        return ValidationResult(errors=errors, values=snapshot)


__all__ = [
    "Validator",
    "EMAIL_PATTERN",
    "required",
    "email",
    "min_length",
    "max_length",
    "matches_field",
    "one_of",
    "chain",
    "json_schema_validator",
    "ValidationResult",
    "ValidationEngine",
]
