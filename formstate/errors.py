"""Exception types for the formstate engine.

Field validation failures are not exceptions: they are plain messages kept in
the form's error mapping. The exceptions below signal contract violations by
the caller (unknown field names, malformed schemas, bad configuration) and
are raised immediately rather than silently ignored.
"""

from typing import Iterable, Optional


class FormError(Exception):
    """Base class for all formstate exceptions."""


class UnknownFieldError(FormError, KeyError):
    """Raised when a field name is not part of the form schema.

    Attributes:
        name: The field name that was looked up
        known: Names that the schema does define

    Examples:
        >>> err = UnknownFieldError("emial", known=["name", "email"])
        >>> err.name
        'emial'
    """

    def __init__(self, name: str, known: Optional[Iterable[str]] = None):
        self.name = name
        self.known = list(known or [])
        message = f"Unknown field '{name}'"
        if self.known:
            message += f". Known fields are: {', '.join(self.known)}"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class DuplicateFieldError(FormError):
    """Raised when two descriptors in one schema share a name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate field name '{name}' in form schema")


class SchemaDefinitionError(FormError):
    """Raised when a field descriptor is structurally invalid.

    Attributes:
        field: Name of the offending field, if known
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class ConfigurationError(FormError):
    """Raised when form configuration values are invalid."""


class FormClosedError(FormError):
    """Raised when an operation is attempted on a closed form engine."""


__all__ = [
    "FormError",
    "UnknownFieldError",
    "DuplicateFieldError",
    "SchemaDefinitionError",
    "ConfigurationError",
    "FormClosedError",
]
