"""Field schema for the formstate engine.

A form is described by an ordered list of immutable FieldDescriptor entries.
Each descriptor carries the field's identity (its name), presentation hints
(label, kind, options, limits) and an optional pure validator. FieldSchema
wraps the list, enforces unique names and provides lookup by name.

Schemas can also be built from plain dicts using the same camelCase keys as
the widget props (``maxLength``, ``defaultValue``, ``showCharCount``). The
declarative part of such dicts is checked against a JSON Schema.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from jsonschema import Draft7Validator, SchemaError

from formstate.errors import DuplicateFieldError, SchemaDefinitionError, UnknownFieldError
from formstate.types import FieldKind
from formstate.validation import Validator, json_schema_validator


# JSON Schema for dict-based field definitions. Callables ("validate") are not
# described here and are checked separately.
FIELD_DEFINITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "label": {"type": "string"},
        "type": {"enum": [kind.value for kind in FieldKind]},
        "required": {"type": "boolean"},
        "placeholder": {"type": "string"},
        "options": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["value"],
                "properties": {
                    "value": {"type": "string"},
                    "label": {"type": "string"},
                },
            },
        },
        "maxLength": {"type": "integer", "minimum": 0},
        "min": {"type": ["string", "number"]},
        "max": {"type": ["string", "number"]},
        "defaultValue": {"type": "string"},
        "showCharCount": {"type": "boolean"},
        "rules": {"type": "object"},
    },
}

_definition_validator = Draft7Validator(FIELD_DEFINITION_SCHEMA)


@dataclass(frozen=True)
class FieldOption:
    """One choice of a select field.

    Examples:
        >>> FieldOption(value="male", label="Male").label
        'Male'
        >>> FieldOption(value="other").label
        'other'
    """
    value: str
    label: str = ""

    def __post_init__(self):
        if not self.label:
            object.__setattr__(self, "label", self.value)

    def to_dict(self) -> Dict[str, str]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True)
class FieldDescriptor:
    """Static description of one form field.

    ``required`` is a presentation hint only (the renderer shows a marker);
    the engine enforces nothing on its own and leaves that to ``validate``.

    Attributes:
        name: Unique key of the field within the form
        label: Display text; defaults to the name
        kind: Which control the field renders as
        required: Presentation hint for a "required" marker
        validate: Pure validator ``(value, all_values) -> message``
        options: Choices, mandatory for select fields
        max_length: Maximum length hint for the control
        default_value: Value restored by reset; ``None`` means ``""``
        placeholder: Explicit placeholder; derived from the label when unset
        min: Lower limit hint (number/date inputs)
        max: Upper limit hint (number/date inputs)
        show_char_count: Render a ``count/max_length`` counter

    Examples:
        >>> email_field = FieldDescriptor(name="email", label="Email", kind=FieldKind.EMAIL)
        >>> email_field.effective_placeholder
        'Enter email'
        >>> email_field.reset_value
        ''
    """
    name: str
    label: str = ""
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    validate: Optional[Validator] = None
    options: Tuple[FieldOption, ...] = ()
    max_length: Optional[int] = None
    default_value: Optional[str] = None
    placeholder: Optional[str] = None
    min: Optional[Union[int, float, str]] = None
    max: Optional[Union[int, float, str]] = None
    show_char_count: bool = False

    def __post_init__(self):
        """Normalize fields and enforce structural constraints."""
        if not isinstance(self.name, str) or not self.name:
            raise SchemaDefinitionError("Field name must be a non-empty string", field=None)

        if isinstance(self.kind, str):
            try:
                object.__setattr__(self, "kind", FieldKind(self.kind))
            except ValueError:
                raise SchemaDefinitionError(
                    f"Field '{self.name}' has unknown type '{self.kind}'", field=self.name
                ) from None

        if not self.label:
            object.__setattr__(self, "label", self.name)

        options = []
        for opt in self.options:
            if isinstance(opt, FieldOption):
                options.append(opt)
            elif isinstance(opt, dict) and "value" in opt:
                options.append(FieldOption(value=opt["value"], label=opt.get("label", "")))
            else:
                raise SchemaDefinitionError(
                    f"Field '{self.name}' has an option without a value: {opt!r}", field=self.name
                )
        object.__setattr__(self, "options", tuple(options))

        if self.kind == FieldKind.SELECT and not self.options:
            raise SchemaDefinitionError(
                f"Field '{self.name}' is a select field but declares no options", field=self.name
            )

        if self.max_length is not None and self.max_length < 0:
            raise SchemaDefinitionError(
                f"Field '{self.name}' has negative maxLength {self.max_length}", field=self.name
            )

        if self.validate is not None and not callable(self.validate):
            raise SchemaDefinitionError(
                f"Field '{self.name}' validator is not callable", field=self.name
            )

    @property
    def effective_placeholder(self) -> str:
        """Placeholder text, derived from the label when none is set."""
        if self.placeholder:
            return self.placeholder
        verb = "Select" if self.kind == FieldKind.SELECT else "Enter"
        return f"{verb} {self.label.lower()}"

    @property
    def reset_value(self) -> str:
        """Value this field takes on reset."""
        return self.default_value or ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert the declarative part to a dict (validators are omitted)."""
        result: Dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "type": self.kind.value,
            "required": self.required,
        }
        if self.options:
            result["options"] = [opt.to_dict() for opt in self.options]
        if self.max_length is not None:
            result["maxLength"] = self.max_length
        if self.default_value is not None:
            result["defaultValue"] = self.default_value
        if self.placeholder is not None:
            result["placeholder"] = self.placeholder
        if self.min is not None:
            result["min"] = self.min
        if self.max is not None:
            result["max"] = self.max
        if self.show_char_count:
            result["showCharCount"] = True
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        """Create a FieldDescriptor from a widget-style dict.

        The validator is taken from ``validate`` (or ``validation``) when it is
        a callable, otherwise built from a ``rules`` JSON Schema fragment.

        Raises:
            SchemaDefinitionError: If the dict does not describe a valid field

        Examples:
            >>> about = FieldDescriptor.from_dict({
            ...     "name": "about", "label": "About You", "type": "textarea",
            ...     "maxLength": 100, "rules": {"minLength": 10},
            ... })
            >>> about.kind
            <FieldKind.TEXTAREA: 'textarea'>
            >>> about.validate("hello", {})
            'About You is too short. Minimum length: 10, got: 5'
        """
        errors = sorted(_definition_validator.iter_errors(data), key=lambda e: list(e.path))
        if errors:
            error = errors[0]
            where = ".".join(str(p) for p in error.path) or "<root>"
            name = data.get("name") if isinstance(data, dict) else None
            raise SchemaDefinitionError(
                f"Invalid field definition at '{where}': {error.message}", field=name
            )

        validate = data.get("validate", data.get("validation"))
        if validate is not None and not callable(validate):
            raise SchemaDefinitionError(
                f"Field '{data['name']}' validator is not callable", field=data["name"]
            )
        if validate is None and "rules" in data:
            try:
                validate = json_schema_validator(data["rules"], label=data.get("label") or data["name"])
            except SchemaError as exc:
                raise SchemaDefinitionError(
                    f"Field '{data['name']}' has invalid rules: {exc.message}", field=data["name"]
                ) from exc

        return cls(
            name=data["name"],
            label=data.get("label", ""),
            kind=FieldKind(data.get("type", FieldKind.TEXT.value)),
            required=data.get("required", False),
            validate=validate,
            options=tuple(data.get("options", [])),
            max_length=data.get("maxLength"),
            default_value=data.get("defaultValue"),
            placeholder=data.get("placeholder"),
            min=data.get("min"),
            max=data.get("max"),
            show_char_count=data.get("showCharCount", False),
        )


class FieldSchema:
    """Ordered, immutable collection of field descriptors with unique names.

    Examples:
        >>> schema = FieldSchema([
        ...     FieldDescriptor(name="name", label="Full Name"),
        ...     FieldDescriptor(name="email", label="Email", kind="email"),
        ... ])
        >>> schema.names()
        ['name', 'email']
        >>> "email" in schema
        True
        >>> schema.get("email").kind
        <FieldKind.EMAIL: 'email'>
    """

    def __init__(self, fields: Iterable[FieldDescriptor]):
        """Build a schema from descriptors.

        Raises:
            DuplicateFieldError: If two descriptors share a name
        """
        self._fields: Tuple[FieldDescriptor, ...] = tuple(fields)
        self._by_name: Dict[str, FieldDescriptor] = {}
        for descriptor in self._fields:
            if descriptor.name in self._by_name:
                raise DuplicateFieldError(descriptor.name)
            self._by_name[descriptor.name] = descriptor

    @classmethod
    def from_dicts(cls, definitions: Iterable[Dict[str, Any]]) -> "FieldSchema":
        """Build a schema from widget-style field dicts."""
        return cls(FieldDescriptor.from_dict(d) for d in definitions)

    def get(self, name: str) -> FieldDescriptor:
        """Look up a descriptor by name.

        Raises:
            UnknownFieldError: If no field has this name
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownFieldError(name, known=self.names()) from None

    def names(self) -> List[str]:
        return [descriptor.name for descriptor in self._fields]

    def default_values(self) -> Dict[str, str]:
        """Reset target: each field's default value, or ``""``."""
        return {descriptor.name: descriptor.reset_value for descriptor in self._fields}

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [descriptor.to_dict() for descriptor in self._fields]

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"FieldSchema({self.names()!r})"


__all__ = [
    "FIELD_DEFINITION_SCHEMA",
    "FieldOption",
    "FieldDescriptor",
    "FieldSchema",
]
