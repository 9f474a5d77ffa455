"""Control descriptions handed to renderers.

The engine does not draw anything. For each field it can describe which
control branch a renderer should use (a plain input, a textarea or a select)
together with the value, placeholder, options, limits and current error.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from formstate.schema import FieldDescriptor, FieldOption
from formstate.types import FieldKind


@dataclass(frozen=True)
class ControlSpec:
    """What a renderer needs to draw one field.

    Attributes:
        name: Field name
        label: Display label
        element: "input", "textarea" or "select"
        input_type: HTML input type for "input" elements, else None
        value: Current value ("" when unset)
        placeholder: Placeholder text
        required: Show a required marker
        options: Select choices, led by an empty placeholder option
        max_length: Length limit hint
        min: Lower limit hint
        max: Upper limit hint
        char_count: "count/max" counter text, when enabled
        error: Current error message, or None
    """
    name: str
    label: str
    element: str
    value: str
    placeholder: str
    input_type: Optional[str] = None
    required: bool = False
    options: Tuple[FieldOption, ...] = field(default_factory=tuple)
    max_length: Optional[int] = None
    min: Any = None
    max: Any = None
    char_count: Optional[str] = None
    error: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return bool(self.error)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "element": self.element,
            "value": self.value,
            "placeholder": self.placeholder,
            "required": self.required,
        }
        if self.input_type is not None:
            result["inputType"] = self.input_type
        if self.options:
            result["options"] = [opt.to_dict() for opt in self.options]
        if self.max_length is not None:
            result["maxLength"] = self.max_length
        if self.min is not None:
            result["min"] = self.min
        if self.max is not None:
            result["max"] = self.max
        if self.char_count is not None:
            result["charCount"] = self.char_count
        if self.error:
            result["error"] = self.error
        return result


def describe_control(descriptor: FieldDescriptor, value: Optional[str] = None,
                     error: Optional[str] = None) -> ControlSpec:
    """Pick the control branch for a field and describe it.

    Examples:
        >>> from formstate.schema import FieldDescriptor
        >>> gender = FieldDescriptor(name="gender", label="Gender", kind="select",
        ...                          options=[{"value": "male", "label": "Male"}])
        >>> control = describe_control(gender, "")
        >>> control.element, [o.value for o in control.options]
        ('select', ['', 'male'])
        >>> control.options[0].label
        'Select gender'
    """
    value = value or ""
    placeholder = descriptor.effective_placeholder

    if descriptor.kind == FieldKind.SELECT:
        return ControlSpec(
            name=descriptor.name,
            label=descriptor.label,
            element="select",
            value=value,
            placeholder=placeholder,
            required=descriptor.required,
            options=(FieldOption(value="", label=placeholder),) + descriptor.options,
            error=error or None,
        )

    char_count = None
    if descriptor.show_char_count and descriptor.max_length is not None:
        char_count = f"{len(value)}/{descriptor.max_length}"

    if descriptor.kind == FieldKind.TEXTAREA:
        element, input_type = "textarea", None
    else:
        element, input_type = "input", descriptor.kind.value

    return ControlSpec(
        name=descriptor.name,
        label=descriptor.label,
        element=element,
        input_type=input_type,
        value=value,
        placeholder=placeholder,
        required=descriptor.required,
        max_length=descriptor.max_length,
        min=descriptor.min,
        max=descriptor.max,
        char_count=char_count,
        error=error or None,
    )


__all__ = [
    "ControlSpec",
    "describe_control",
]
