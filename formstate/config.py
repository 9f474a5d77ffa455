"""Construction-time configuration for a form engine.

FormConfig holds the options a form session is created with, apart from the
schema, the initial values and the hooks. It can be built directly or from a
widget-style dict (camelCase keys), which is validated with a JSON Schema.
"""

from dataclasses import dataclass
from typing import Any, Dict

from jsonschema import Draft7Validator

from formstate.errors import ConfigurationError


DEFAULT_SUCCESS_DURATION_MS = 5000
DEFAULT_SUCCESS_MESSAGE = "Form submitted successfully!"
DEFAULT_MAX_EVENTS = 1000

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "successDuration": {"type": "integer", "minimum": 0},
        "showSuccessMessage": {"type": "boolean"},
        "successMessage": {"type": "string"},
        "darkMode": {"type": "boolean"},
        "maxEvents": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

_config_validator = Draft7Validator(CONFIG_SCHEMA)


@dataclass(frozen=True)
class FormConfig:
    """Options for one form session.

    Attributes:
        success_duration_ms: How long the success banner stays up after an
            accepted submit; 0 disables the banner timer
        show_success_message: Whether a success banner is shown at all
        success_message: Banner text for the renderer
        dark_mode: Initial theme mode
        max_events: How many recent events the session keeps in its audit trail

    Examples:
        >>> FormConfig().success_duration_ms
        5000
        >>> FormConfig.from_dict({"successDuration": 0}).banner_enabled
        False
    """
    success_duration_ms: int = DEFAULT_SUCCESS_DURATION_MS
    show_success_message: bool = True
    success_message: str = DEFAULT_SUCCESS_MESSAGE
    dark_mode: bool = False
    max_events: int = DEFAULT_MAX_EVENTS

    def __post_init__(self):
        if (
            not isinstance(self.success_duration_ms, int)
            or isinstance(self.success_duration_ms, bool)
            or self.success_duration_ms < 0
        ):
            raise ConfigurationError(
                f"success_duration_ms must be a non-negative integer, got {self.success_duration_ms!r}"
            )
        if (
            not isinstance(self.max_events, int)
            or isinstance(self.max_events, bool)
            or self.max_events < 1
        ):
            raise ConfigurationError(
                f"max_events must be a positive integer, got {self.max_events!r}"
            )

    @property
    def banner_enabled(self) -> bool:
        """True when an accepted submit should start a banner timer."""
        return self.show_success_message and self.success_duration_ms > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successDuration": self.success_duration_ms,
            "showSuccessMessage": self.show_success_message,
            "successMessage": self.success_message,
            "darkMode": self.dark_mode,
            "maxEvents": self.max_events,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormConfig":
        """Create a FormConfig from camelCase keys; missing keys use defaults.

        Raises:
            ConfigurationError: If the dict fails the config schema
        """
        errors = sorted(_config_validator.iter_errors(data), key=lambda e: list(e.path))
        if errors:
            error = errors[0]
            where = ".".join(str(p) for p in error.path) or "<root>"
            raise ConfigurationError(f"Invalid form configuration at '{where}': {error.message}")

        return cls(
            success_duration_ms=data.get("successDuration", DEFAULT_SUCCESS_DURATION_MS),
            show_success_message=data.get("showSuccessMessage", True),
            success_message=data.get("successMessage", DEFAULT_SUCCESS_MESSAGE),
            dark_mode=data.get("darkMode", False),
            max_events=data.get("maxEvents", DEFAULT_MAX_EVENTS),
        )


__all__ = [
    "DEFAULT_SUCCESS_DURATION_MS",
    "DEFAULT_SUCCESS_MESSAGE",
    "DEFAULT_MAX_EVENTS",
    "CONFIG_SCHEMA",
    "FormConfig",
]
