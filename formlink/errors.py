"""Exception types for formlink.

Only configuration problems and protocol misuse are exceptions. A failed
submission is a regular state (SubmitState.SUBMITTED_INVALID) reported
through form metadata, and errors raised by validator predicates are never
wrapped: they propagate to whoever triggered the validation pass.
"""

from typing import Any, Dict, Optional


class FormLinkError(Exception):
    """Base class for all formlink errors."""


class FormConfigurationError(FormLinkError):
    """Raised when a form is constructed with missing or invalid configuration.

    Attributes:
        field: Name of the offending configuration option
        value: The rejected value, if any

    Examples:
        >>> err = FormConfigurationError("model", "A model reference is required")
        >>> err.field
        'model'
    """

    def __init__(self, field: str, message: str, value: Optional[Any] = None):
        self.field = field
        self.value = value
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "type": "configuration",
            "field": self.field,
            "message": str(self),
        }
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class UnknownIntentError(FormLinkError):
    """Raised by a store when it receives an intent kind it cannot apply."""

    def __init__(self, intent_type: Any):
        self.intent_type = intent_type
        super().__init__(f"Unknown intent type: {intent_type!r}")


class UnknownModelError(FormLinkError):
    """Raised by a store when an intent targets a model with no registered form."""

    def __init__(self, model: str):
        self.model = model
        super().__init__(f"No form registered for model {model!r}")


__all__ = [
    "FormLinkError",
    "FormConfigurationError",
    "UnknownIntentError",
    "UnknownModelError",
]
