"""Core type definitions for formlink.

This module defines the fundamental types used throughout formlink:
- ValidateOn: Revalidation moments a form can be configured with
- SubmitState: Lifecycle states of a form submission
- IntentType: Kinds of state mutations the core can request
- FieldState: Typed view over one field's (or the form's) metadata
- ValidityResult and the validator/errors map aliases

Form metadata itself lives in the external state container as plain nested
mappings. FieldState is only a read-side view over a single entry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from typing_extensions import TypeAlias


FORM_KEY = "$form"
"""Key holding form-level metadata inside a form metadata mapping."""

FORM_LEVEL = ""
"""Field path addressing the whole form in validator and errors maps."""


class ValidateOn(str, Enum):
    """Moments at which a form revalidates.

    A form is configured with a set of these, not a single one.
    """
    CHANGE = "change"
    SUBMIT = "submit"


class SubmitState(str, Enum):
    """Submission lifecycle states.

    IDLE -> PENDING -> {SUBMITTED_VALID, SUBMITTED_INVALID} -> IDLE.
    Reset returns to IDLE from any state.
    """
    IDLE = "idle"
    PENDING = "pending"
    SUBMITTED_VALID = "submitted_valid"
    SUBMITTED_INVALID = "submitted_invalid"


class IntentType(str, Enum):
    """Kinds of intents handed to the dispatcher."""
    SET_VALIDITY = "validity.set"
    SET_FIELDS_ERRORS = "errors.set"
    SET_PENDING = "submit.pending"
    SET_SUBMIT_FAILED = "submit.failed"
    RESET = "form.reset"
    VALIDATE_FIELDS_ERRORS = "errors.validate"
    CHANGE = "model.change"


ValidityResult: TypeAlias = Union[bool, Mapping[str, Any]]
"""A single bool, or a (possibly nested) mapping of named bools."""

Predicate: TypeAlias = Callable[[Any], ValidityResult]

ValidatorSpec: TypeAlias = Union[Predicate, Mapping[str, Any]]
"""A predicate, or a mapping of named predicates (possibly nested)."""

ValidatorMap: TypeAlias = Mapping[str, ValidatorSpec]
ErrorsMap: TypeAlias = Mapping[str, ValidatorSpec]
ComputedErrorsMap: TypeAlias = Dict[str, ValidityResult]


@dataclass(frozen=True)
class FieldState:
    """Metadata for a single field, or for the form itself under ``$form``.

    Attributes:
        valid: Whether the field currently has no errors
        errors: Error flags (True = error present), bool or named mapping
        validity: Last raw validator result (True = passes)
        pending: Whether a submission is in flight (form level only)
        touched: Whether the user has interacted with the field
        submitted: Whether the form was submitted successfully (form level)
        submit_failed: Whether the last submit attempt failed (form level)
        validated: Whether validators have run at least once

    Examples:
        >>> state = FieldState.from_dict({"valid": False, "errors": {"required": True}})
        >>> state.valid
        False
        >>> state.errors
        {'required': True}
    """
    valid: bool = True
    errors: ValidityResult = field(default_factory=dict)
    validity: ValidityResult = field(default_factory=dict)
    pending: bool = False
    touched: bool = False
    submitted: bool = False
    submit_failed: bool = False
    validated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the plain mapping stored in form metadata."""
        return {
            "valid": self.valid,
            "errors": self.errors,
            "validity": self.validity,
            "pending": self.pending,
            "touched": self.touched,
            "submitted": self.submitted,
            "submit_failed": self.submit_failed,
            "validated": self.validated,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FieldState":
        """Create FieldState from a metadata mapping, tolerating missing keys."""
        if not data:
            return cls()
        return cls(
            valid=data.get("valid", True),
            errors=data.get("errors", {}),
            validity=data.get("validity", {}),
            pending=data.get("pending", False),
            touched=data.get("touched", False),
            submitted=data.get("submitted", False),
            submit_failed=data.get("submit_failed", data.get("submitFailed", False)),
            validated=data.get("validated", False),
        )


INITIAL_FIELD_STATE = FieldState()


__all__ = [
    "FORM_KEY",
    "FORM_LEVEL",
    "ValidateOn",
    "SubmitState",
    "IntentType",
    "ValidityResult",
    "Predicate",
    "ValidatorSpec",
    "ValidatorMap",
    "ErrorsMap",
    "ComputedErrorsMap",
    "FieldState",
    "INITIAL_FIELD_STATE",
]
