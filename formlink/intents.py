"""Intents: requested state mutations handed to the dispatcher.

The form core never writes to the state container directly. Every change
it wants (new errors, pending flag, submit failure, reset) is described as
an immutable Intent and handed to a dispatcher, which applies intents one
at a time.

Intents are also the audit trail of a form: they serialize to dicts and
JSONL. Continuations carried by ``validate_fields_errors`` and the
predicates in its error-validator map are callables and are left out of
the serialized form.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from dateutil import parser as date_parser

from formlink.types import ComputedErrorsMap, IntentType, ValidityResult


@dataclass(frozen=True)
class Intent:
    """A single requested state mutation.

    Attributes:
        type: Kind of mutation
        model: Concrete state path the mutation applies to
        payload: Kind-specific data (errors map, validity, continuations...)
        sequence: Optional ordering token; stores drop stale errors intents
        origin: Identifier of the controller that numbered ``sequence``.
            Sequences are only compared between intents of the same origin.
        intent_id: Unique identifier (e.g., "int_3f2a...")
        ts: UTC timestamp when the intent was created

    Examples:
        >>> intent = Actions.set_validity("user", True)
        >>> intent.type
        <IntentType.SET_VALIDITY: 'validity.set'>
        >>> intent.payload
        {'validity': True}
    """
    type: IntentType
    model: str
    payload: Dict[str, Any] = field(default_factory=dict)
    sequence: Optional[int] = None
    origin: Optional[str] = None
    intent_id: str = field(default_factory=lambda: f"int_{uuid.uuid4().hex[:16]}")
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Normalize a string intent type to IntentType."""
        if isinstance(self.type, str) and not isinstance(self.type, IntentType):
            object.__setattr__(self, "type", IntentType(self.type))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization, dropping callables."""
        result: Dict[str, Any] = {
            "intentId": self.intent_id,
            "type": self.type.value,
            "model": self.model,
            "ts": self.ts.isoformat(),
        }
        payload = _serializable(self.payload)
        if payload:
            result["payload"] = payload
        if self.sequence is not None:
            result["sequence"] = self.sequence
        if self.origin is not None:
            result["origin"] = self.origin
        return result

    def to_jsonl(self) -> str:
        """Convert to a single-line JSON string."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Intent":
        """Create Intent from a dict produced by ``to_dict``."""
        return cls(
            type=IntentType(data["type"]),
            model=data["model"],
            payload=data.get("payload", {}),
            sequence=data.get("sequence"),
            origin=data.get("origin"),
            intent_id=data["intentId"],
            ts=date_parser.isoparse(data["ts"]),
        )


def _serializable(value: Any) -> Any:
    if isinstance(value, Mapping):
        cleaned = {key: _serializable(sub) for key, sub in value.items() if not callable(sub)}
        return {key: sub for key, sub in cleaned.items() if sub is not None}
    if callable(value):
        return None
    return value


Dispatch = Callable[[Intent], Any]
"""Type alias for dispatcher callables."""


class Actions:
    """Intent constructors, one per mutation the form core can request."""

    @staticmethod
    def set_validity(model: str, validity: ValidityResult) -> Intent:
        return Intent(IntentType.SET_VALIDITY, model, {"validity": validity})

    @staticmethod
    def set_fields_errors(model: str, fields_errors: ComputedErrorsMap,
                          sequence: Optional[int] = None,
                          origin: Optional[str] = None) -> Intent:
        return Intent(
            IntentType.SET_FIELDS_ERRORS,
            model,
            {"fields_errors": dict(fields_errors)},
            sequence=sequence,
            origin=origin,
        )

    @staticmethod
    def set_pending(model: str, pending: bool = True) -> Intent:
        return Intent(IntentType.SET_PENDING, model, {"pending": pending})

    @staticmethod
    def set_submit_failed(model: str) -> Intent:
        return Intent(IntentType.SET_SUBMIT_FAILED, model)

    @staticmethod
    def reset(model: str) -> Intent:
        return Intent(IntentType.RESET, model)

    @staticmethod
    def change(model: str, value: Any) -> Intent:
        return Intent(IntentType.CHANGE, model, {"value": value})

    @staticmethod
    def validate_fields_errors(
        model: str,
        error_validators: Optional[Mapping[str, Any]],
        on_valid: Optional[Callable[[], Any]] = None,
        on_invalid: Optional[Callable[[], Any]] = None,
    ) -> Intent:
        """Ask the dispatcher to check every field, then branch on the result.

        The dispatcher runs ``error_validators`` against the current model
        value, stores the resulting errors, and calls ``on_valid`` or
        ``on_invalid`` depending on whether the form ended up valid.
        """
        return Intent(
            IntentType.VALIDATE_FIELDS_ERRORS,
            model,
            {
                "error_validators": dict(error_validators or {}),
                "on_valid": on_valid,
                "on_invalid": on_invalid,
            },
        )


actions = Actions()


__all__ = [
    "Intent",
    "Dispatch",
    "Actions",
    "actions",
]
