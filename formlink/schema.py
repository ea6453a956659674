"""Validator maps derived from JSON Schema.

Forms often already have a JSON Schema describing their model. This module
turns an object schema into a formlink validator map so the schema can
drive live validation directly:

    >>> schema = {
    ...     "type": "object",
    ...     "properties": {"email": {"type": "string", "format": "email"}},
    ...     "required": ["email"],
    ... }
    >>> validators = validators_from_schema(schema)
    >>> sorted(validators["email"])
    ['required', 'schema']
    >>> validators["email"]["schema"]("not-an-email")
    False

Each property becomes a mapping of named predicates, so the computed errors
for a field say *which* check failed: ``{"required": False, "schema": True}``.
"""

from typing import Any, Callable, Dict, Mapping, Optional

import jsonschema
from jsonschema import Draft7Validator

from formlink.types import Predicate


def is_present(value: Any) -> bool:
    """Predicate behind the "required" check: not missing and not empty."""
    return value is not None and value != "" and value != [] and value != {}


def _schema_predicate(subschema: Mapping[str, Any]) -> Predicate:
    validator = Draft7Validator(subschema, format_checker=jsonschema.FormatChecker())

    def check(value: Any) -> bool:
        # Missing values are the "required" check's concern
        if value is None:
            return True
        return validator.is_valid(value)

    return check


def _is_object_schema(subschema: Mapping[str, Any]) -> bool:
    return subschema.get("type") == "object" and "properties" in subschema


def _collect(schema: Mapping[str, Any], prefix: str, validators: Dict[str, Dict[str, Predicate]]) -> None:
    required = set(schema.get("required", []))
    for name, subschema in schema.get("properties", {}).items():
        field_path = f"{prefix}.{name}" if prefix else name
        if _is_object_schema(subschema):
            _collect(subschema, field_path, validators)
            if name in required:
                validators.setdefault(field_path, {})["required"] = is_present
            continue

        checks: Dict[str, Predicate] = {}
        if name in required:
            checks["required"] = is_present
        checks["schema"] = _schema_predicate(subschema)
        validators[field_path] = checks


def validators_from_schema(schema: Mapping[str, Any],
                           extra: Optional[Mapping[str, Mapping[str, Callable[[Any], Any]]]] = None
                           ) -> Dict[str, Dict[str, Predicate]]:
    """Build a validator map from a Draft 7 object schema.

    Nested object properties become dotted field paths ("address.city").

    Args:
        schema: A JSON Schema describing the form's model value
        extra: Additional named predicates per field path, merged over the
            schema-derived ones

    Returns:
        Validator map of field path -> {check name: predicate}

    Raises:
        jsonschema.SchemaError: If the provided schema is invalid
    """
    Draft7Validator.check_schema(schema)
    validators: Dict[str, Dict[str, Predicate]] = {}
    _collect(schema, "", validators)
    for field_path, checks in (extra or {}).items():
        validators.setdefault(field_path, {}).update(checks)
    return validators


__all__ = [
    "is_present",
    "validators_from_schema",
]
