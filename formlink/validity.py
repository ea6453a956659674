"""Validity engine for formlink forms.

This module recomputes per-field validity and errors from user-supplied
validator functions and merges them into a single computed errors map.

Two kinds of specification feed a pass:
- validators: predicates returning True when a value is *valid*
- errors: predicates returning True when a value is *in error*

Either kind may be a single predicate or a (nested) mapping of named
predicates, and a predicate may itself return a bool or a mapping of named
bools. All helpers here are defined over that recursive shape. In the
computed errors map True always means "error present"; errors-map entries
take precedence over inverted validator entries on conflicting keys.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from formlink import paths
from formlink.types import (
    FORM_KEY,
    FORM_LEVEL,
    ComputedErrorsMap,
    ErrorsMap,
    FieldState,
    ValidatorMap,
    ValidatorSpec,
    ValidityResult,
)

logger = logging.getLogger(__name__)


def get_validity(validator: ValidatorSpec, value: Any) -> ValidityResult:
    """Run a predicate, or a mapping of named predicates, against ``value``.

    Examples:
        >>> get_validity({"required": bool, "short": lambda v: len(v) < 5}, "abc")
        {'required': True, 'short': True}
    """
    if callable(validator):
        return validator(value)
    if isinstance(validator, Mapping):
        return {key: get_validity(sub, value) for key, sub in validator.items()}
    return validator


def invert_validity(validity: Any) -> Any:
    """Flip validity into errors (or back), key-wise for mappings.

    Examples:
        >>> invert_validity({"email": True, "name": {"required": False}})
        {'email': False, 'name': {'required': True}}
    """
    if isinstance(validity, Mapping):
        return {key: invert_validity(sub) for key, sub in validity.items()}
    return not validity


def invert_validators(validators: Any) -> Any:
    """Wrap every predicate so that it reports errors instead of validity."""
    if callable(validators):
        predicate = validators
        return lambda value: invert_validity(predicate(value))
    if isinstance(validators, Mapping):
        return {key: invert_validators(sub) for key, sub in validators.items()}
    return invert_validity(validators)


def merge_validity(base: Any, override: Any) -> Any:
    """Deep-merge two validity shapes, ``override`` winning on conflicts.

    Mappings merge key-wise. Otherwise ``override`` replaces ``base``
    unless it is None.

    Examples:
        >>> merge_validity({"required": True, "email": True}, {"email": False})
        {'required': True, 'email': False}
        >>> merge_validity(True, {"taken": True})
        {'taken': True}
    """
    if isinstance(base, Mapping) and isinstance(override, Mapping):
        merged = dict(base)
        for key, value in override.items():
            merged[key] = merge_validity(base[key], value) if key in base else value
        return merged
    return base if override is None else override


def shallow_equal(a: Any, b: Any) -> bool:
    """Compare two validity results one level deep."""
    if a is b:
        return True
    a_is_map = isinstance(a, Mapping)
    b_is_map = isinstance(b, Mapping)
    if a_is_map and b_is_map:
        if a.keys() != b.keys():
            return False
        return all(a[key] == b[key] for key in a)
    if a_is_map or b_is_map:
        return False
    return a == b


def is_validity_valid(validity: Any) -> bool:
    """True when every flag in a validity result passes."""
    if isinstance(validity, Mapping):
        return all(is_validity_valid(sub) for sub in validity.values())
    return bool(validity)


def is_errors_valid(errors: Any) -> bool:
    """True when no flag in an errors result is set."""
    if isinstance(errors, Mapping):
        return all(is_errors_valid(sub) for sub in errors.values())
    return not errors


def fields_valid(form_value: Optional[Mapping[str, Any]]) -> bool:
    """True when every field of a form (recursing into sub-forms) is valid.

    The form-level ``$form`` entry itself is not considered.
    """
    if not form_value:
        return True
    for key, node in form_value.items():
        if key == FORM_KEY or not isinstance(node, Mapping):
            continue
        if FORM_KEY in node:
            if not is_form_valid(node):
                return False
        elif "valid" in node and "errors" in node:
            if not node["valid"]:
                return False
        elif not fields_valid(node):
            # plain grouping of nested field entries
            return False
    return True


def is_form_valid(form_value: Optional[Mapping[str, Any]]) -> bool:
    """True when both the form-level entry and all fields are valid."""
    if not form_value:
        return True
    return FieldState.from_dict(form_value.get(FORM_KEY)).valid and fields_valid(form_value)


def merge_errors(validity: Optional[Mapping[str, Any]],
                 errors: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge inverted per-field validity with per-field errors."""
    return merge_validity(invert_validity(dict(validity or {})), dict(errors or {}))


def final_error_validators(validators: Optional[ValidatorMap],
                           errors: Optional[ErrorsMap]) -> Optional[Dict[str, Any]]:
    """Combine validators and error validators into one error-producing map.

    Used at submit time, where every field is re-checked from scratch.
    """
    if validators is None:
        return dict(errors) if errors is not None else None
    return merge_validity(invert_validators(dict(validators)), dict(errors or {}))


def _key_set(spec: Optional[Mapping[str, Any]]) -> FrozenSet[str]:
    return frozenset(spec.keys()) if spec else frozenset()


@dataclass(frozen=True)
class ValidityPass:
    """Result of one validation pass.

    Attributes:
        errors: The computed errors map (True = error present)
        changed: Whether any recomputed field differs from stored metadata
        reconcile: Whether the form should be marked valid again because it
            is flagged invalid while every field is valid
        reused: Field paths whose stored result was reused without running
            their predicates
    """
    errors: ComputedErrorsMap
    changed: bool
    reconcile: bool = False
    reused: Tuple[str, ...] = field(default_factory=tuple)


class ValidityEngine:
    """Incremental recomputation of form validity.

    The engine is stateless between passes; the "previous" inputs are
    passed in by the caller and the stored results are read from form
    metadata through ``get_field``.

    Attributes:
        get: Value getter used to read field sub-values from the model
        get_field: Accessor returning a field's stored metadata

    Examples:
        >>> engine = ValidityEngine()
        >>> result = engine.compute_errors(
        ...     {"email": "bad"}, None, {"email": lambda v: "@" in v}, None,
        ...     {"$form": {"valid": True}}, initial=True,
        ... )
        >>> result.errors
        {'email': True, '': False}
        >>> result.changed
        True
    """

    def __init__(self, get: Callable[[Any, Any], Any] = paths.get,
                 get_field: Callable[[Any, Any], FieldState] = paths.get_field) -> None:
        self.get = get
        self.get_field = get_field

    def compute_errors(
        self,
        model_value: Any,
        previous_value: Any,
        validators: Optional[ValidatorMap],
        errors: Optional[ErrorsMap],
        form_value: Optional[Mapping[str, Any]],
        initial: bool = False,
        previous_validators: Optional[ValidatorMap] = None,
        previous_errors: Optional[ErrorsMap] = None,
    ) -> ValidityPass:
        """Recompute the computed errors map for one pass.

        Args:
            model_value: The model value being validated
            previous_value: The model value seen by the previous pass
            validators: Validity predicates per field path, or None
            errors: Error predicates per field path, or None
            form_value: Current form metadata
            initial: Whether this is the first pass (nothing is reused)
            previous_validators: Validators used by the previous pass
            previous_errors: Error predicates used by the previous pass

        Returns:
            ValidityPass with the merged errors map and the changed flag.
            Exceptions raised by predicates propagate unchanged.
        """
        if validators is None and errors is None and model_value is not previous_value:
            form_state = self.get_field(form_value, FORM_LEVEL)
            reconcile = not form_state.valid and fields_valid(form_value)
            if reconcile:
                logger.info("Form is invalid but all fields are valid; restoring form validity")
            return ValidityPass(errors={}, changed=False, reconcile=reconcile)

        specs_changed = (
            _key_set(validators) != _key_set(previous_validators)
            or _key_set(errors) != _key_set(previous_errors)
        )
        reuse_allowed = not initial and not specs_changed

        fields_validity, validity_changed, reused_validity = self._compute_fields(
            validators, "validity", model_value, previous_value, form_value, reuse_allowed,
        )
        fields_errors, errors_changed, reused_errors = self._compute_fields(
            errors, "errors", model_value, previous_value, form_value, reuse_allowed,
        )

        computed = merge_errors(fields_validity, fields_errors)
        if FORM_LEVEL not in fields_validity and FORM_LEVEL not in fields_errors:
            computed[FORM_LEVEL] = False

        reused = tuple(dict.fromkeys(reused_validity + reused_errors))
        if reused:
            logger.debug("Reused stored results for unchanged fields: %s", reused)

        return ValidityPass(
            errors=computed,
            changed=validity_changed or errors_changed,
            reused=reused,
        )

    def _compute_fields(
        self,
        specs: Optional[Mapping[str, ValidatorSpec]],
        stored_attr: str,
        model_value: Any,
        previous_value: Any,
        form_value: Optional[Mapping[str, Any]],
        reuse_allowed: bool,
    ) -> Tuple[Dict[str, Any], bool, Tuple[str, ...]]:
        results: Dict[str, Any] = {}
        changed = False
        reused = []

        for field_path, spec in (specs or {}).items():
            next_value = self.get(model_value, field_path) if field_path else model_value
            current_value = self.get(previous_value, field_path) if field_path else previous_value
            stored = getattr(self.get_field(form_value, field_path), stored_attr)

            if reuse_allowed and next_value is current_value:
                results[field_path] = stored
                reused.append(field_path)
                continue

            fresh = get_validity(spec, next_value)
            if not shallow_equal(fresh, stored):
                changed = True
            results[field_path] = fresh

        return results, changed, tuple(reused)


def compute_errors(
    model_value: Any,
    previous_value: Any,
    validators: Optional[ValidatorMap],
    errors: Optional[ErrorsMap],
    form_value: Optional[Mapping[str, Any]],
    initial: bool = False,
    previous_validators: Optional[ValidatorMap] = None,
    previous_errors: Optional[ErrorsMap] = None,
) -> ValidityPass:
    """Run one pass with the default path collaborators."""
    return ValidityEngine().compute_errors(
        model_value,
        previous_value,
        validators,
        errors,
        form_value,
        initial=initial,
        previous_validators=previous_validators,
        previous_errors=previous_errors,
    )


__all__ = [
    "get_validity",
    "invert_validity",
    "invert_validators",
    "merge_validity",
    "merge_errors",
    "final_error_validators",
    "shallow_equal",
    "is_validity_valid",
    "is_errors_valid",
    "fields_valid",
    "is_form_valid",
    "ValidityPass",
    "ValidityEngine",
    "compute_errors",
]
