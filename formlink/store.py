"""In-memory state container for formlink forms.

FormStore holds an immutable state tree and applies intents one at a time,
notifying subscribers after each one. It is the reference implementation
of the dispatcher the form core talks to, and is what the test-suite and
simple applications bind forms against.

State layout:
    {
        "user": {"email": "a@b.com"},          # model values
        "forms": {                             # form metadata
            "user": {
                "$form": {"valid": True, "errors": {}, ...},
                "email": {"valid": True, "errors": False, ...},
            },
        },
    }

Every update copies only the containers along the changed path, so
untouched model sub-values keep their identity between snapshots.

Usage:
    >>> from formlink.intents import actions
    >>> store = FormStore()
    >>> store.register_model("user", {"email": ""})
    >>> _ = store.dispatch(actions.change("user.email", "a@b.com"))
    >>> store.get_state()["user"]
    {'email': 'a@b.com'}
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from formlink import paths
from formlink.errors import UnknownIntentError, UnknownModelError
from formlink.intents import Actions, Intent
from formlink.types import FORM_KEY, INITIAL_FIELD_STATE, IntentType
from formlink.validity import (
    fields_valid,
    get_validity,
    invert_validity,
    is_errors_valid,
    is_form_valid,
    is_validity_valid,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[], None]


def initial_form_state() -> Dict[str, Any]:
    """Metadata of a freshly registered form."""
    return {FORM_KEY: INITIAL_FIELD_STATE.to_dict()}


def _refresh_validity(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Recompute ``$form.valid`` of a form and of its nested sub-forms."""
    refreshed = {}
    for key, node in form.items():
        if key != FORM_KEY and isinstance(node, Mapping) and FORM_KEY in node:
            node = _refresh_validity(node)
        refreshed[key] = node

    form_entry = dict(refreshed.get(FORM_KEY) or INITIAL_FIELD_STATE.to_dict())
    form_entry["valid"] = is_errors_valid(form_entry.get("errors", {})) and fields_valid(refreshed)
    refreshed[FORM_KEY] = form_entry
    return refreshed


def _field_entry(form: Mapping[str, Any], field_path: str) -> Tuple[str, Dict[str, Any]]:
    """Locate the metadata entry a field path writes to."""
    if not field_path:
        return FORM_KEY, dict(form.get(FORM_KEY) or {})
    node = paths.get(form, field_path)
    if isinstance(node, Mapping) and FORM_KEY in node:
        return f"{field_path}.{FORM_KEY}", dict(node[FORM_KEY])
    if isinstance(node, Mapping):
        return field_path, dict(node)
    return field_path, INITIAL_FIELD_STATE.to_dict()


class FormStore:
    """Immutable state tree with intent dispatch and change subscriptions.

    Attributes:
        forms_key: Top-level key under which form metadata is kept

    Examples:
        >>> store = FormStore({"user": {"email": "bad"}})
        >>> store.register_model("user")
        >>> store.get_state()["forms"]["user"]["$form"]["valid"]
        True
    """

    def __init__(self, initial_state: Optional[Mapping[str, Any]] = None, forms_key: str = "forms"):
        self.forms_key = forms_key
        self._state: Dict[str, Any] = dict(initial_state or {})
        self._state.setdefault(forms_key, {})
        self._initial_values: Dict[str, Any] = {}
        self._sequences: Dict[Tuple[str, Optional[str]], int] = {}
        self._listeners: List[StateListener] = []
        self._intents: List[Intent] = []
        self._handlers = {
            IntentType.SET_VALIDITY: self._apply_set_validity,
            IntentType.SET_FIELDS_ERRORS: self._apply_set_fields_errors,
            IntentType.SET_PENDING: self._apply_set_pending,
            IntentType.SET_SUBMIT_FAILED: self._apply_set_submit_failed,
            IntentType.RESET: self._apply_reset,
            IntentType.CHANGE: self._apply_change,
            IntentType.VALIDATE_FIELDS_ERRORS: self._apply_validate_fields_errors,
        }

    def get_state(self) -> Dict[str, Any]:
        """Return the current state snapshot. Do not mutate it."""
        return self._state

    def register_model(self, model: str, value: Any = None) -> None:
        """Create form metadata for ``model``.

        If ``value`` is given it becomes the model value. The model value at
        registration time is what ``reset`` restores.
        """
        if value is not None:
            self._state = paths.set_in(self._state, model, value)
        self._initial_values[model] = paths.get(self._state, model)
        self._state = paths.set_in(self._state, self._form_path(model), initial_form_state())
        logger.debug("Registered form for model %r", model)
        self._notify()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` after every applied intent. Returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_intents(self) -> List[Intent]:
        """Get every dispatched intent in order."""
        return list(self._intents)

    def dispatch(self, intent: Intent) -> Intent:
        """Apply one intent and notify subscribers.

        Raises:
            UnknownIntentError: If the intent type has no handler
            UnknownModelError: If no form is registered for the intent's model
        """
        handler = self._handlers.get(intent.type)
        if handler is None:
            raise UnknownIntentError(intent.type)

        self._intents.append(intent)
        logger.debug("Dispatching %s for %r", intent.type.value, intent.model)
        notify = handler(intent)
        if notify is not False:
            self._notify()
        if intent.type == IntentType.VALIDATE_FIELDS_ERRORS:
            self._branch_on_validity(intent)
        return intent

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _form_path(self, model: str) -> List[str]:
        return [self.forms_key] + paths.to_path(model)

    def _locate(self, model: str) -> Tuple[str, str]:
        """Split a model path into (registered form model, field path)."""
        segments = paths.to_path(model)
        forms = self._state.get(self.forms_key)
        for end in range(len(segments), 0, -1):
            node = paths.get(forms, segments[:end])
            if isinstance(node, Mapping) and FORM_KEY in node:
                return ".".join(segments[:end]), ".".join(segments[end:])
        raise UnknownModelError(model)

    def _update_form(self, form_model: str, update: Callable[[Dict[str, Any]], Dict[str, Any]]) -> None:
        form_path = self._form_path(form_model)
        form = dict(paths.get(self._state, form_path))
        self._state = paths.set_in(self._state, form_path, _refresh_validity(update(form)))

    def _write_field(self, form: Dict[str, Any], field_path: str, **values: Any) -> Dict[str, Any]:
        entry_path, entry = _field_entry(form, field_path)
        entry.update(values)
        return paths.set_in(form, entry_path, entry)

    def _apply_set_validity(self, intent: Intent) -> None:
        form_model, field_path = self._locate(intent.model)
        validity = intent.payload["validity"]
        self._update_form(form_model, lambda form: self._write_field(
            form,
            field_path,
            validity=validity,
            errors=invert_validity(validity),
            valid=is_validity_valid(validity),
            validated=True,
        ))

    def _apply_set_fields_errors(self, intent: Intent) -> Optional[bool]:
        form_model, base_path = self._locate(intent.model)
        if intent.sequence is not None:
            key = (form_model, intent.origin)
            last = self._sequences.get(key)
            if last is not None and intent.sequence < last:
                logger.debug(
                    "Dropping stale errors for %r from %s (sequence %d < %d)",
                    intent.model, intent.origin, intent.sequence, last,
                )
                return False
            self._sequences[key] = intent.sequence

        def update(form: Dict[str, Any]) -> Dict[str, Any]:
            for field_path, errors in intent.payload["fields_errors"].items():
                full_path = ".".join(p for p in (base_path, field_path) if p)
                form = self._write_field(
                    form,
                    full_path,
                    errors=errors,
                    validity=invert_validity(errors),
                    valid=is_errors_valid(errors),
                    validated=True,
                )
            return form

        self._update_form(form_model, update)
        return None

    def _apply_set_pending(self, intent: Intent) -> None:
        form_model, field_path = self._locate(intent.model)
        pending = intent.payload.get("pending", True)
        self._update_form(form_model, lambda form: self._write_field(
            form, field_path, pending=pending, submitted=False,
        ))

    def _apply_set_submit_failed(self, intent: Intent) -> None:
        form_model, field_path = self._locate(intent.model)
        self._update_form(form_model, lambda form: self._write_field(
            form, field_path, submit_failed=True, submitted=False, pending=False, touched=True,
        ))

    def _apply_reset(self, intent: Intent) -> None:
        form_model, _ = self._locate(intent.model)
        self._state = paths.set_in(self._state, form_model, self._initial_values.get(form_model))
        self._state = paths.set_in(self._state, self._form_path(form_model), initial_form_state())

    def _apply_change(self, intent: Intent) -> None:
        self._state = paths.set_in(self._state, intent.model, intent.payload["value"])

    def _apply_validate_fields_errors(self, intent: Intent) -> bool:
        model_value = paths.get(self._state, intent.model)
        fields_errors = {
            field_path: get_validity(
                validator,
                paths.get(model_value, field_path) if field_path else model_value,
            )
            for field_path, validator in intent.payload.get("error_validators", {}).items()
        }
        self.dispatch(Actions.set_fields_errors(intent.model, fields_errors))
        return False

    def _branch_on_validity(self, intent: Intent) -> None:
        form_model, _ = self._locate(intent.model)
        form = paths.get(self._state, self._form_path(form_model))
        if is_form_valid(form):
            continuation = intent.payload.get("on_valid")
        else:
            continuation = intent.payload.get("on_invalid")
        if continuation is not None:
            continuation()


__all__ = [
    "FormStore",
    "StateListener",
    "initial_form_state",
]
