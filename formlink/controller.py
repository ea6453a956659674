"""Form controller: keeps a form's validity and submission in sync with state.

FormController reacts to the lifecycle events of a bound form:
- on_mount / on_props_change: run the validity engine when live validation
  is enabled and dispatch new errors only when something changed
- on_submit: fast-path valid forms straight to the submit callback, or ask
  the dispatcher to validate every field and branch on the outcome
- on_reset: always dispatch a reset

ConnectedForm wires a controller to a state container: it re-reads the
form's props from global state after every applied intent, the same way a
view layer would re-render a connected component.

Usage:
    >>> from formlink.config import FormConfig
    >>> from formlink.store import FormStore
    >>> store = FormStore({"user": {"email": "bad"}})
    >>> store.register_model("user")
    >>> form = ConnectedForm(store, FormConfig(
    ...     model="user", validators={"email": lambda v: "@" in v},
    ... )).mount()
    >>> store.get_state()["forms"]["user"]["email"]["errors"]
    True
"""

import logging
import uuid
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from formlink.bridge import BoundState, StateBridge, StateContainer
from formlink.change import should_rerender, should_revalidate
from formlink.config import DEFAULT_STRATEGY, FormConfig, Strategy
from formlink.intents import Actions, Dispatch, Intent
from formlink.state_machine import SubmissionStateMachine
from formlink.types import (
    FORM_LEVEL,
    ErrorsMap,
    SubmitState,
    ValidateOn,
    ValidatorMap,
)
from formlink.validity import ValidityEngine, ValidityPass, final_error_validators

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormProps:
    """Everything a form controller sees for one pass.

    Combines the form's configuration with the values read from global
    state. A new FormProps is built for every update; the previous one is
    what the validity engine compares against.
    """
    model: str
    model_value: Any = None
    form_value: Optional[Mapping[str, Any]] = None
    validators: Optional[ValidatorMap] = None
    errors: Optional[ErrorsMap] = None
    validate_on: FrozenSet[ValidateOn] = frozenset({ValidateOn.CHANGE})
    on_submit: Optional[Callable[[Any], Any]] = None
    component: Any = "form"
    children: Any = None

    @classmethod
    def from_config(cls, config: FormConfig, bound: BoundState) -> "FormProps":
        return cls(
            model=bound.model,
            model_value=bound.model_value,
            form_value=bound.form_value,
            validators=config.validators,
            errors=config.errors,
            validate_on=config.validate_on,
            on_submit=config.on_submit,
            component=config.component,
            children=config.children,
        )

    def as_dict(self) -> Dict[str, Any]:
        """Shallow mapping of every prop, values shared with this instance."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _prevent_default(event: Any) -> None:
    if event is None:
        return
    for name in ("prevent_default", "preventDefault"):
        method = getattr(event, name, None)
        if callable(method):
            method()
            return


class FormController:
    """Validation and submission logic of a single bound form.

    The controller holds no reference into global state: it only keeps the
    latest FormProps snapshot and talks back through ``dispatch``.

    Attributes:
        props: Current props snapshot
        dispatch: Callable receiving the intents this form produces
        strategy: Collaborators for reading state and building intents
        submission: Submit lifecycle of this form
        origin: Unique id stamped on the errors intents this controller numbers
    """

    def __init__(self, props: FormProps, dispatch: Dispatch, strategy: Strategy = DEFAULT_STRATEGY):
        self.props = props
        self.dispatch = dispatch
        self.strategy = strategy
        self.engine = ValidityEngine(get=strategy.get, get_field=strategy.get_field)
        self.submission = SubmissionStateMachine(model=props.model)
        self.origin = f"ctl_{uuid.uuid4().hex[:12]}"
        self._sequence = 0
        self._node = None

    @property
    def actions(self) -> Actions:
        return self.strategy.actions

    def child_context(self) -> Dict[str, Any]:
        """Context handed to nested controls so they can resolve ".field" models."""
        return {"model": self.props.model}

    def on_mount(self) -> Optional[ValidityPass]:
        if not should_revalidate(None, self.props.validate_on):
            return None
        return self.validate(self.props, initial=True)

    def on_props_change(self, next_props: FormProps) -> Optional[ValidityPass]:
        """Validate against ``next_props`` (if live validation is on), then adopt them."""
        previous = self.props
        result = None
        if should_revalidate(previous.validate_on, next_props.validate_on):
            result = self.validate(next_props)
        self.props = next_props

        if next_props.model_value is not previous.model_value and self.submission.is_settled():
            self.submission.reset()
        return result

    def should_update(self, next_props: FormProps) -> bool:
        return should_rerender(self.props.as_dict(), next_props.as_dict())

    def attach_node(self, node: Any) -> None:
        """Bind a rendered node so that calling ``node.submit()`` submits through the form."""
        if node is None:
            return
        self._node = node
        node.submit = self.handle_submit

    def render_children(self) -> Any:
        children = self.props.children
        if callable(children):
            return children(self.props.form_value)
        return children

    def validate(self, next_props: FormProps, initial: bool = False) -> Optional[ValidityPass]:
        """Run one validation pass and dispatch its outcome if needed.

        Returns None when the form has no metadata yet.
        """
        current = self.props
        # stored results come from the newest metadata available
        form_value = next_props.form_value or current.form_value
        if not form_value:
            return None

        result = self.engine.compute_errors(
            next_props.model_value,
            current.model_value,
            next_props.validators,
            next_props.errors,
            form_value,
            initial=initial,
            previous_validators=current.validators,
            previous_errors=current.errors,
        )

        if result.reconcile:
            self._dispatch(self.actions.set_validity(next_props.model, True))
        elif result.changed:
            self._sequence += 1
            self._dispatch(self.actions.set_fields_errors(
                next_props.model, result.errors, sequence=self._sequence, origin=self.origin,
            ))
        else:
            logger.debug("Validity of %r unchanged; nothing dispatched", next_props.model)
        return result

    def handle_submit(self, event: Any = None) -> Any:
        """Submit the form. Returns the model value.

        With no validators, a callback and a currently valid form, the
        callback is invoked immediately. Otherwise every field is checked
        by the dispatcher, which continues with ``handle_valid_submit`` or
        ``handle_invalid_submit``.
        """
        _prevent_default(event)
        props = self.props

        form_valid = (
            self.strategy.get_field(props.form_value, FORM_LEVEL).valid
            if props.form_value
            else True
        )

        if props.validators is None and props.on_submit and form_valid:
            props.on_submit(props.model_value)
            self.submission.transition_to(SubmitState.SUBMITTED_VALID)
            return props.model_value

        error_validators = final_error_validators(props.validators, props.errors)
        self._dispatch(self.actions.validate_fields_errors(
            props.model,
            error_validators,
            on_valid=self.handle_valid_submit,
            on_invalid=self.handle_invalid_submit,
        ))
        return props.model_value

    def handle_valid_submit(self) -> None:
        self.submission.transition_to(SubmitState.PENDING)
        self._dispatch(self.actions.set_pending(self.props.model))

        props = self.props
        if props.on_submit:
            props.on_submit(props.model_value)
        self.submission.transition_to(SubmitState.SUBMITTED_VALID)

    def handle_invalid_submit(self) -> None:
        self.submission.transition_to(SubmitState.SUBMITTED_INVALID)
        self._dispatch(self.actions.set_submit_failed(self.props.model))

    def handle_reset(self, event: Any = None) -> None:
        _prevent_default(event)
        self.submission.reset()
        self._dispatch(self.actions.reset(self.props.model))

    on_submit = handle_submit
    on_reset = handle_reset

    def _dispatch(self, intent: Intent) -> Any:
        logger.debug("Form %r dispatching %s", self.props.model, intent.type.value)
        return self.dispatch(intent)


class ConnectedForm:
    """A FormController kept in sync with a state container.

    After every intent the container applies, the form's props are rebuilt
    from global state (re-resolving the model reference each time) and fed
    to the controller. Updates triggered while one is already running are
    queued and applied once it finishes, so each pass always compares
    against the props the previous pass adopted.

    Attributes:
        store: The state container
        config: The form's configuration
        controller: The underlying FormController
    """

    def __init__(self, store: StateContainer, config: FormConfig,
                 strategy: Strategy = DEFAULT_STRATEGY, parent: Optional[str] = None):
        self.store = store
        self.config = config
        self.parent = parent
        self.bridge = StateBridge(strategy)
        self.controller = FormController(self._read_props(), store.dispatch, strategy)
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._updating = False
        self._stale = False

    @property
    def props(self) -> FormProps:
        return self.controller.props

    @property
    def state(self) -> SubmitState:
        return self.controller.submission.state

    def _read_props(self) -> FormProps:
        bound = self.bridge.map_state(self.store.get_state(), self.config.model, self.parent)
        return FormProps.from_config(self.config, bound)

    def mount(self) -> "ConnectedForm":
        self._unsubscribe = self.store.subscribe(self._handle_change)
        self.controller.on_mount()
        return self

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def reconfigure(self, **changes: Any) -> None:
        """Replace configuration options (e.g. new validators) and update."""
        self.config = replace(self.config, **changes)
        self._handle_change()

    def submit(self, event: Any = None) -> Any:
        return self.controller.handle_submit(event)

    def reset(self, event: Any = None) -> None:
        self.controller.handle_reset(event)

    def _handle_change(self) -> None:
        if self._updating:
            self._stale = True
            return

        self._updating = True
        try:
            self._stale = True
            while self._stale:
                self._stale = False
                self.controller.on_props_change(self._read_props())
        finally:
            self._updating = False


__all__ = [
    "FormProps",
    "FormController",
    "ConnectedForm",
]
