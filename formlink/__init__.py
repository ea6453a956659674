"""formlink: declarative form binding for immutable application state.

formlink binds a form to a named path (the "model") in a centralized state
tree and keeps the form's validity and submission lifecycle in sync with it:
- Incremental validity engine that reruns only the validators whose
  inputs changed, and reports errors only when something actually changed
- Validators and explicit error predicates merged into one errors map
- Submission state machine (idle, pending, submitted valid/invalid)
- All writes expressed as intents for an external dispatcher

Basic usage:
    >>> from formlink import ConnectedForm, FormConfig, FormStore
    >>> store = FormStore({"user": {"email": "bad"}})
    >>> store.register_model("user")
    >>> form = ConnectedForm(store, FormConfig(
    ...     model="user",
    ...     validators={"email": lambda value: "@" in value},
    ... )).mount()
    >>> form.submit()
    {'email': 'bad'}
    >>> form.state
    <SubmitState.SUBMITTED_INVALID: 'submitted_invalid'>
"""

__version__ = "0.1.0"
__author__ = "formlink contributors"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formlink.config import DEFAULT_STRATEGY, FormConfig, Strategy
from formlink.controller import ConnectedForm, FormController, FormProps
from formlink.errors import FormConfigurationError, FormLinkError
from formlink.intents import Intent, actions
from formlink.store import FormStore
from formlink.types import SubmitState, ValidateOn
from formlink.validity import ValidityEngine, compute_errors

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "ConnectedForm",
    "FormController",
    "FormProps",
    "FormConfig",
    "Strategy",
    "DEFAULT_STRATEGY",
    "FormStore",
    "Intent",
    "actions",
    "SubmitState",
    "ValidateOn",
    "ValidityEngine",
    "compute_errors",
    "FormConfigurationError",
    "FormLinkError",
]
