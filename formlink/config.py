"""Form configuration and collaborator strategy.

FormConfig holds everything a form is constructed with. It is validated
eagerly: a missing model reference or an unknown trigger name is a
configuration error raised at construction time.

Strategy bundles the collaborators the form core uses to reach global
state. Swap any of them to bind formlink to a different state container.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from formlink import paths
from formlink.change import Trigger, normalize_trigger
from formlink.errors import FormConfigurationError
from formlink.intents import Actions, actions as default_actions
from formlink.types import ErrorsMap, FieldState, ValidateOn, ValidatorMap


@dataclass(frozen=True)
class Strategy:
    """Collaborators used to read from and write to global state.

    Attributes:
        get: Value getter, ``get(state, path) -> value``
        get_form: Form metadata getter, ``get_form(state, path) -> form``
        get_field: Field accessor, ``get_field(form, field_path) -> FieldState``
        resolve_model: Path resolver, ``resolve_model(model, state) -> path``
        actions: Intent constructors
    """
    get: Callable[[Any, Any], Any] = paths.get
    get_form: Callable[[Any, Any], Optional[Mapping[str, Any]]] = paths.get_form
    get_field: Callable[[Any, Any], FieldState] = paths.get_field
    resolve_model: Callable[..., str] = paths.resolve_model
    actions: Actions = default_actions


DEFAULT_STRATEGY = Strategy()


@dataclass(frozen=True)
class FormConfig:
    """Constructor-time configuration of a form.

    Attributes:
        model: Symbolic reference to the form's value in global state (required)
        validators: Validity predicates per field path ('' = whole form)
        errors: Error predicates per field path ('' = whole form)
        validate_on: Moments at which the form revalidates
        on_submit: Callback invoked with the model value on a valid submit
        component: Name of the component rendered for the form
        children: Child content, or a callable receiving form metadata

    Examples:
        >>> config = FormConfig(model="user", validate_on="submit")
        >>> sorted(v.value for v in config.validate_on)
        ['submit']
        >>> FormConfig(model="")
        Traceback (most recent call last):
        ...
        formlink.errors.FormConfigurationError: A form requires a model reference
    """
    model: Union[str, Callable[[Any], str]]
    validators: Optional[ValidatorMap] = None
    errors: Optional[ErrorsMap] = None
    validate_on: Trigger = ValidateOn.CHANGE
    on_submit: Optional[Callable[[Any], Any]] = None
    component: Any = "form"
    children: Any = None

    def __post_init__(self):
        """Validate required options and normalize validate_on."""
        if not self.model:
            raise FormConfigurationError("model", "A form requires a model reference", self.model)
        if not isinstance(self.model, str) and not callable(self.model):
            raise FormConfigurationError(
                "model",
                f"Model reference must be a string or callable, got {type(self.model).__name__}",
                self.model,
            )

        for name in ("validators", "errors"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, Mapping):
                raise FormConfigurationError(
                    name,
                    f"'{name}' must be a mapping of field paths to predicates",
                    value,
                )

        if self.on_submit is not None and not callable(self.on_submit):
            raise FormConfigurationError("on_submit", "'on_submit' must be callable", self.on_submit)

        try:
            validate_on = normalize_trigger(self.validate_on)
        except ValueError as exc:
            raise FormConfigurationError(
                "validate_on",
                f"Unknown validate_on value: {self.validate_on!r}",
                self.validate_on,
            ) from exc
        object.__setattr__(self, "validate_on", validate_on)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for audit, listing field paths instead of predicates."""
        result: Dict[str, Any] = {
            "validateOn": sorted(v.value for v in self.validate_on),
            "component": self.component,
        }
        if isinstance(self.model, str):
            result["model"] = self.model
        if self.validators is not None:
            result["validatorFields"] = sorted(self.validators)
        if self.errors is not None:
            result["errorFields"] = sorted(self.errors)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormConfig":
        """Create FormConfig from a dict with snake_case or camelCase keys."""
        return cls(
            model=data.get("model"),
            validators=data.get("validators"),
            errors=data.get("errors"),
            validate_on=data.get("validate_on", data.get("validateOn", ValidateOn.CHANGE)),
            on_submit=data.get("on_submit", data.get("onSubmit")),
            component=data.get("component", "form"),
            children=data.get("children"),
        )


__all__ = [
    "Strategy",
    "DEFAULT_STRATEGY",
    "FormConfig",
]
