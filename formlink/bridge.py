"""State bridge between a form and the global state container.

The bridge turns a symbolic model reference into the values a form needs
for one pass: the concrete model path, the model value and the form
metadata. Reads go through the configured Strategy and are pure. The
bridge never writes; all writes are intents handed to the container's
dispatcher.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from typing_extensions import Protocol

from formlink.config import DEFAULT_STRATEGY, Strategy
from formlink.intents import Intent
from formlink.types import FieldState


class StateContainer(Protocol):
    """What formlink needs from a state container."""

    def get_state(self) -> Any:
        ...

    def dispatch(self, intent: Intent) -> Any:
        ...

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        ...


@dataclass(frozen=True)
class BoundState:
    """Snapshot of global state as seen by one form for one pass.

    Attributes:
        model: Concrete model path the reference resolved to
        model_value: Value at that path (None when missing)
        form_value: Form metadata for the model (None when not registered)
    """
    model: str
    model_value: Any = None
    form_value: Optional[Mapping[str, Any]] = None


class StateBridge:
    """Reads model values and form metadata through a Strategy.

    Examples:
        >>> bridge = StateBridge()
        >>> state = {"user": {"email": "a@b.com"}, "forms": {"user": {"$form": {"valid": True}}}}
        >>> bound = bridge.map_state(state, "user")
        >>> bound.model_value
        {'email': 'a@b.com'}
        >>> bound.form_value["$form"]["valid"]
        True
    """

    def __init__(self, strategy: Strategy = DEFAULT_STRATEGY) -> None:
        self.strategy = strategy

    def resolve(self, model: Union[str, Callable[[Any], str]], state: Any,
                parent: Optional[str] = None) -> str:
        """Resolve a model reference against the current state."""
        if parent is not None:
            return self.strategy.resolve_model(model, state, parent=parent)
        return self.strategy.resolve_model(model, state)

    def map_state(self, state: Any, model: Union[str, Callable[[Any], str]],
                  parent: Optional[str] = None) -> BoundState:
        """Re-resolve the model and read its value and form metadata."""
        path = self.resolve(model, state, parent)
        return BoundState(
            model=path,
            model_value=self.strategy.get(state, path),
            form_value=self.strategy.get_form(state, path),
        )

    def field(self, form_value: Optional[Mapping[str, Any]], field_path: str) -> FieldState:
        """Read one field's metadata from a form."""
        return self.strategy.get_field(form_value, field_path)


__all__ = [
    "StateContainer",
    "BoundState",
    "StateBridge",
]
