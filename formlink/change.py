"""Change detection for formlink forms.

Two pure predicates decide how a form reacts to new props:
- should_revalidate: whether live validation runs for this update
- should_rerender: whether anything that affects rendered output changed
"""

from typing import Any, FrozenSet, Iterable, Mapping, Optional, Union

from formlink.types import ValidateOn


Trigger = Union[str, ValidateOn, Iterable[Union[str, ValidateOn]], None]

BOOKKEEPING_PROPS: FrozenSet[str] = frozenset({
    "validators",
    "errors",
    "validate_on",
    "on_submit",
})
"""Props that never affect rendered output."""


def normalize_trigger(trigger: Trigger) -> FrozenSet[ValidateOn]:
    """Turn a single trigger name or an iterable of them into a set.

    Raises:
        ValueError: If a trigger name is not a ValidateOn value

    Examples:
        >>> sorted(t.value for t in normalize_trigger("change"))
        ['change']
        >>> sorted(t.value for t in normalize_trigger(["submit", "change"]))
        ['change', 'submit']
    """
    if trigger is None:
        return frozenset()
    if isinstance(trigger, (str, ValidateOn)):
        return frozenset({ValidateOn(trigger)})
    return frozenset(ValidateOn(item) for item in trigger)


def contains_event(trigger: Trigger, event: Union[str, ValidateOn]) -> bool:
    """Check whether ``event`` is one of the configured trigger moments."""
    return ValidateOn(event) in normalize_trigger(trigger)


def should_revalidate(current_trigger: Trigger, next_trigger: Trigger) -> bool:
    """Decide whether a props update runs live validation.

    Only the incoming (active) trigger set matters: live revalidation
    happens when it contains "change". Without it, validity is computed at
    submit time only.
    """
    return contains_event(next_trigger, ValidateOn.CHANGE)


def _render_props(props: Optional[Mapping[str, Any]]) -> dict:
    if not props:
        return {}
    return {key: value for key, value in props.items() if key not in BOOKKEEPING_PROPS}


def should_rerender(prev_props: Optional[Mapping[str, Any]],
                    next_props: Optional[Mapping[str, Any]]) -> bool:
    """Structurally compare the render-relevant props of two updates.

    Children and other render-relevant values are compared by value, so a
    rebuilt but identical tree does not trigger a re-render. Bookkeeping
    props are ignored entirely.

    Examples:
        >>> should_rerender({"children": ["a"], "validators": {}}, {"children": ["a"]})
        False
        >>> should_rerender({"children": ["a"]}, {"children": ["b"]})
        True
    """
    return _render_props(prev_props) != _render_props(next_props)


__all__ = [
    "Trigger",
    "BOOKKEEPING_PROPS",
    "normalize_trigger",
    "contains_event",
    "should_revalidate",
    "should_rerender",
]
