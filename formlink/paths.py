"""Path helpers for reading and updating nested state.

These are the default collaborators the State Bridge uses to turn a symbolic
model reference into concrete values. Paths use dot and bracket notation
("user.emails[0]" and "user.emails.0" are equivalent). Reads are tolerant of
missing intermediate segments and return None. Writes never mutate their
input: ``set_in`` copies only the containers along the path, so every
untouched sub-value keeps its identity.
"""

import re
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from formlink.types import FORM_KEY, INITIAL_FIELD_STATE, FieldState


PathLike = Union[str, Sequence[Union[str, int]]]

_BRACKET_RE = re.compile(r"\[(\w*)\]")


def to_path(path: Optional[PathLike]) -> List[str]:
    """Split a path into its segments.

    Examples:
        >>> to_path("user.emails[0].address")
        ['user', 'emails', '0', 'address']
        >>> to_path("")
        []
    """
    if path is None:
        return []
    if not isinstance(path, str):
        return [str(p) for p in path]
    normalized = _BRACKET_RE.sub(r".\1", path)
    return [segment for segment in normalized.split(".") if segment != ""]


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(segment)
    if isinstance(node, (list, tuple)):
        if segment.lstrip("-").isdigit():
            index = int(segment)
            if -len(node) <= index < len(node):
                return node[index]
    return None


def get(obj: Any, path: Optional[PathLike], default: Any = None) -> Any:
    """Read the value at ``path``, or ``default`` when any segment is missing.

    An empty path returns ``obj`` itself.

    Examples:
        >>> get({"user": {"tags": ["a", "b"]}}, "user.tags[1]")
        'b'
        >>> get({"user": None}, "user.name") is None
        True
    """
    node = obj
    for segment in to_path(path):
        node = _child(node, segment)
        if node is None:
            return default
    return node


def set_in(obj: Any, path: Optional[PathLike], value: Any) -> Any:
    """Return a copy of ``obj`` with ``value`` placed at ``path``.

    Containers along the path are shallow-copied; everything else is shared
    with the original. Missing containers are created as dicts.
    """
    segments = to_path(path)
    if not segments:
        return value

    head, rest = segments[0], segments[1:]

    if isinstance(obj, list) and head.isdigit():
        index = int(head)
        updated = list(obj)
        if index >= len(updated):
            updated.extend([None] * (index + 1 - len(updated)))
        updated[index] = set_in(updated[index], rest, value)
        return updated

    updated = dict(obj) if isinstance(obj, Mapping) else {}
    updated[head] = set_in(updated.get(head), rest, value)
    return updated


def resolve_model(model: Union[str, Callable[[Any], str]], state: Any = None,
                  parent: Optional[str] = None) -> str:
    """Resolve a symbolic model reference into a concrete state path.

    A callable model is called with the state. A model beginning with "."
    is relative to ``parent`` (the enclosing form's model), and "." alone
    means the parent itself.

    Examples:
        >>> resolve_model("user.email")
        'user.email'
        >>> resolve_model(".email", parent="user")
        'user.email'
        >>> resolve_model(lambda state: "forms." + state["active"], {"active": "login"})
        'forms.login'
    """
    if callable(model):
        return model(state)
    if model.startswith("."):
        relative = model.lstrip(".")
        if parent:
            return f"{parent}.{relative}" if relative else parent
        return relative
    return model


def get_form(state: Any, path: Optional[PathLike], forms_key: str = "forms") -> Optional[Mapping[str, Any]]:
    """Find the form metadata for ``path`` under ``state[forms_key]``.

    Returns the deepest form (a mapping holding a ``$form`` entry) found
    along the path, or None when there is none.
    """
    node = _child(state, forms_key)
    found = node if isinstance(node, Mapping) and FORM_KEY in node else None
    for segment in to_path(path):
        node = _child(node, segment)
        if node is None:
            break
        if isinstance(node, Mapping) and FORM_KEY in node:
            found = node
    return found


def get_field(form_value: Optional[Mapping[str, Any]], field_path: Optional[PathLike]) -> FieldState:
    """Return the metadata of ``field_path`` within a form.

    The empty path addresses the form itself. A nested sub-form is
    represented by its ``$form`` entry. Absent fields get the initial
    field state.
    """
    if not form_value:
        return INITIAL_FIELD_STATE
    if not to_path(field_path):
        return FieldState.from_dict(form_value.get(FORM_KEY))

    node = get(form_value, field_path)
    if isinstance(node, Mapping):
        if FORM_KEY in node:
            return FieldState.from_dict(node[FORM_KEY])
        return FieldState.from_dict(node)
    return INITIAL_FIELD_STATE


__all__ = [
    "PathLike",
    "to_path",
    "get",
    "set_in",
    "resolve_model",
    "get_form",
    "get_field",
]
