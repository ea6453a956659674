"""Unit tests for the path helpers used by the state bridge.

Tests cover:
- Path splitting (dot and bracket notation)
- Tolerant reads of missing segments
- Copy-on-write updates that preserve untouched sub-values
- Model resolution (plain, relative, callable)
- Form and field lookup
- Bound state read through the state bridge
"""

from formlink.bridge import StateBridge
from formlink.config import Strategy
from formlink.paths import get, get_field, get_form, resolve_model, set_in, to_path
from formlink.types import INITIAL_FIELD_STATE


class TestToPath:
    """Test splitting paths into segments."""

    def test_dot_path(self):
        """Should split on dots."""
        assert to_path("user.address.city") == ["user", "address", "city"]

    def test_bracket_path(self):
        """Should treat bracket indexes as segments."""
        assert to_path("user.emails[0].address") == ["user", "emails", "0", "address"]

    def test_empty_and_none(self):
        """Empty and None paths have no segments."""
        assert to_path("") == []
        assert to_path(None) == []

    def test_sequence_path(self):
        """Sequences should be converted segment by segment."""
        assert to_path(["forms", "user", 0]) == ["forms", "user", "0"]


class TestGet:
    """Test tolerant reads."""

    def test_nested_mapping(self):
        """Should read nested mapping values."""
        assert get({"user": {"name": "Ada"}}, "user.name") == "Ada"

    def test_list_index(self):
        """Should read list items by index in either notation."""
        state = {"user": {"tags": ["a", "b"]}}
        assert get(state, "user.tags[1]") == "b"
        assert get(state, "user.tags.0") == "a"

    def test_missing_intermediate_segment(self):
        """Missing segments should return None rather than raise."""
        assert get({"user": None}, "user.name") is None
        assert get({}, "a.b.c") is None
        assert get({"tags": []}, "tags[3]") is None

    def test_default_value(self):
        """Should return the given default for missing paths."""
        assert get({}, "a", default="missing") == "missing"

    def test_empty_path_returns_object(self):
        """An empty path addresses the object itself."""
        obj = {"a": 1}
        assert get(obj, "") is obj


class TestSetIn:
    """Test copy-on-write updates."""

    def test_does_not_mutate_input(self):
        """The original structure should be left untouched."""
        state = {"user": {"name": "Ada"}}
        updated = set_in(state, "user.name", "Grace")
        assert state == {"user": {"name": "Ada"}}
        assert updated == {"user": {"name": "Grace"}}

    def test_untouched_siblings_keep_identity(self):
        """Sub-values off the updated path should be shared, not copied."""
        address = {"city": "London"}
        state = {"user": {"name": "Ada", "address": address}}
        updated = set_in(state, "user.name", "Grace")
        assert updated["user"]["address"] is address

    def test_creates_missing_containers(self):
        """Missing containers along the path should be created."""
        assert set_in({}, "a.b.c", 1) == {"a": {"b": {"c": 1}}}

    def test_list_index_update(self):
        """Lists should be copied and updated by index."""
        state = {"tags": ["a", "b"]}
        updated = set_in(state, "tags[1]", "c")
        assert updated == {"tags": ["a", "c"]}
        assert state["tags"] == ["a", "b"]

    def test_empty_path_replaces_value(self):
        """An empty path replaces the whole value."""
        assert set_in({"a": 1}, "", {"b": 2}) == {"b": 2}


class TestResolveModel:
    """Test model reference resolution."""

    def test_plain_model(self):
        """A plain string resolves to itself."""
        assert resolve_model("user.email", {}) == "user.email"

    def test_relative_model(self):
        """A leading dot is relative to the parent model."""
        assert resolve_model(".email", {}, parent="user") == "user.email"
        assert resolve_model(".", {}, parent="user") == "user"

    def test_relative_model_without_parent(self):
        """Without a parent the leading dot is dropped."""
        assert resolve_model(".email") == "email"

    def test_callable_model(self):
        """A callable model is resolved against the state."""
        state = {"active": "login"}
        assert resolve_model(lambda s: "forms." + s["active"], state) == "forms.login"


class TestGetFormAndField:
    """Test form metadata and field lookup."""

    def test_get_form(self):
        """Should find the form stored for a model."""
        form = {"$form": {"valid": True}}
        state = {"forms": {"user": form}}
        assert get_form(state, "user") is form

    def test_get_form_returns_nearest_form(self):
        """A path below a form resolves to the deepest form along it."""
        form = {"$form": {"valid": True}, "email": {"valid": True, "errors": False}}
        state = {"forms": {"user": form}}
        assert get_form(state, "user.email") is form

    def test_get_form_missing(self):
        """No registered form yields None."""
        assert get_form({"forms": {}}, "user") is None
        assert get_form({}, "user") is None

    def test_get_field_form_level(self):
        """The empty field path addresses $form."""
        form = {"$form": {"valid": False, "errors": True}}
        field = get_field(form, "")
        assert field.valid is False
        assert field.errors is True

    def test_get_field_nested_sub_form(self):
        """A sub-form field resolves to its $form entry."""
        form = {"$form": {}, "address": {"$form": {"valid": False}}}
        assert get_field(form, "address").valid is False

    def test_get_field_missing(self):
        """Absent fields yield the initial field state."""
        assert get_field({"$form": {}}, "email") == INITIAL_FIELD_STATE
        assert get_field(None, "email") == INITIAL_FIELD_STATE


class TestStateBridge:
    """Test reading bound state through the bridge."""

    STATE = {
        "account": {"profile": {"name": "Ada"}},
        "forms": {"account": {"profile": {"$form": {"valid": True}, "name": {"valid": False}}}},
    }

    def test_map_state(self):
        """Should resolve the model and read its value and form metadata."""
        bound = StateBridge().map_state(self.STATE, "account.profile")
        assert bound.model == "account.profile"
        assert bound.model_value == {"name": "Ada"}
        assert bound.form_value is self.STATE["forms"]["account"]["profile"]

    def test_map_state_relative_model(self):
        """A relative model resolves against the parent."""
        bound = StateBridge().map_state(self.STATE, ".profile", parent="account")
        assert bound.model == "account.profile"

    def test_map_state_unregistered(self):
        """Missing models read as None."""
        bound = StateBridge().map_state({}, "user")
        assert bound.model_value is None
        assert bound.form_value is None

    def test_field(self):
        """Should read a field's metadata from the form."""
        bridge = StateBridge()
        bound = bridge.map_state(self.STATE, "account.profile")
        assert bridge.field(bound.form_value, "name").valid is False

    def test_custom_strategy(self):
        """Reads go through the injected strategy."""
        strategy = Strategy(get=lambda state, path: "from-strategy")
        bound = StateBridge(strategy).map_state(self.STATE, "account.profile")
        assert bound.model_value == "from-strategy"
