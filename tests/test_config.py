"""Unit tests for form configuration.

Tests cover:
- Required model reference
- Validation of validators/errors/on_submit types
- validate_on normalization and rejection of unknown triggers
- Dict conversion with snake_case and camelCase keys
- Default collaborator strategy
"""

import pytest

from formlink import paths
from formlink.config import DEFAULT_STRATEGY, FormConfig, Strategy
from formlink.errors import FormConfigurationError, FormLinkError
from formlink.intents import actions
from formlink.types import ValidateOn


class TestRequiredModel:
    """Test the required model reference."""

    @pytest.mark.parametrize("model", [None, ""])
    def test_missing_model_is_fatal(self, model):
        """A missing model should raise at construction."""
        with pytest.raises(FormConfigurationError) as exc_info:
            FormConfig(model=model)
        assert exc_info.value.field == "model"

    def test_wrong_model_type(self):
        """A model that is neither string nor callable is rejected."""
        with pytest.raises(FormConfigurationError):
            FormConfig(model=42)

    def test_callable_model_accepted(self):
        """A callable model reference is allowed."""
        config = FormConfig(model=lambda state: "user")
        assert callable(config.model)

    def test_configuration_error_is_formlink_error(self):
        """Configuration errors share the package base class."""
        assert issubclass(FormConfigurationError, FormLinkError)

    def test_configuration_error_to_dict(self):
        """Configuration errors serialize their field and message."""
        err = FormConfigurationError("model", "A form requires a model reference", "")
        assert err.to_dict() == {
            "type": "configuration",
            "field": "model",
            "message": "A form requires a model reference",
            "value": "''",
        }


class TestOptionValidation:
    """Test validation of the remaining options."""

    def test_validators_must_be_mapping(self):
        """Validators given as a bare predicate are rejected."""
        with pytest.raises(FormConfigurationError) as exc_info:
            FormConfig(model="user", validators=bool)
        assert exc_info.value.field == "validators"

    def test_errors_must_be_mapping(self):
        """Errors given as a list are rejected."""
        with pytest.raises(FormConfigurationError) as exc_info:
            FormConfig(model="user", errors=[bool])
        assert exc_info.value.field == "errors"

    def test_on_submit_must_be_callable(self):
        """A non-callable submit callback is rejected."""
        with pytest.raises(FormConfigurationError) as exc_info:
            FormConfig(model="user", on_submit="submit")
        assert exc_info.value.field == "on_submit"


class TestValidateOn:
    """Test validate_on normalization."""

    def test_default_is_change(self):
        """Forms validate on change by default."""
        assert FormConfig(model="user").validate_on == frozenset({ValidateOn.CHANGE})

    def test_single_string(self):
        """A single trigger name is normalized to a set."""
        assert FormConfig(model="user", validate_on="submit").validate_on == frozenset({ValidateOn.SUBMIT})

    def test_multiple_triggers(self):
        """Several triggers may be combined."""
        config = FormConfig(model="user", validate_on=["change", "submit"])
        assert config.validate_on == frozenset({ValidateOn.CHANGE, ValidateOn.SUBMIT})

    def test_unknown_trigger(self):
        """Unknown trigger names are a configuration error."""
        with pytest.raises(FormConfigurationError) as exc_info:
            FormConfig(model="user", validate_on="blur")
        assert exc_info.value.field == "validate_on"


class TestConfigDictConversion:
    """Test dict conversion."""

    def test_from_dict_camel_case(self):
        """camelCase keys should be accepted."""
        on_submit = print
        config = FormConfig.from_dict({"model": "user", "validateOn": "submit", "onSubmit": on_submit})
        assert config.validate_on == frozenset({ValidateOn.SUBMIT})
        assert config.on_submit is on_submit

    def test_from_dict_snake_case(self):
        """snake_case keys should be accepted."""
        config = FormConfig.from_dict({"model": "user", "validate_on": ["change", "submit"]})
        assert len(config.validate_on) == 2

    def test_from_dict_missing_model(self):
        """A dict without a model is a configuration error."""
        with pytest.raises(FormConfigurationError):
            FormConfig.from_dict({})

    def test_to_dict(self):
        """to_dict lists field paths instead of predicates."""
        config = FormConfig(model="user", validators={"email": bool, "": bool}, errors={"name": bool})
        assert config.to_dict() == {
            "model": "user",
            "validateOn": ["change"],
            "component": "form",
            "validatorFields": ["", "email"],
            "errorFields": ["name"],
        }


class TestStrategy:
    """Test the default collaborator strategy."""

    def test_default_strategy_uses_path_helpers(self):
        """The default strategy should wire the path helpers and actions."""
        assert DEFAULT_STRATEGY.get is paths.get
        assert DEFAULT_STRATEGY.get_form is paths.get_form
        assert DEFAULT_STRATEGY.get_field is paths.get_field
        assert DEFAULT_STRATEGY.resolve_model is paths.resolve_model
        assert DEFAULT_STRATEGY.actions is actions

    def test_strategy_override(self):
        """Individual collaborators can be replaced."""
        getter = lambda state, path: "x"  # noqa: E731
        strategy = Strategy(get=getter)
        assert strategy.get is getter
        assert strategy.get_form is paths.get_form
