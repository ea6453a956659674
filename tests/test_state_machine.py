"""Unit tests for the submission state machine.

Tests cover:
- State machine initialization
- Valid and invalid transitions
- Reset from every state
- Transition records
- Serialization and deserialization
"""

import pytest

from formlink.state_machine import (
    InvalidStateTransitionError,
    StateTransition,
    SubmissionStateMachine,
    VALID_TRANSITIONS,
)
from formlink.types import SubmitState


class TestStateMachineInitialization:
    """Test state machine initialization and defaults."""

    def test_init_with_model(self):
        """Should initialize with model and default to IDLE state."""
        sm = SubmissionStateMachine(model="user")
        assert sm.model == "user"
        assert sm.state == SubmitState.IDLE
        assert sm.get_transitions() == []

    def test_init_with_custom_state(self):
        """Should initialize with custom state if provided."""
        sm = SubmissionStateMachine(model="user", state=SubmitState.PENDING)
        assert sm.state == SubmitState.PENDING


class TestValidTransitions:
    """Test the submit lifecycle paths."""

    def test_idle_to_pending_to_submitted_valid(self):
        """A valid submit goes through PENDING."""
        sm = SubmissionStateMachine(model="user")
        sm.transition_to(SubmitState.PENDING)
        sm.transition_to(SubmitState.SUBMITTED_VALID)
        assert sm.state == SubmitState.SUBMITTED_VALID

    def test_idle_to_submitted_invalid(self):
        """An invalid submit settles directly."""
        sm = SubmissionStateMachine(model="user")
        sm.transition_to(SubmitState.SUBMITTED_INVALID)
        assert sm.state == SubmitState.SUBMITTED_INVALID

    def test_idle_to_submitted_valid_fast_path(self):
        """A fast-path submit skips PENDING."""
        sm = SubmissionStateMachine(model="user")
        sm.transition_to(SubmitState.SUBMITTED_VALID)
        assert sm.state == SubmitState.SUBMITTED_VALID

    @pytest.mark.parametrize("settled", [SubmitState.SUBMITTED_VALID, SubmitState.SUBMITTED_INVALID])
    def test_resubmit_from_settled_state(self, settled):
        """A settled form accepts a new submit attempt."""
        sm = SubmissionStateMachine(model="user", state=settled)
        sm.transition_to(SubmitState.PENDING)
        assert sm.state == SubmitState.PENDING

    def test_pending_accepts_repeated_submit(self):
        """A second submit while pending is allowed."""
        sm = SubmissionStateMachine(model="user", state=SubmitState.PENDING)
        assert sm.can_transition_to(SubmitState.PENDING)


class TestInvalidTransitions:
    """Test rejected transitions."""

    def test_idle_to_idle_rejected(self):
        """transition_to cannot be used to stay in IDLE."""
        sm = SubmissionStateMachine(model="user")
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            sm.transition_to(SubmitState.IDLE)
        assert exc_info.value.current_state == SubmitState.IDLE
        assert exc_info.value.target_state == SubmitState.IDLE
        assert "idle" in str(exc_info.value)
        assert sm.state == SubmitState.IDLE

    def test_every_state_has_transition_rules(self):
        """Every state should appear in the transition table."""
        assert set(VALID_TRANSITIONS) == set(SubmitState)


class TestReset:
    """Test reset from any state."""

    @pytest.mark.parametrize("state", list(SubmitState))
    def test_reset_returns_to_idle(self, state):
        """Reset should return to IDLE from every state."""
        sm = SubmissionStateMachine(model="user", state=state)
        sm.reset()
        assert sm.state == SubmitState.IDLE

    def test_reset_from_idle_records_nothing(self):
        """Resetting an idle machine is a no-op."""
        sm = SubmissionStateMachine(model="user")
        sm.reset()
        assert sm.get_transitions() == []

    def test_is_settled(self):
        """Only the submitted states count as settled."""
        assert not SubmissionStateMachine(model="m").is_settled()
        assert not SubmissionStateMachine(model="m", state=SubmitState.PENDING).is_settled()
        assert SubmissionStateMachine(model="m", state=SubmitState.SUBMITTED_VALID).is_settled()
        assert SubmissionStateMachine(model="m", state=SubmitState.SUBMITTED_INVALID).is_settled()


class TestTransitionRecords:
    """Test recorded transitions."""

    def test_transitions_recorded_in_order(self):
        """Every transition should be recorded with from/to states."""
        sm = SubmissionStateMachine(model="user")
        sm.transition_to(SubmitState.PENDING)
        sm.transition_to(SubmitState.SUBMITTED_VALID)
        sm.reset()

        transitions = sm.get_transitions()
        assert [(t.from_state, t.to_state) for t in transitions] == [
            (SubmitState.IDLE, SubmitState.PENDING),
            (SubmitState.PENDING, SubmitState.SUBMITTED_VALID),
            (SubmitState.SUBMITTED_VALID, SubmitState.IDLE),
        ]
        assert all(t.model == "user" for t in transitions)

    def test_get_transitions_returns_copy(self):
        """Mutating the returned list should not affect the machine."""
        sm = SubmissionStateMachine(model="user")
        sm.transition_to(SubmitState.PENDING)
        sm.get_transitions().clear()
        assert len(sm.get_transitions()) == 1

    def test_transition_round_trip(self):
        """A transition record should survive to_dict/from_dict."""
        sm = SubmissionStateMachine(model="user")
        sm.transition_to(SubmitState.SUBMITTED_INVALID)
        record = sm.get_transitions()[0]

        data = record.to_dict()
        assert data["fromState"] == "idle"
        assert data["toState"] == "submitted_invalid"
        assert StateTransition.from_dict(data) == record


class TestSerialization:
    """Test state machine serialization."""

    def test_to_dict(self):
        """Should serialize model and state."""
        sm = SubmissionStateMachine(model="user", state=SubmitState.PENDING)
        assert sm.to_dict() == {"model": "user", "state": "pending"}

    def test_from_dict(self):
        """Should restore model and state."""
        sm = SubmissionStateMachine.from_dict({"model": "user", "state": "submitted_invalid"})
        assert sm.model == "user"
        assert sm.state == SubmitState.SUBMITTED_INVALID
