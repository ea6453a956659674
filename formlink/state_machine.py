"""Submission state machine for formlink forms.

The state machine tracks where a form is in its submit lifecycle:

    IDLE -> PENDING -> {SUBMITTED_VALID, SUBMITTED_INVALID} -> IDLE

It enforces valid transitions, records every transition, and can be
serialized for storage. Reset is always allowed and returns to IDLE.

Usage:
    >>> from formlink.state_machine import SubmissionStateMachine
    >>> from formlink.types import SubmitState
    >>> sm = SubmissionStateMachine(model="user")
    >>> sm.state
    <SubmitState.IDLE: 'idle'>
    >>> sm.transition_to(SubmitState.PENDING)
    >>> sm.transition_to(SubmitState.SUBMITTED_VALID)
    >>> len(sm.get_transitions())
    2
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Set

from dateutil import parser as date_parser

from formlink.errors import FormLinkError
from formlink.types import SubmitState

logger = logging.getLogger(__name__)


class InvalidStateTransitionError(FormLinkError):
    """A submission was moved to a state it cannot reach from its current one.

    Attributes:
        current_state: Submission state when the move was attempted
        target_state: Requested state
    """

    def __init__(self, current_state: SubmitState, target_state: SubmitState, message: str):
        super().__init__(message)
        self.current_state = current_state
        self.target_state = target_state


# Maps each state to the set of states it can transition to.
# Settled states accept a new submit attempt without an intermediate reset.
VALID_TRANSITIONS: Dict[SubmitState, Set[SubmitState]] = {
    SubmitState.IDLE: {
        SubmitState.PENDING,
        SubmitState.SUBMITTED_VALID,
        SubmitState.SUBMITTED_INVALID,
    },
    SubmitState.PENDING: {
        SubmitState.PENDING,
        SubmitState.SUBMITTED_VALID,
        SubmitState.SUBMITTED_INVALID,
        SubmitState.IDLE,
    },
    SubmitState.SUBMITTED_VALID: {
        SubmitState.IDLE,
        SubmitState.PENDING,
        SubmitState.SUBMITTED_VALID,
        SubmitState.SUBMITTED_INVALID,
    },
    SubmitState.SUBMITTED_INVALID: {
        SubmitState.IDLE,
        SubmitState.PENDING,
        SubmitState.SUBMITTED_VALID,
        SubmitState.SUBMITTED_INVALID,
    },
}

SETTLED_STATES = frozenset({SubmitState.SUBMITTED_VALID, SubmitState.SUBMITTED_INVALID})


@dataclass(frozen=True)
class StateTransition:
    """Record of a single state transition.

    Attributes:
        model: Model path of the form that transitioned
        from_state: State before the transition
        to_state: State after the transition
        ts: UTC timestamp of the transition
    """
    model: str
    from_state: SubmitState
    to_state: SubmitState
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "model": self.model,
            "fromState": self.from_state.value,
            "toState": self.to_state.value,
            "ts": self.ts.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateTransition":
        """Create StateTransition from dict."""
        return cls(
            model=data["model"],
            from_state=SubmitState(data["fromState"]),
            to_state=SubmitState(data["toState"]),
            ts=date_parser.isoparse(data["ts"]),
        )


@dataclass
class SubmissionStateMachine:
    """Submit lifecycle of one form.

    Attributes:
        model: Model path of the form this machine belongs to
        state: Current submit state

    Examples:
        >>> sm = SubmissionStateMachine(model="user")
        >>> sm.can_transition_to(SubmitState.PENDING)
        True
        >>> sm.can_transition_to(SubmitState.IDLE)
        False
        >>> sm.transition_to(SubmitState.SUBMITTED_INVALID)
        >>> sm.is_settled()
        True
        >>> sm.reset()
        >>> sm.state
        <SubmitState.IDLE: 'idle'>
    """

    model: str
    state: SubmitState = SubmitState.IDLE
    _transitions: List[StateTransition] = field(default_factory=list, init=False, repr=False)

    def can_transition_to(self, target_state: SubmitState) -> bool:
        """Check if transition to target state is valid."""
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    def transition_to(self, target_state: SubmitState) -> None:
        """Transition to a new state and record the transition.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            allowed = ", ".join(sorted(s.value for s in VALID_TRANSITIONS[self.state]))
            raise InvalidStateTransitionError(
                self.state,
                target_state,
                f"Submission of {self.model!r} cannot move from {self.state.value} "
                f"to {target_state.value} (allowed: {allowed})",
            )
        self._record(target_state)

    def reset(self) -> None:
        """Return to IDLE from any state."""
        if self.state != SubmitState.IDLE:
            self._record(SubmitState.IDLE)

    def is_settled(self) -> bool:
        """Check whether the last submit attempt has reached an outcome."""
        return self.state in SETTLED_STATES

    def _record(self, target_state: SubmitState) -> None:
        transition = StateTransition(
            model=self.model,
            from_state=self.state,
            to_state=target_state,
        )
        self.state = target_state
        self._transitions.append(transition)
        logger.debug(
            "Form %r: %s -> %s",
            self.model,
            transition.from_state.value,
            transition.to_state.value,
        )

    def get_transitions(self) -> List[StateTransition]:
        """Get all recorded transitions in chronological order."""
        return list(self._transitions)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the current submission state.

        Examples:
            >>> SubmissionStateMachine(model="user", state=SubmitState.PENDING).to_dict()
            {'model': 'user', 'state': 'pending'}
        """
        return {
            "model": self.model,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubmissionStateMachine":
        return cls(model=data["model"], state=SubmitState(data["state"]))


__all__ = [
    "SubmissionStateMachine",
    "InvalidStateTransitionError",
    "StateTransition",
    "VALID_TRANSITIONS",
    "SETTLED_STATES",
]
