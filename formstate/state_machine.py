"""Submission confirmation state machine for the formstate engine.

A submit that passes validation does not fire the submit hook directly.
It first moves the form into PENDING_CONFIRMATION; the confirmation step then
re-checks the errors, moves back to IDLE and fires the hook. This makes
"submission accepted" a distinct, observable transition.

The state machine:
- Enforces valid transitions between phases
- Records a typed event for every transition (and for any event the engine
  asks it to record), forming the session's audit trail
- Forwards recorded events to an optional EventEmitter

Usage:
    >>> from formstate.state_machine import SubmissionStateMachine
    >>> from formstate.types import FormPhase
    >>> sm = SubmissionStateMachine(form_id="form_123")
    >>> sm.phase
    <FormPhase.IDLE: 'idle'>
    >>> sm.transition_to(FormPhase.PENDING_CONFIRMATION)
    >>> sm.is_pending
    True
    >>> len(sm.get_events())
    1
"""

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Set

from formstate.events import EventEmitter, FormEvent
from formstate.types import EventType, FormPhase

logger = logging.getLogger(__name__)


class InvalidStateTransitionError(Exception):
    """Raised when attempting an invalid phase transition.

    Attributes:
        current_phase: The phase before the attempted transition
        target_phase: The phase that was attempted
    """

    def __init__(self, current_phase: FormPhase, target_phase: FormPhase, message: str):
        self.current_phase = current_phase
        self.target_phase = target_phase
        super().__init__(message)


# Event recorded when a phase is entered
PHASE_TO_EVENT_TYPE: Dict[FormPhase, EventType] = {
    FormPhase.PENDING_CONFIRMATION: EventType.SUBMISSION_PENDING,
    FormPhase.IDLE: EventType.SUBMISSION_CONFIRMED,
}


VALID_TRANSITIONS: Dict[FormPhase, Set[FormPhase]] = {
    FormPhase.IDLE: {FormPhase.PENDING_CONFIRMATION},
    FormPhase.PENDING_CONFIRMATION: {FormPhase.IDLE},
}


@dataclass
class SubmissionStateMachine:
    """Idle / PendingConfirmation state machine for one form session.

    Attributes:
        form_id: Identifier of the form this machine belongs to
        phase: Current phase
        emitter: Optional emitter that receives every recorded event
        max_events: Keep only this many of the most recent events; None keeps all

    Examples:
        >>> sm = SubmissionStateMachine(form_id="form_123")
        >>> sm.can_transition_to(FormPhase.PENDING_CONFIRMATION)
        True
        >>> sm.can_transition_to(FormPhase.IDLE)
        False
    """

    form_id: str
    phase: FormPhase = FormPhase.IDLE
    emitter: Optional[EventEmitter] = field(default=None, repr=False)
    max_events: Optional[int] = None
    _events: Deque[FormEvent] = field(init=False, repr=False)

    def __post_init__(self):
        self._events = deque(maxlen=self.max_events)

    @property
    def is_pending(self) -> bool:
        return self.phase == FormPhase.PENDING_CONFIRMATION

    def can_transition_to(self, target_phase: FormPhase) -> bool:
        """Check if transition to target phase is valid."""
        return target_phase in VALID_TRANSITIONS.get(self.phase, set())

    def transition_to(self, target_phase: FormPhase, payload: Optional[Dict[str, Any]] = None) -> None:
        """Move to a new phase and record the matching event.

        Args:
            target_phase: The phase to transition to
            payload: Extra event data merged with the from/to phases

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_phase):
            raise InvalidStateTransitionError(
                current_phase=self.phase,
                target_phase=target_phase,
                message=(
                    f"Invalid phase transition: cannot transition from "
                    f"'{self.phase.value}' to '{target_phase.value}'"
                ),
            )

        old_phase = self.phase
        self.phase = target_phase
        logger.debug("Form %s: %s -> %s", self.form_id, old_phase.value, target_phase.value)

        event_payload = {"from_phase": old_phase.value, "to_phase": target_phase.value}
        if payload:
            event_payload.update(payload)
        self.record(PHASE_TO_EVENT_TYPE[target_phase], event_payload)

    def clear(self) -> None:
        """Return to IDLE without recording a confirmation.

        Used by reset, which drops any pending submission instead of
        confirming it.
        """
        if self.phase != FormPhase.IDLE:
            logger.debug("Form %s: pending submission dropped", self.form_id)
        self.phase = FormPhase.IDLE

    def record(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> FormEvent:
        """Record an event at the current phase and forward it to the emitter.

        Returns:
            The recorded event
        """
        event = FormEvent(
            event_id=f"evt_{uuid.uuid4().hex[:16]}",
            type=event_type,
            form_id=self.form_id,
            ts=datetime.now(timezone.utc),
            phase=self.phase,
            payload=payload,
        )
        self._events.append(event)
        if self.emitter is not None:
            self.emitter.emit(event)
        return event

    def get_events(self) -> List[FormEvent]:
        """All recorded events in chronological order."""
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the machine to a dictionary.

        Examples:
            >>> SubmissionStateMachine(form_id="form_123").to_dict()
            {'formId': 'form_123', 'phase': 'idle'}
        """
        return {
            "formId": self.form_id,
            "phase": self.phase.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubmissionStateMachine":
        """Deserialize a machine from a dictionary (events are not restored)."""
        return cls(
            form_id=data["formId"],
            phase=FormPhase(data["phase"]),
        )


__all__ = [
    "SubmissionStateMachine",
    "InvalidStateTransitionError",
    "VALID_TRANSITIONS",
]
