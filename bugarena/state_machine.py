"""
State machine for battle session phases.
"""

import logging
from typing import Callable

from .models import BattlePhase


logger = logging.getLogger(__name__)

# RESULT -> SELECTION is the retry path; leaving a battle discards the session.
ALLOWED_TRANSITIONS: dict[BattlePhase, frozenset[BattlePhase]] = {
    BattlePhase.SELECTION: frozenset({BattlePhase.MATCHING}),
    BattlePhase.MATCHING: frozenset({BattlePhase.INITIATIVE}),
    BattlePhase.INITIATIVE: frozenset({BattlePhase.BATTLE}),
    BattlePhase.BATTLE: frozenset({BattlePhase.RESULT}),
    BattlePhase.RESULT: frozenset({BattlePhase.SELECTION}),
}


class StateMachine:
    """Tracks the phase of one battle session."""

    def __init__(self, initial_phase: BattlePhase = BattlePhase.SELECTION):
        self._phase = initial_phase
        self._state_listeners: list[Callable[[str, dict], None]] = []

    @property
    def phase(self) -> BattlePhase:
        return self._phase

    def add_listener(self, callback: Callable[[str, dict], None]) -> None:
        """Add a listener for phase changes."""
        self._state_listeners.append(callback)

    def _notify_listeners(self, event_type: str, data: dict) -> None:
        """Notify all listeners of a phase change."""
        for callback in self._state_listeners:
            callback(event_type, data)

    def can_transition(self, new_phase: BattlePhase) -> bool:
        """Check if the current phase may move to `new_phase`."""
        return new_phase in ALLOWED_TRANSITIONS.get(self._phase, frozenset())

    def transition(self, new_phase: BattlePhase) -> bool:
        """Move to a new phase. Returns False if the move is not allowed."""
        if not self.can_transition(new_phase):
            logger.debug("Rejected phase change %s -> %s", self._phase.value, new_phase.value)
            return False

        old_phase = self._phase
        self._phase = new_phase
        logger.debug("Phase %s -> %s", old_phase.value, new_phase.value)

        self._notify_listeners("phase_change", {
            "old_phase": old_phase,
            "new_phase": new_phase
        })

        return True

    def is_in(self, *phases: BattlePhase) -> bool:
        """Check if the current phase is one of `phases`."""
        return self._phase in phases
