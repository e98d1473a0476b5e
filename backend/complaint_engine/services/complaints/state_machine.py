"""
Complaint State Machine

Deterministic state machine for the complaint lifecycle.
States never move backward, and RESOLVED / DISMISSED are terminal.
"""
from typing import Any, Dict, List, Tuple

from ...models.db_models import ComplaintStatus
from .errors import IllegalStateError


# =============================================================================
# STATE CONFIGURATION
# =============================================================================
#
# AUTHORITY MODEL:
# - EXTERNAL: moved by a collaborator outside this engine (cook picks it up)
# - SYSTEM: escalation scheduler, no human causer
# - USER: an admin decision through the resolution service
#
# =============================================================================

STATE_CONFIG = {
    ComplaintStatus.OPEN: {
        "description": "Complaint submitted, awaiting cook response",
        "allowed_transitions": [ComplaintStatus.IN_REVIEW, ComplaintStatus.ESCALATED],
        "terminal": False,
        "entry_authority": "EXTERNAL",  # Created by intake
    },
    ComplaintStatus.IN_REVIEW: {
        "description": "Cook is handling the complaint",
        "allowed_transitions": [],  # Moves out of IN_REVIEW are owned by intake
        "terminal": False,
        "entry_authority": "EXTERNAL",
    },
    ComplaintStatus.ESCALATED: {
        "description": "Awaiting admin resolution",
        "allowed_transitions": [ComplaintStatus.RESOLVED, ComplaintStatus.DISMISSED],
        "terminal": False,
        "entry_authority": "SYSTEM",  # Auto-escalation after 24h
    },
    ComplaintStatus.RESOLVED: {
        "description": "Admin applied a disciplinary or financial outcome",
        "allowed_transitions": [],  # Terminal state
        "terminal": True,
        "entry_authority": "USER",
    },
    ComplaintStatus.DISMISSED: {
        "description": "Admin dismissed the complaint",
        "allowed_transitions": [],  # Terminal state
        "terminal": True,
        "entry_authority": "USER",
    },
}


# =============================================================================
# STATE MACHINE
# =============================================================================

class ComplaintStateMachine:
    """
    Transition table lookups for complaint statuses.

    Holds no session: persisting a transition is the caller's job, done as a
    conditional update guarded on the source status.
    """

    def get_state_config(self, state: ComplaintStatus) -> Dict[str, Any]:
        """Get configuration for a state."""
        return STATE_CONFIG.get(ComplaintStatus(state), {})

    def can_transition(
        self,
        from_state: ComplaintStatus,
        to_state: ComplaintStatus,
    ) -> Tuple[bool, str]:
        """
        Check if a state transition is allowed.

        Returns (allowed, reason)
        """
        from_state = ComplaintStatus(from_state)
        to_state = ComplaintStatus(to_state)
        config = self.get_state_config(from_state)

        if to_state in config.get("allowed_transitions", []):
            return True, "Transition allowed"

        if config.get("terminal"):
            return False, f"Complaint is already {from_state.value}"

        return False, f"Cannot transition from {from_state.value} to {to_state.value}"

    def assert_transition(self, from_state: ComplaintStatus, to_state: ComplaintStatus) -> None:
        """Raise IllegalStateError unless the transition is allowed."""
        allowed, reason = self.can_transition(from_state, to_state)
        if not allowed:
            raise IllegalStateError(reason)

    def is_terminal_state(self, state: ComplaintStatus) -> bool:
        """Check if a state is terminal (no further transitions)."""
        return bool(self.get_state_config(state).get("terminal"))

    def get_next_states(self, state: ComplaintStatus) -> List[ComplaintStatus]:
        """Get possible next states from current state."""
        return list(self.get_state_config(state).get("allowed_transitions", []))
