"""Processing state machine definition"""

from enum import Enum
from typing import Dict, FrozenSet


class ProcessingState(str, Enum):
    """What the controller is doing. Exactly one value at any time."""
    IDLE = "idle"
    CHECKING_PERMISSION = "checking_permission"
    PERMISSION_DENIED = "permission_denied"
    RECORDING = "recording"
    STOPPING = "stopping"
    TRANSCRIBING = "transcribing"
    SAVING = "saving"
    LOADING_RECORDING = "loading_recording"
    PROCESSING = "processing"
    GENERATING_EXPORT = "generating_export"
    DONE = "done"
    EXPORT_READY = "export_ready"
    ERROR = "error"


S = ProcessingState

# States in which the controller waits for the user
RESTING_STATES: FrozenSet[ProcessingState] = frozenset({
    S.IDLE, S.PERMISSION_DENIED, S.DONE, S.EXPORT_READY, S.ERROR,
})

# States in which a primary operation is in flight
BUSY_STATES: FrozenSet[ProcessingState] = frozenset(set(S) - RESTING_STATES)

# Busy states in which the UI shows a spinner (recording is busy but not "loading")
LOADING_STATES: FrozenSet[ProcessingState] = frozenset({
    S.STOPPING, S.TRANSCRIBING, S.SAVING, S.LOADING_RECORDING,
    S.PROCESSING, S.GENERATING_EXPORT,
})

_FROM_REST = frozenset({
    S.IDLE, S.PERMISSION_DENIED, S.CHECKING_PERMISSION, S.RECORDING,
    S.SAVING, S.LOADING_RECORDING, S.PROCESSING, S.GENERATING_EXPORT,
})

# Reset is allowed from every state except recording
_RESET_TARGETS = frozenset({S.IDLE, S.PERMISSION_DENIED})

ALLOWED_TRANSITIONS: Dict[ProcessingState, FrozenSet[ProcessingState]] = {
    S.IDLE: _FROM_REST,
    S.PERMISSION_DENIED: _FROM_REST,
    S.DONE: _FROM_REST,
    S.EXPORT_READY: _FROM_REST,
    S.ERROR: _FROM_REST,
    S.CHECKING_PERMISSION: frozenset({S.RECORDING, S.ERROR}) | _RESET_TARGETS,
    S.RECORDING: frozenset({S.STOPPING, S.ERROR, S.PERMISSION_DENIED}),
    S.STOPPING: frozenset({S.SAVING, S.ERROR}) | _RESET_TARGETS,
    S.SAVING: frozenset({S.TRANSCRIBING, S.ERROR}) | _RESET_TARGETS,
    S.LOADING_RECORDING: frozenset({S.TRANSCRIBING, S.ERROR}) | _RESET_TARGETS,
    S.TRANSCRIBING: frozenset({S.ERROR}) | _RESET_TARGETS,
    S.PROCESSING: frozenset({S.DONE, S.ERROR}) | _RESET_TARGETS,
    S.GENERATING_EXPORT: frozenset({S.EXPORT_READY, S.DONE, S.ERROR}) | _RESET_TARGETS,
}


class StateTransitionError(RuntimeError):
    """Raised when the controller attempts a transition outside the table"""


def can_transition(current: ProcessingState, target: ProcessingState) -> bool:
    """Check whether ``current -> target`` is a legal transition."""
    return target in ALLOWED_TRANSITIONS[current]


def is_busy(state: ProcessingState) -> bool:
    return state in BUSY_STATES
