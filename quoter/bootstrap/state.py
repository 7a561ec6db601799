"""Process-wide readiness state.

Only the bootstrap coordinator writes it and only the readiness gate (through
the coordinator) reads it.
"""

from enum import Enum

import structlog

logger = structlog.get_logger()


class ServiceState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    FAILED = "FAILED"


# READY and FAILED are terminal for the lifetime of the process
ALLOWED_TRANSITIONS: dict[ServiceState, frozenset[ServiceState]] = {
    ServiceState.UNINITIALIZED: frozenset({ServiceState.INITIALIZING}),
    ServiceState.INITIALIZING: frozenset({ServiceState.READY, ServiceState.FAILED}),
    ServiceState.READY: frozenset(),
    ServiceState.FAILED: frozenset(),
}


class ReadinessState:
    """Holds the current ServiceState and enforces legal transitions."""

    def __init__(self) -> None:
        self._state = ServiceState.UNINITIALIZED

    @property
    def current(self) -> ServiceState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ServiceState.READY

    def transition(self, new_state: ServiceState) -> None:
        """Move to new_state.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if new_state not in ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(f"Illegal service state transition {self._state} -> {new_state}")
        logger.info("service_state_changed", old=self._state.value, new=new_state.value)
        self._state = new_state
