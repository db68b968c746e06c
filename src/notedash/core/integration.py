"""Integration panel state machine - pure transitions, no I/O."""

from dataclasses import dataclass, field, replace
from enum import Enum

from .external import CalendarEvent, EmailThread, ExternalItem, IntegrationSnapshot


class IntegrationPhase(Enum):
    """
    Integration panel lifecycle.

    IDLE -> LOADING -> READY | EXPIRED | FAILED, and back to LOADING on refresh.
    """

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True)
class IntegrationState:
    """What the integration panel shows."""

    phase: IntegrationPhase = IntegrationPhase.IDLE
    events: list[CalendarEvent] = field(default_factory=list)
    tasks: list[ExternalItem] = field(default_factory=list)
    threads: list[EmailThread] = field(default_factory=list)
    error: str | None = None

    @property
    def loading(self) -> bool:
        return self.phase is IntegrationPhase.LOADING

    @property
    def needs_reconnect(self) -> bool:
        return self.phase is IntegrationPhase.EXPIRED

    @property
    def can_refresh(self) -> bool:
        return self.phase in (IntegrationPhase.READY, IntegrationPhase.EXPIRED, IntegrationPhase.FAILED)


def idle() -> IntegrationState:
    """No credential: nothing to show."""
    return IntegrationState()


def begin_refresh(state: IntegrationState) -> IntegrationState:
    """Enter LOADING, keeping whatever data was already shown."""
    return replace(state, phase=IntegrationPhase.LOADING, error=None)


def complete(state: IntegrationState, snapshot: IntegrationSnapshot) -> IntegrationState:
    """
    Apply a refresh result.

    A failed primary read keeps what that branch showed before and moves the
    panel to FAILED with the provider's message; the branches that succeeded
    are still applied.
    """
    error = snapshot.error
    return IntegrationState(
        phase=IntegrationPhase.FAILED if error else IntegrationPhase.READY,
        events=list(state.events if snapshot.events_error else snapshot.events),
        tasks=list(state.tasks if snapshot.tasks_error else snapshot.tasks),
        threads=list(snapshot.threads),
        error=error,
    )


def abandon_refresh(state: IntegrationState, phase: IntegrationPhase) -> IntegrationState:
    """Leave LOADING without a result, back to the phase shown before."""
    return replace(state, phase=phase)


def expire(state: IntegrationState, message: str | None = None) -> IntegrationState:
    """Credential rejected; previous data stays until a reconnect succeeds."""
    return replace(state, phase=IntegrationPhase.EXPIRED, error=message or "Session expired. Reconnect to continue.")


def fail(state: IntegrationState, message: str) -> IntegrationState:
    return replace(state, phase=IntegrationPhase.FAILED, error=message)
