"""Functional core - pure business logic with no I/O."""

from .tasks import Task, TaskInput, TaskStatus, Priority, owned_by, find_task
from .external import CalendarEvent, ExternalItem, EmailThread, IntegrationSnapshot
from .fusion import Board, FusedTask, Provenance, fuse, map_external_status
from .integration import IntegrationPhase, IntegrationState
from .session import AuthProvider, Identity, SignInResult, INTEGRATION_SCOPES
from .errors import (
    ErrorKind,
    NotedashError,
    AuthCancelled,
    IdentityProviderError,
    PersistenceError,
    NotFound,
    IntegrationError,
    ExpiredCredential,
    classify_failure,
    error_from_response,
)

__all__ = [
    # Tasks
    "Task",
    "TaskInput",
    "TaskStatus",
    "Priority",
    "owned_by",
    "find_task",
    # External
    "CalendarEvent",
    "ExternalItem",
    "EmailThread",
    "IntegrationSnapshot",
    # Fusion
    "Board",
    "FusedTask",
    "Provenance",
    "fuse",
    "map_external_status",
    # Integration
    "IntegrationPhase",
    "IntegrationState",
    # Session
    "AuthProvider",
    "Identity",
    "SignInResult",
    "INTEGRATION_SCOPES",
    # Errors
    "ErrorKind",
    "NotedashError",
    "AuthCancelled",
    "IdentityProviderError",
    "PersistenceError",
    "NotFound",
    "IntegrationError",
    "ExpiredCredential",
    "classify_failure",
    "error_from_response",
]
