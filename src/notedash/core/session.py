"""Session domain types - no I/O dependencies."""

from dataclasses import dataclass
from enum import Enum

CALENDAR_READONLY = "https://www.googleapis.com/auth/calendar.readonly"
TASKS_READONLY = "https://www.googleapis.com/auth/tasks.readonly"
GMAIL_READONLY = "https://www.googleapis.com/auth/gmail.readonly"

INTEGRATION_SCOPES = [CALENDAR_READONLY, TASKS_READONLY, GMAIL_READONLY]


class AuthProvider(str, Enum):
    """Identity providers the sign-in page offers."""

    GOOGLE = "google"
    FACEBOOK = "facebook"

    @property
    def grants_credential(self) -> bool:
        """Only Google hands back a credential for the calendar/task APIs."""
        return self is AuthProvider.GOOGLE

    def scopes(self) -> list[str]:
        return list(INTEGRATION_SCOPES) if self.grants_credential else []


@dataclass(frozen=True)
class Identity:
    """The signed-in user."""

    owner_key: str
    display_name: str
    avatar_url: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class SignInResult:
    """Outcome of an interactive sign-in."""

    identity: Identity
    credential: str | None = None
