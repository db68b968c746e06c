"""External calendar/task/mail read interface."""

from datetime import datetime
from typing import Protocol

from notedash.core.external import CalendarEvent, EmailThread, ExternalItem


class WorkspaceReader(Protocol):
    """
    Interface for read-only calls to the external workspace provider.

    Implementations raise ExpiredCredential or IntegrationError.
    """

    async def list_events(
        self, credential: str, time_min: datetime, time_max: datetime, max_results: int
    ) -> list[CalendarEvent]:
        """Fetch events in a time window, ordered by start time."""
        ...

    async def list_tasks(self, credential: str, max_results: int) -> list[ExternalItem]:
        """Fetch tasks from the default list, completed ones included."""
        ...

    async def list_threads(self, credential: str, max_results: int) -> list[EmailThread]:
        """Fetch the latest inbox messages."""
        ...
