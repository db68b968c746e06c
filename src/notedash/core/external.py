"""External integration items - calendar events, provider tasks, mail threads."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class CalendarEvent:
    """A calendar event read from the external provider."""

    id: str
    summary: str
    start: datetime | None
    all_day: bool
    description: str = ""

    def format_time(self) -> str:
        """Format the event time for display."""
        if self.start is None:
            return "??:??"
        if self.all_day:
            return "All day"
        return self.start.strftime("%H:%M")

    @classmethod
    def from_api(cls, item: dict) -> "CalendarEvent":
        """Create CalendarEvent from a Calendar API event resource."""
        start_raw = item.get("start", {}) or {}
        start = None
        all_day = False
        if start_raw.get("dateTime"):
            start = datetime.fromisoformat(start_raw["dateTime"].replace("Z", "+00:00"))
        elif start_raw.get("date"):
            start = datetime.fromisoformat(start_raw["date"])
            all_day = True
        return cls(
            id=item.get("id", ""),
            summary=item.get("summary", "Untitled"),
            start=start,
            all_day=all_day,
            description=item.get("description", "") or "",
        )


@dataclass
class ExternalItem:
    """A read-only task from the external task-list provider."""

    id: str
    title: str
    status: str = "needsAction"
    notes: str = ""
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @classmethod
    def from_api(cls, item: dict) -> "ExternalItem":
        """Create ExternalItem from a Tasks API task resource."""
        completed = None
        if item.get("completed"):
            try:
                completed = datetime.fromisoformat(item["completed"].replace("Z", "+00:00"))
            except ValueError:
                completed = None
        return cls(
            id=item.get("id", ""),
            title=item.get("title", "") or "Untitled",
            status=item.get("status", "needsAction") or "needsAction",
            notes=item.get("notes", "") or "",
            completed_at=completed,
        )


@dataclass
class EmailThread:
    """A recent inbox message summary."""

    id: str
    subject: str
    sender: str
    snippet: str = ""

    @classmethod
    def from_api(cls, message: dict) -> "EmailThread":
        """Create EmailThread from a Gmail message resource (metadata or full)."""
        headers = (message.get("payload") or {}).get("headers", [])

        def header(name: str, default: str) -> str:
            for h in headers:
                if h.get("name", "").lower() == name.lower():
                    return h.get("value") or default
            return default

        return cls(
            id=message.get("id", ""),
            subject=header("Subject", "No Subject"),
            sender=header("From", "Unknown"),
            snippet=message.get("snippet", "") or "",
        )


@dataclass
class IntegrationSnapshot:
    """Everything one refresh pulled from the external provider."""

    events: list[CalendarEvent] = field(default_factory=list)
    tasks: list[ExternalItem] = field(default_factory=list)
    threads: list[EmailThread] = field(default_factory=list)
    events_error: str | None = None
    tasks_error: str | None = None

    @property
    def error(self) -> str | None:
        """Message of the first failed primary read, if any."""
        return self.events_error or self.tasks_error
