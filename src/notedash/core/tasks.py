"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TaskStatus(str, Enum):
    """Board column a task lives in."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    def next(self) -> "TaskStatus":
        """Next status along the fixed cycle todo -> in_progress -> done -> todo."""
        return _STATUS_CYCLE[self]

    @classmethod
    def parse(cls, value: str | None) -> "TaskStatus":
        """Parse a stored status, tolerating legacy spellings."""
        if not value:
            return cls.TODO
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "doing":
            return cls.IN_PROGRESS
        try:
            return cls(normalized)
        except ValueError:
            return cls.TODO


_STATUS_CYCLE = {
    TaskStatus.TODO: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.DONE,
    TaskStatus.DONE: TaskStatus.TODO,
}


class Priority(str, Enum):
    """Task priority."""

    HIGH = "high"
    MED = "med"
    LOW = "low"

    @classmethod
    def parse(cls, value: str | None) -> "Priority":
        if not value:
            return cls.MED
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.MED


@dataclass
class Task:
    """A locally owned task, mirrored from the remote document collection."""

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: Priority
    owner_key: str
    created_at: datetime | None = None
    ai_insight: str | None = None
    area: str | None = None

    @classmethod
    def from_record(cls, record: dict) -> "Task":
        """Create Task from a stored document record."""
        created = record.get("createdAt")
        if isinstance(created, str):
            try:
                created = datetime.fromisoformat(created)
            except ValueError:
                created = None
        elif not isinstance(created, datetime):
            created = None
        return cls(
            id=str(record["id"]),
            title=record.get("title", ""),
            description=record.get("description", "") or "",
            status=TaskStatus.parse(record.get("status")),
            priority=Priority.parse(record.get("priority")),
            owner_key=record.get("ownerKey", ""),
            created_at=created,
            ai_insight=record.get("aiInsight") or None,
            area=record.get("area") or None,
        )

    def to_record(self) -> dict:
        """Serialize to the stored document shape (without the id)."""
        record = {
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "ownerKey": self.owner_key,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if self.ai_insight:
            record["aiInsight"] = self.ai_insight
        if self.area:
            record["area"] = self.area
        return record


@dataclass
class TaskInput:
    """Fields the note editor collects for a new task."""

    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: Priority = Priority.MED
    area: str | None = None

    def validate(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("Task title must not be blank")

    def to_record(self, owner_key: str, created_at: datetime) -> dict:
        """Build the record to insert, stamped with owner and creation time."""
        return Task(
            id="",
            title=self.title.strip(),
            description=self.description,
            status=self.status,
            priority=self.priority,
            owner_key=owner_key,
            created_at=created_at,
            area=self.area,
        ).to_record()


def owned_by(records: list[dict], owner_key: str) -> list[Task]:
    """
    Convert records to tasks, keeping only those owned by owner_key.

    Pure function - no I/O. Preserves input order.
    """
    return [Task.from_record(r) for r in records if r.get("ownerKey") == owner_key]


def find_task(tasks: list[Task], task_id: str) -> Task | None:
    """Find a task by id in a snapshot."""
    return next((t for t in tasks if t.id == task_id), None)
