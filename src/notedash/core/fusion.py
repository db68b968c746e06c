"""Pure view fusion logic - merges local and external tasks into board columns."""

from dataclasses import dataclass, field
from enum import Enum

from .external import ExternalItem
from .tasks import Priority, Task, TaskStatus


class Provenance(str, Enum):
    """Where a board card came from."""

    LOCAL = "local"
    EXTERNAL = "external"


@dataclass(frozen=True)
class FusedTask:
    """A board card: either a local task or a read-only external item."""

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: Priority
    provenance: Provenance
    ai_insight: str | None = None

    @property
    def is_mutable(self) -> bool:
        """Only locally owned cards can be advanced or deleted."""
        return self.provenance is Provenance.LOCAL

    @property
    def can_advance(self) -> bool:
        return self.is_mutable

    @property
    def can_delete(self) -> bool:
        return self.is_mutable

    @classmethod
    def from_local(cls, task: Task) -> "FusedTask":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            provenance=Provenance.LOCAL,
            ai_insight=task.ai_insight,
        )

    @classmethod
    def from_external(cls, item: ExternalItem) -> "FusedTask":
        return cls(
            id=item.id,
            title=item.title,
            description=item.notes,
            status=map_external_status(item.status),
            priority=Priority.MED,
            provenance=Provenance.EXTERNAL,
        )


@dataclass
class Board:
    """Fused cards grouped into the three fixed status columns."""

    todo: list[FusedTask] = field(default_factory=list)
    in_progress: list[FusedTask] = field(default_factory=list)
    done: list[FusedTask] = field(default_factory=list)

    def bucket(self, status: TaskStatus) -> list[FusedTask]:
        match status:
            case TaskStatus.TODO:
                return self.todo
            case TaskStatus.IN_PROGRESS:
                return self.in_progress
            case TaskStatus.DONE:
                return self.done
        raise ValueError(f"Unknown status: {status}")

    def all(self) -> list[FusedTask]:
        """Every card, column by column."""
        return [*self.todo, *self.in_progress, *self.done]

    def counts(self) -> dict[TaskStatus, int]:
        return {status: len(self.bucket(status)) for status in TaskStatus}

    def find(self, card_id: str) -> FusedTask | None:
        return next((c for c in self.all() if c.id == card_id), None)


def map_external_status(status: str | None) -> TaskStatus:
    """External items are either done or still to do; there is no in-progress."""
    return TaskStatus.DONE if status == "completed" else TaskStatus.TODO


def fuse(local_tasks: list[Task], external_tasks: list[ExternalItem]) -> Board:
    """
    Fuse local and external tasks into status columns.

    Pure function - no I/O, inputs untouched.
    Within a column: local tasks in snapshot order, then external tasks in
    fetch order. No sorting by time or priority.
    """
    board = Board()
    for task in local_tasks:
        card = FusedTask.from_local(task)
        board.bucket(card.status).append(card)
    for item in external_tasks:
        card = FusedTask.from_external(item)
        board.bucket(card.status).append(card)
    return board
