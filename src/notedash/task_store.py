"""Task store - the signed-in owner's tasks, mirrored from the document store."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from .core.errors import NotedashError, NotFound, PersistenceError
from .core.tasks import Task, TaskInput, TaskStatus, find_task, owned_by
from .ports import DocumentStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Subscription:
    """
    Handle on one live owner-filtered query.

    Async-iterate it to receive snapshots; each snapshot fully replaces the
    previous one, so a slow consumer only ever sees the newest. After close()
    nothing more is delivered and iteration stops.
    """

    def __init__(self, owner_key: str):
        self.owner_key = owner_key
        self.latest: list[Task] | None = None
        self._closed = False
        self._version = 0
        self._seen = 0
        self._changed = asyncio.Event()
        self._teardown: Callable[[], None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def _push(self, snapshot: list[Task]) -> None:
        if self._closed:
            return
        self.latest = snapshot
        self._version += 1
        self._changed.set()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._teardown is not None:
            self._teardown()
        self._changed.set()

    async def wait_for_snapshot(self, timeout: float | None = None) -> list[Task]:
        """Wait until at least one snapshot has arrived and return the newest."""
        while self.latest is None and not self._closed:
            self._changed.clear()
            await asyncio.wait_for(self._changed.wait(), timeout)
        return list(self.latest or [])

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> list[Task]:
        while not self._closed and self._seen == self._version:
            self._changed.clear()
            await self._changed.wait()
        if self._closed:
            raise StopAsyncIteration
        self._seen = self._version
        return list(self.latest or [])


class TaskStore:
    """
    Owns the current owner's tasks.

    Mutations go straight to the document store; the visible snapshot only
    changes when the subscription echoes the write back, so nothing exists
    locally without a remote record.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        collection: str = "tasks",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = document_store
        self.collection = collection
        self._clock = clock
        self._subscription: Subscription | None = None
        self._snapshot: list[Task] = []
        self._listeners: list[Callable[[list[Task]], None]] = []

    @property
    def owner_key(self) -> str | None:
        return self._subscription.owner_key if self._subscription else None

    @property
    def snapshot(self) -> list[Task]:
        return list(self._snapshot)

    @property
    def subscription(self) -> Subscription | None:
        return self._subscription

    def get(self, task_id: str) -> Task | None:
        return find_task(self._snapshot, task_id)

    def on_change(self, callback: Callable[[list[Task]], None]) -> Callable[[], None]:
        """Register a listener fired with every new snapshot (and on teardown)."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_snapshot(self, tasks: list[Task]) -> None:
        self._snapshot = tasks
        for listener in list(self._listeners):
            listener(self.snapshot)

    def subscribe(self, owner_key: str | None) -> Subscription | None:
        """
        Start mirroring owner_key's tasks, tearing down any previous subscription.

        subscribe(None) just tears down and clears the snapshot.
        """
        self.unsubscribe()
        if not owner_key:
            return None

        subscription = Subscription(owner_key)

        def on_snapshot(records: list[dict]) -> None:
            if subscription.closed:
                return
            tasks = owned_by(records, owner_key)
            if len(tasks) != len(records):
                logger.warning(f"Dropped {len(records) - len(tasks)} record(s) not owned by the subscriber")
            if self._subscription is subscription:
                self._set_snapshot(tasks)
            subscription._push(tasks)

        def on_error(error: Exception) -> None:
            if not subscription.closed:
                logger.error(f"Task subscription error: {error}")

        self._subscription = subscription
        subscription._teardown = self._store.watch(self.collection, owner_key, on_snapshot, on_error)
        logger.debug(f"Subscribed to {self.collection} for owner {owner_key}")
        return subscription

    def unsubscribe(self) -> None:
        """Tear down the active subscription and clear the snapshot."""
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return
        subscription.close()
        logger.debug(f"Unsubscribed from {self.collection} for owner {subscription.owner_key}")
        self._set_snapshot([])

    async def _write(self, operation: str, call: Callable):
        try:
            return await call()
        except NotedashError:
            raise
        except Exception as e:
            logger.error(f"Task {operation} rejected: {e}")
            raise PersistenceError(f"Could not {operation} task: {e}") from e

    async def create(self, task_input: TaskInput) -> str:
        """Insert a new task for the current owner. Returns the new id."""
        task_input.validate()
        owner_key = self.owner_key
        if not owner_key:
            raise PersistenceError("Cannot create a task while signed out")

        record = task_input.to_record(owner_key, self._clock())
        task_id = await self._write("create", lambda: self._store.insert(self.collection, record))
        logger.info(f"Created task {task_id}")
        return task_id

    async def advance_status(self, task_id: str) -> TaskStatus:
        """Move a task to the next status in the cycle. Returns the status written."""
        task = self.get(task_id)
        if task is None:
            logger.info(f"Cannot advance unknown task {task_id}")
            raise NotFound(task_id)

        new_status = task.status.next()
        await self._write(
            "update", lambda: self._store.update(self.collection, task_id, {"status": new_status.value})
        )
        return new_status

    async def delete(self, task_id: str) -> None:
        """Delete a task. Deleting an unknown task is a logged no-op."""
        if self.get(task_id) is None:
            logger.info(f"Delete of unknown task {task_id} ignored")
            return
        await self._write("delete", lambda: self._store.remove(self.collection, task_id))
