"""In-memory document store adapter, optionally backed by a JSON file."""

import asyncio
import copy
import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class _Watcher:
    collection: str
    owner_key: str
    on_snapshot: Callable[[list[dict]], None]
    loop: asyncio.AbstractEventLoop
    active: bool = True

    def deliver(self, records: list[dict]) -> None:
        # Deliveries scheduled before unsubscribe must not reach the consumer
        if self.active:
            self.on_snapshot(records)


class InMemoryDocumentStore:
    """
    Document store kept in process memory.

    Implements DocumentStore protocol. Used in dev mode and as a test fake.
    When a path is given, collections are loaded from and saved to that JSON
    file so dev-mode data survives restarts. Snapshots are delivered on the
    watcher's event loop via call_soon, never synchronously.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path).expanduser() if path else None
        self._collections: dict[str, dict[str, dict]] = self._load()
        self._watchers: list[_Watcher] = []

    def _load(self) -> dict[str, dict[str, dict]]:
        if not self.path or not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupt document file {self.path}: {e}")
            return {}

    def _save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._collections, indent=2, default=str))

    def _query(self, collection: str, owner_key: str) -> list[dict]:
        records = self._collections.get(collection, {})
        return [copy.deepcopy(r) for r in records.values() if r.get("ownerKey") == owner_key]

    def _notify(self, collection: str) -> None:
        for watcher in self._watchers:
            if watcher.collection == collection:
                watcher.loop.call_soon(watcher.deliver, self._query(collection, watcher.owner_key))

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    def records(self, collection: str) -> list[dict]:
        """All records in a collection, regardless of owner."""
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    def watch(
        self,
        collection: str,
        owner_key: str,
        on_snapshot: Callable[[list[dict]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        watcher = _Watcher(collection, owner_key, on_snapshot, asyncio.get_running_loop())
        self._watchers.append(watcher)
        watcher.loop.call_soon(watcher.deliver, self._query(collection, owner_key))

        def unsubscribe() -> None:
            watcher.active = False
            if watcher in self._watchers:
                self._watchers.remove(watcher)

        return unsubscribe

    async def insert(self, collection: str, record: dict) -> str:
        record_id = uuid.uuid4().hex
        self._collections.setdefault(collection, {})[record_id] = {**copy.deepcopy(record), "id": record_id}
        self._save()
        self._notify(collection)
        return record_id

    async def update(self, collection: str, record_id: str, patch: dict) -> None:
        records = self._collections.get(collection, {})
        if record_id not in records:
            raise KeyError(f"No document to update: {collection}/{record_id}")
        records[record_id].update(copy.deepcopy(patch))
        self._save()
        self._notify(collection)

    async def remove(self, collection: str, record_id: str) -> None:
        records = self._collections.get(collection, {})
        if records.pop(record_id, None) is not None:
            self._save()
            self._notify(collection)
