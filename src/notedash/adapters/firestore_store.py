"""Cloud Firestore document store adapter."""

import asyncio
import logging
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)


def _to_record(doc) -> dict:
    record = doc.to_dict() or {}
    record["id"] = doc.id
    return record


class FirestoreDocumentStore:
    """
    Firestore-backed document store.

    Implements DocumentStore protocol. Blocking client calls run in a worker
    thread; snapshot listener callbacks (which Firestore fires on its own
    thread) are marshalled back onto the subscriber's event loop.
    """

    def __init__(self, project: str = "", credentials_file: str = "", client=None):
        self.project = project or None
        self.credentials_file = credentials_file
        self._client = client

    def _get_client(self):
        """Build the Firestore client on first use."""
        if self._client is None:
            from google.cloud import firestore

            if self.credentials_file:
                from google.oauth2 import service_account

                creds = service_account.Credentials.from_service_account_file(
                    str(Path(self.credentials_file).expanduser())
                )
                self._client = firestore.Client(project=self.project, credentials=creds)
            else:
                self._client = firestore.Client(project=self.project)
        return self._client

    def watch(
        self,
        collection: str,
        owner_key: str,
        on_snapshot: Callable[[list[dict]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        loop = asyncio.get_running_loop()
        closed = False

        def deliver(records: list[dict]) -> None:
            if not closed:
                on_snapshot(records)

        def fail(error: Exception) -> None:
            if not closed and on_error:
                on_error(error)

        def on_change(docs, changes, read_time) -> None:
            try:
                records = [_to_record(doc) for doc in docs]
            except Exception as e:
                logger.warning(f"Failed to read snapshot for {collection}: {e}")
                loop.call_soon_threadsafe(fail, e)
                return
            loop.call_soon_threadsafe(deliver, records)

        query = self._get_client().collection(collection).where(
            filter=FieldFilter("ownerKey", "==", owner_key)
        )
        watch = query.on_snapshot(on_change)

        def unsubscribe() -> None:
            nonlocal closed
            closed = True
            watch.unsubscribe()

        return unsubscribe

    async def insert(self, collection: str, record: dict) -> str:
        coll = self._get_client().collection(collection)
        _, ref = await asyncio.to_thread(coll.add, record)
        return ref.id

    async def update(self, collection: str, record_id: str, patch: dict) -> None:
        ref = self._get_client().collection(collection).document(record_id)
        await asyncio.to_thread(ref.update, patch)

    async def remove(self, collection: str, record_id: str) -> None:
        ref = self._get_client().collection(collection).document(record_id)
        await asyncio.to_thread(ref.delete)
