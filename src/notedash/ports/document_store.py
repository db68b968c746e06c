"""Document store interface."""

from typing import Callable, Protocol


class DocumentStore(Protocol):
    """Interface for a remote document collection with live queries."""

    def watch(
        self,
        collection: str,
        owner_key: str,
        on_snapshot: Callable[[list[dict]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Callable[[], None]:
        """
        Watch records in collection whose ownerKey equals owner_key.

        on_snapshot receives the full record list (each with an "id") on the
        event loop thread, once initially and after every change. Returns an
        unsubscribe callable.
        """
        ...

    async def insert(self, collection: str, record: dict) -> str:
        """Insert a record. Returns the assigned id."""
        ...

    async def update(self, collection: str, record_id: str, patch: dict) -> None:
        """Merge patch into an existing record."""
        ...

    async def remove(self, collection: str, record_id: str) -> None:
        """Delete a record."""
        ...
