"""Client-local key-value storage interface."""

from typing import Protocol


class KeyValueStore(Protocol):
    """Interface for small persisted string values that survive restarts."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...
