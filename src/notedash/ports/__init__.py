"""Ports - interfaces/protocols for external dependencies."""

from .identity_provider import IdentityProvider
from .document_store import DocumentStore
from .workspace_reader import WorkspaceReader
from .key_value_store import KeyValueStore

__all__ = [
    "IdentityProvider",
    "DocumentStore",
    "WorkspaceReader",
    "KeyValueStore",
]
