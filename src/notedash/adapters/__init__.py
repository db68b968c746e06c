"""Adapters - I/O implementations of ports."""

from .google_workspace import GoogleWorkspaceAdapter
from .google_identity import GoogleIdentityProvider
from .dev_identity import DevIdentityProvider, DEV_IDENTITY
from .firestore_store import FirestoreDocumentStore
from .memory_store import InMemoryDocumentStore
from .local_storage import FileKeyValueStore

__all__ = [
    "GoogleWorkspaceAdapter",
    "GoogleIdentityProvider",
    "DevIdentityProvider",
    "DEV_IDENTITY",
    "FirestoreDocumentStore",
    "InMemoryDocumentStore",
    "FileKeyValueStore",
]
