"""Shared fixtures: offline fakes for the identity provider, stores and Google reads."""

import asyncio
from datetime import datetime, timezone

import pytest

from notedash.adapters import DevIdentityProvider, FileKeyValueStore, InMemoryDocumentStore
from notedash.config import Config
from notedash.core.errors import AuthCancelled
from notedash.core.external import CalendarEvent, EmailThread, ExternalItem
from notedash.integration import IntegrationFetcher, IntegrationPanel
from notedash.session import SessionState
from notedash.task_store import TaskStore


class FakeReader:
    """WorkspaceReader double. Set *_error to make a branch fail, gate to hold calls open."""

    def __init__(self):
        self.events = [CalendarEvent(id="ev1", summary="Standup", start=None, all_day=False)]
        self.tasks = [ExternalItem(id="e1", title="Buy milk", status="needsAction")]
        self.threads = [EmailThread(id="m1", subject="Hello", sender="a@example.com")]
        self.events_error: Exception | None = None
        self.tasks_error: Exception | None = None
        self.threads_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple] = []

    async def _wait(self):
        if self.gate is not None:
            await self.gate.wait()

    async def list_events(self, credential, time_min, time_max, max_results):
        self.calls.append(("events", credential, time_min, time_max, max_results))
        await self._wait()
        if self.events_error:
            raise self.events_error
        return list(self.events)

    async def list_tasks(self, credential, max_results):
        self.calls.append(("tasks", credential, max_results))
        await self._wait()
        if self.tasks_error:
            raise self.tasks_error
        return list(self.tasks)

    async def list_threads(self, credential, max_results):
        self.calls.append(("threads", credential, max_results))
        await self._wait()
        if self.threads_error:
            raise self.threads_error
        return list(self.threads)


class ScriptedIdentityProvider(DevIdentityProvider):
    """Dev provider that can be told to cancel or fail the next sign-in."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.cancel_next = False
        self.fail_next: Exception | None = None

    async def sign_in_interactive(self, provider, scopes):
        if self.cancel_next:
            self.cancel_next = False
            raise AuthCancelled("Sign-in dismissed")
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        return await super().sign_in_interactive(provider, scopes)


class GuardedDocumentStore(InMemoryDocumentStore):
    """In-memory store whose writes can be rejected like a permission failure."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.reject_writes = False

    def _check_writable(self):
        if self.reject_writes:
            raise PermissionError("Missing or insufficient permissions.")

    async def insert(self, collection, record):
        self._check_writable()
        return await super().insert(collection, record)

    async def update(self, collection, record_id, patch):
        self._check_writable()
        await super().update(collection, record_id, patch)

    async def remove(self, collection, record_id):
        self._check_writable()
        await super().remove(collection, record_id)


async def _settle(rounds: int = 3) -> None:
    """Let call_soon deliveries run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    return _settle


@pytest.fixture
def storage(tmp_path):
    return FileKeyValueStore(tmp_path / "state.json")


@pytest.fixture
def provider():
    return ScriptedIdentityProvider(credential="token-123")


@pytest.fixture
def documents():
    return GuardedDocumentStore()


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def session(provider, storage):
    return SessionState(provider, storage)


@pytest.fixture
def task_store(documents):
    return TaskStore(documents)


@pytest.fixture
def fetcher(reader, fixed_clock):
    return IntegrationFetcher(reader, Config(), clock=fixed_clock)


@pytest.fixture
def panel(fetcher, session):
    return IntegrationPanel(fetcher, session)
