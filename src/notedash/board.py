"""Board controller - the app context wiring session, tasks and integration together.

Shared by every presentation (currently the CLI). Each command builds its own
controller, so nothing here is process-global.
"""

import logging
from enum import Enum

from .adapters import (
    DevIdentityProvider,
    FileKeyValueStore,
    FirestoreDocumentStore,
    GoogleIdentityProvider,
    GoogleWorkspaceAdapter,
    InMemoryDocumentStore,
)
from .config import NOTEDASH_HOME, STATE_FILE, TOKEN_DIR, Config
from .core.errors import IdentityProviderError, NotFound, PersistenceError
from .core.fusion import Board, FusedTask, fuse
from .core.integration import IntegrationState
from .core.session import AuthProvider, Identity
from .core.tasks import TaskInput
from .integration import IntegrationFetcher, IntegrationPanel
from .preferences import LanguagePreference
from .session import SessionState
from .task_store import TaskStore

logger = logging.getLogger(__name__)

DEV_DOCUMENTS_FILE = NOTEDASH_HOME / "data" / "dev_documents.json"


class BoardView(str, Enum):
    """Sidebar views."""

    DASHBOARD = "dashboard"
    BOARD = "board"
    CALENDAR = "calendar"
    NOTES = "notes"
    ANALYTICS = "analytics"

    @property
    def shows_integration(self) -> bool:
        return self in (BoardView.DASHBOARD, BoardView.BOARD, BoardView.CALENDAR)


class BoardController:
    """
    What the presentation talks to.

    Keeps the task subscription pointed at the signed-in owner, fuses local
    and external cards, and turns store failures into an inline error
    message plus a False return instead of an exception.
    """

    def __init__(
        self,
        session: SessionState,
        task_store: TaskStore,
        panel: IntegrationPanel,
        language: LanguagePreference | None = None,
    ):
        self.session = session
        self.task_store = task_store
        self.panel = panel
        self.language = language
        self.view = BoardView.DASHBOARD
        self.error: str | None = None
        self._started = False
        self._owner_key: str | None = None
        self._unsubscribe = session.on_change(self._on_session_change)

    @property
    def identity(self) -> Identity | None:
        return self.session.identity

    @property
    def integration(self) -> IntegrationState:
        return self.panel.state

    async def start(self, wait: float | None = None) -> None:
        """Restore the previous session and subscribe to its tasks."""
        self._started = True
        self.session.restore()
        self._sync_subscription()
        subscription = self.task_store.subscription
        if wait is not None and subscription is not None:
            await subscription.wait_for_snapshot(wait)

    def _on_session_change(self, session: SessionState) -> None:
        if self._started:
            self._sync_subscription()

    def _sync_subscription(self) -> None:
        owner_key = self.session.owner_key
        if owner_key == self._owner_key and self.task_store.owner_key == owner_key:
            return
        self._owner_key = owner_key
        self.task_store.subscribe(owner_key)

    def select_view(self, view: BoardView) -> None:
        self.view = view
        self.panel.set_view_active(view.shows_integration)

    def columns(self) -> Board:
        """Local and external cards fused into status columns."""
        return fuse(self.task_store.snapshot, self.panel.tasks)

    def _resolve(self, card: FusedTask | str) -> FusedTask | None:
        if isinstance(card, FusedTask):
            return card
        return self.columns().find(card)

    async def sign_in(self, provider: AuthProvider = AuthProvider.GOOGLE) -> Identity | None:
        try:
            identity = await self.session.sign_in(provider)
        except IdentityProviderError as e:
            self.error = e.message
            return None
        self.error = None
        return identity

    async def sign_out(self) -> None:
        await self.session.sign_out()
        self.error = None

    async def add_task(self, task_input: TaskInput) -> str | None:
        try:
            task_id = await self.task_store.create(task_input)
        except (PersistenceError, ValueError) as e:
            self.error = str(e)
            return None
        self.error = None
        return task_id

    async def advance(self, card: FusedTask | str) -> bool:
        resolved = self._resolve(card)
        if resolved is None:
            self.error = f"Task not found: {card}"
            return False
        if not resolved.can_advance:
            logger.info(f"Refusing to advance read-only card {resolved.id}")
            self.error = "External tasks are read-only"
            return False
        try:
            await self.task_store.advance_status(resolved.id)
        except (PersistenceError, NotFound) as e:
            self.error = e.message
            return False
        self.error = None
        return True

    async def delete(self, card: FusedTask | str) -> bool:
        resolved = self._resolve(card)
        if resolved is None:
            # Already gone; deleting twice is not an error
            logger.info(f"Delete of unknown card {card} ignored")
            return True
        if not resolved.can_delete:
            logger.info(f"Refusing to delete read-only card {resolved.id}")
            self.error = "External tasks are read-only"
            return False
        try:
            await self.task_store.delete(resolved.id)
        except PersistenceError as e:
            self.error = e.message
            return False
        self.error = None
        return True

    async def refresh_integration(self) -> IntegrationState:
        return await self.panel.refresh()

    async def reconnect(self) -> IntegrationState:
        return await self.panel.reconnect()

    def close(self) -> None:
        self._unsubscribe()
        self.task_store.unsubscribe()
        self.panel.close()
        self.session.close()


def build_controller(config: Config) -> BoardController:
    """Wire a controller from config: Google + Firestore, or offline dev mode."""
    storage = FileKeyValueStore(STATE_FILE)
    if config.dev_mode:
        provider = DevIdentityProvider(storage=storage)
        documents = InMemoryDocumentStore(DEV_DOCUMENTS_FILE)
    else:
        provider = GoogleIdentityProvider(config.google_client_secret_file, TOKEN_DIR)
        documents = FirestoreDocumentStore(config.firestore_project, config.firestore_credentials_file)

    session = SessionState(provider, storage)
    task_store = TaskStore(documents, config.tasks_collection)
    fetcher = IntegrationFetcher(GoogleWorkspaceAdapter(config.timezone), config)
    panel = IntegrationPanel(fetcher, session)
    return BoardController(session, task_store, panel, LanguagePreference(storage))
