"""External integration - fetching calendar/task/mail data and the panel that shows it."""

import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from .config import Config
from .core import integration as panel_state
from .core.errors import ExpiredCredential, IntegrationError, NotedashError
from .core.external import IntegrationSnapshot
from .core.integration import IntegrationPhase, IntegrationState
from .ports import WorkspaceReader
from .session import SessionState

logger = logging.getLogger(__name__)


class IntegrationFetcher:
    """
    Pulls a bounded window of external data with a bearer credential.

    The three reads run concurrently and each degrades to an empty list on
    its own. Calendar and task-list failures are reported on the snapshot so
    the panel can show them; mail failures are only logged. A rejected
    credential on the calendar read, or both primary reads failing, is raised
    once every branch has settled.
    """

    def __init__(
        self,
        reader: WorkspaceReader,
        config: Config | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        config = config or Config()
        self._reader = reader
        self.window_days = config.calendar_window_days
        self.calendar_max_results = config.calendar_max_results
        self.tasks_max_results = config.tasks_max_results
        self.email_max_results = config.email_max_results
        self._tz = ZoneInfo(config.timezone)
        self._clock = clock or (lambda: datetime.now(self._tz))

    def window(self) -> tuple[datetime, datetime]:
        """From the start of today through window_days days later."""
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=self._tz)
        start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        return start, start + timedelta(days=self.window_days)

    @staticmethod
    def _settle(branch: str, result) -> list:
        if isinstance(result, Exception):
            logger.warning(f"{branch} fetch failed, showing nothing: {result}")
            return []
        if isinstance(result, BaseException):
            raise result
        return result

    @staticmethod
    def _settle_primary(branch: str, result) -> tuple[list, str | None]:
        """Like _settle, but keep the failure message for display."""
        if isinstance(result, Exception):
            if isinstance(result, NotedashError):
                message = result.message
            else:
                message = str(result) or result.__class__.__name__
            logger.warning(f"{branch} fetch failed: {message}")
            return [], message
        if isinstance(result, BaseException):
            raise result
        return result, None

    async def refresh(self, credential: str) -> IntegrationSnapshot:
        time_min, time_max = self.window()
        events, tasks, threads = await asyncio.gather(
            self._reader.list_events(credential, time_min, time_max, self.calendar_max_results),
            self._reader.list_tasks(credential, self.tasks_max_results),
            self._reader.list_threads(credential, self.email_max_results),
            return_exceptions=True,
        )

        if isinstance(events, ExpiredCredential):
            raise events

        events, events_error = self._settle_primary("Calendar", events)
        tasks, tasks_error = self._settle_primary("Task list", tasks)
        if events_error and tasks_error:
            raise IntegrationError(events_error)

        return IntegrationSnapshot(
            events=events,
            tasks=tasks,
            threads=self._settle("Mail", threads),
            events_error=events_error,
            tasks_error=tasks_error,
        )


class IntegrationPanel:
    """
    State owner for the integration panel.

    Runs at most one refresh at a time, applies a result only if the session
    context it started under is still current, and turns every failure into
    panel state instead of an exception.
    """

    def __init__(self, fetcher: IntegrationFetcher, session: SessionState):
        self._fetcher = fetcher
        self._session = session
        self._state = panel_state.idle()
        self._view_active = True
        self._generation = 0
        self._resume_phase = IntegrationPhase.IDLE
        self._context = (session.owner_key, session.credential)
        self._listeners: list[Callable[[IntegrationState], None]] = []
        self._unsubscribe = session.on_change(self._on_session_change)

    @property
    def state(self) -> IntegrationState:
        return self._state

    @property
    def phase(self) -> IntegrationPhase:
        return self._state.phase

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def events(self):
        return self._state.events

    @property
    def tasks(self):
        return self._state.tasks

    @property
    def threads(self):
        return self._state.threads

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def active(self) -> bool:
        """Credential present and the current view shows integration data."""
        return bool(self._session.credential) and self._view_active

    def set_view_active(self, active: bool) -> None:
        self._view_active = active

    def on_change(self, callback: Callable[[IntegrationState], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set(self, state: IntegrationState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _on_session_change(self, session: SessionState) -> None:
        context = (session.owner_key, session.credential)
        if context == self._context:
            return
        owner_changed = context[0] != self._context[0]
        self._context = context
        if owner_changed or not session.credential:
            self.reset()
            return

        # Same owner, renewed credential: keep what is shown, drop any refresh
        # still running with the old one
        self._generation += 1
        if self._state.loading:
            self._set(panel_state.abandon_refresh(self._state, self._resume_phase))

    def reset(self) -> None:
        """Drop everything shown and invalidate any refresh still in flight."""
        self._generation += 1
        self._set(panel_state.idle())

    def _is_current(self, generation: int, context: tuple) -> bool:
        return (
            generation == self._generation
            and context == (self._session.owner_key, self._session.credential)
        )

    async def refresh(self) -> IntegrationState:
        """User-triggered refresh. Ignored while one is already loading."""
        credential = self._session.credential
        if not credential:
            if self._state.phase is not IntegrationPhase.IDLE:
                self._set(panel_state.idle())
            return self._state
        if not self._view_active:
            logger.debug("Integration view not shown, skipping refresh")
            return self._state
        if self._state.loading:
            logger.debug("Refresh already in flight, ignoring")
            return self._state

        generation = self._generation
        context = (self._session.owner_key, credential)
        self._resume_phase = self._state.phase
        self._set(panel_state.begin_refresh(self._state))

        snapshot = None
        expired = False
        message = None
        try:
            snapshot = await self._fetcher.refresh(credential)
        except ExpiredCredential as e:
            logger.info(f"Integration credential rejected: {e.message}")
            expired = True
        except IntegrationError as e:
            logger.warning(f"Integration refresh failed: {e.message}")
            message = e.message
        except Exception as e:
            logger.exception("Unexpected integration failure")
            message = str(e) or e.__class__.__name__

        if not self._is_current(generation, context):
            logger.debug("Discarding stale integration result")
            return self._state

        if expired:
            self._set(panel_state.expire(self._state))
        elif message is not None:
            self._set(panel_state.fail(self._state, message))
        else:
            self._set(panel_state.complete(self._state, snapshot))
        return self._state

    async def reconnect(self) -> IntegrationState:
        """Re-run consent for the integration, then refresh with the new credential."""
        try:
            credential = await self._session.reconnect()
        except NotedashError as e:
            logger.warning(f"Reconnect failed: {e.message}")
            self._set(panel_state.fail(self._state, e.message))
            return self._state

        if not credential:
            return self._state
        return await self.refresh()

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()
