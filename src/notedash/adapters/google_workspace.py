"""Google Calendar / Tasks / Gmail read-only API adapter."""

import asyncio
import logging
from datetime import datetime, timezone

from notedash.core.errors import IntegrationError, NotedashError, error_from_response
from notedash.core.external import CalendarEvent, EmailThread, ExternalItem

logger = logging.getLogger(__name__)


def _rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


class GoogleWorkspaceAdapter:
    """
    Reads calendar events, tasks and inbox messages with a bearer credential.

    Implements WorkspaceReader protocol. The credential is a bare access token
    from the sign-in flow: there is no refresh token, so an expired token comes
    back as a 401 and is surfaced as ExpiredCredential.
    """

    def __init__(self, timezone: str = "UTC"):
        self.timezone = timezone

    def _build_service(self, name: str, version: str, credential: str):
        """Build a Google API service authorized with the bearer credential."""
        from google.oauth2.credentials import Credentials
        from googleapiclient.discovery import build

        creds = Credentials(token=credential)
        return build(name, version, credentials=creds, cache_discovery=False)

    async def _execute(self, request) -> dict:
        """Run a prepared request off the event loop, translating failures."""
        from googleapiclient.errors import HttpError

        try:
            return await asyncio.to_thread(request.execute) or {}
        except HttpError as e:
            raise error_from_response(e.resp.status, e.content) from e
        except NotedashError:
            raise
        except Exception as e:
            raise IntegrationError(str(e) or e.__class__.__name__) from e

    async def list_events(
        self, credential: str, time_min: datetime, time_max: datetime, max_results: int
    ) -> list[CalendarEvent]:
        service = self._build_service("calendar", "v3", credential)
        result = await self._execute(
            service.events().list(
                calendarId="primary",
                timeMin=_rfc3339(time_min),
                timeMax=_rfc3339(time_max),
                maxResults=max_results,
                singleEvents=True,
                orderBy="startTime",
                timeZone=self.timezone,
            )
        )

        events = []
        for item in result.get("items", []):
            try:
                events.append(CalendarEvent.from_api(item))
            except ValueError as e:
                logger.warning(f"Skipping unparseable event {item.get('id')}: {e}")
        return events

    async def list_tasks(self, credential: str, max_results: int) -> list[ExternalItem]:
        service = self._build_service("tasks", "v1", credential)
        result = await self._execute(
            service.tasks().list(
                tasklist="@default",
                showCompleted=True,
                showHidden=True,
                maxResults=max_results,
            )
        )
        return [ExternalItem.from_api(item) for item in result.get("items", [])]

    async def list_threads(self, credential: str, max_results: int) -> list[EmailThread]:
        service = self._build_service("gmail", "v1", credential)
        listing = await self._execute(
            service.users().messages().list(userId="me", maxResults=max_results, q="label:inbox")
        )
        messages = listing.get("messages", []) or []

        details = await asyncio.gather(
            *(self._get_message(credential, msg["id"]) for msg in messages),
            return_exceptions=True,
        )

        threads = []
        for msg, detail in zip(messages, details):
            # One bad message should not empty the whole inbox panel
            if isinstance(detail, Exception):
                logger.warning(f"Skipping message {msg.get('id')}: {detail}")
                continue
            threads.append(EmailThread.from_api(detail))
        return threads

    async def _get_message(self, credential: str, message_id: str) -> dict:
        # httplib2 connections are not thread-safe; one service per concurrent fetch
        service = self._build_service("gmail", "v1", credential)
        return await self._execute(
            service.users().messages().get(
                userId="me",
                id=message_id,
                format="metadata",
                metadataHeaders=["Subject", "From"],
            )
        )
