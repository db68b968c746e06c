"""Tests for the integration fetcher and panel."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from notedash.config import Config
from notedash.core.errors import ExpiredCredential, IntegrationError
from notedash.core.external import ExternalItem
from notedash.core.integration import IntegrationPhase
from notedash.core.session import AuthProvider
from notedash.integration import IntegrationFetcher


def signed_in(session):
    asyncio.run(session.sign_in(AuthProvider.GOOGLE))
    return session


class TestFetcherWindow:
    def test_window_starts_at_midnight(self, fetcher):
        start, end = fetcher.window()
        assert start == datetime(2025, 1, 15, 0, 0, tzinfo=timezone.utc)
        assert end - start == timedelta(days=7)

    def test_window_days_from_config(self, reader, fixed_clock):
        fetcher = IntegrationFetcher(reader, Config(calendar_window_days=3), clock=fixed_clock)
        start, end = fetcher.window()
        assert end - start == timedelta(days=3)


class TestFetcherRefresh:
    def test_reads_all_three_with_limits(self, fetcher, reader):
        snapshot = asyncio.run(fetcher.refresh("token-123"))

        assert [e.id for e in snapshot.events] == ["ev1"]
        assert [t.id for t in snapshot.tasks] == ["e1"]
        assert [t.id for t in snapshot.threads] == ["m1"]

        calls = {call[0]: call for call in reader.calls}
        assert calls["events"][1] == "token-123"
        assert calls["events"][4] == 20
        assert calls["tasks"][2] == 50
        assert calls["threads"][2] == 5

    def test_failed_branch_degrades_to_empty(self, fetcher, reader):
        reader.tasks_error = IntegrationError("Backend Error", 500)
        reader.threads_error = RuntimeError("boom")

        snapshot = asyncio.run(fetcher.refresh("token-123"))

        assert [e.id for e in snapshot.events] == ["ev1"]
        assert snapshot.tasks == []
        assert snapshot.threads == []
        assert snapshot.tasks_error == "Backend Error"
        assert snapshot.events_error is None

    def test_calendar_failure_reported_without_losing_tasks(self, fetcher, reader):
        reader.events_error = IntegrationError("Backend Error", 503)

        snapshot = asyncio.run(fetcher.refresh("token-123"))

        assert snapshot.events == []
        assert snapshot.error == "Backend Error"
        assert [t.id for t in snapshot.tasks] == ["e1"]

    def test_both_primary_reads_failing_raises(self, fetcher, reader):
        reader.events_error = IntegrationError("Backend Error", 500)
        reader.tasks_error = IntegrationError("Service Unavailable", 503)

        with pytest.raises(IntegrationError, match="Backend Error"):
            asyncio.run(fetcher.refresh("token-123"))
        assert len(reader.calls) == 3

    def test_mail_failure_is_silent(self, fetcher, reader):
        reader.threads_error = IntegrationError("Backend Error", 500)

        snapshot = asyncio.run(fetcher.refresh("token-123"))

        assert snapshot.threads == []
        assert snapshot.error is None

    def test_expired_calendar_credential_raises(self, fetcher, reader):
        reader.events_error = ExpiredCredential("invalid_token", 401)

        with pytest.raises(ExpiredCredential):
            asyncio.run(fetcher.refresh("token-123"))
        assert len(reader.calls) == 3

    def test_expired_on_tasks_only_is_not_a_reconnect(self, fetcher, reader):
        reader.tasks_error = ExpiredCredential("invalid_token", 401)

        snapshot = asyncio.run(fetcher.refresh("token-123"))

        assert snapshot.tasks == []
        assert snapshot.tasks_error == "invalid_token"
        assert [e.id for e in snapshot.events] == ["ev1"]


class TestPanelRefresh:
    def test_idle_without_credential(self, panel, reader):
        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.IDLE
        assert reader.calls == []

    def test_ready_after_refresh(self, panel, session):
        signed_in(session)

        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.READY
        assert [t.id for t in panel.tasks] == ["e1"]
        assert panel.error is None

    def test_expired_keeps_previous_data(self, panel, session, reader):
        signed_in(session)
        asyncio.run(panel.refresh())
        reader.events_error = ExpiredCredential("Token has been expired or revoked.", 401)
        reader.tasks = [ExternalItem(id="e9", title="Newer")]

        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.EXPIRED
        assert state.needs_reconnect
        assert [t.id for t in state.tasks] == ["e1"]
        assert [e.id for e in state.events] == ["ev1"]
        assert state.error

    def test_unexpected_failure_is_failed(self, panel, session, monkeypatch):
        signed_in(session)

        async def explode(credential):
            raise RuntimeError("socket closed")

        monkeypatch.setattr(panel._fetcher, "refresh", explode)
        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.FAILED
        assert state.error == "socket closed"

    def test_total_failure_is_failed_and_keeps_data(self, panel, session, reader):
        signed_in(session)
        asyncio.run(panel.refresh())
        reader.events_error = IntegrationError("Backend Error", 500)
        reader.tasks_error = IntegrationError("Backend Error", 500)
        reader.threads_error = IntegrationError("Backend Error", 500)

        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.FAILED
        assert state.error == "Backend Error"
        assert not state.loading
        assert [e.id for e in state.events] == ["ev1"]
        assert [t.id for t in state.tasks] == ["e1"]

    def test_calendar_failure_is_failed_with_fresh_tasks(self, panel, session, reader):
        signed_in(session)
        asyncio.run(panel.refresh())
        reader.events_error = IntegrationError("Backend Error", 503)
        reader.tasks = [ExternalItem(id="e9", title="Newer")]

        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.FAILED
        assert state.error == "Backend Error"
        assert [e.id for e in state.events] == ["ev1"]
        assert [t.id for t in state.tasks] == ["e9"]

    def test_retry_after_failure_recovers(self, panel, session, reader):
        signed_in(session)
        reader.events_error = IntegrationError("Backend Error", 503)
        asyncio.run(panel.refresh())
        assert panel.phase is IntegrationPhase.FAILED

        reader.events_error = None
        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.READY
        assert state.error is None

    def test_refresh_ignored_while_loading(self, panel, session, reader):
        signed_in(session)

        async def scenario():
            reader.gate = asyncio.Event()
            first = asyncio.create_task(panel.refresh())
            await asyncio.sleep(0)
            assert panel.loading
            second = await panel.refresh()
            assert second.phase is IntegrationPhase.LOADING
            reader.gate.set()
            return await first

        state = asyncio.run(scenario())
        assert state.phase is IntegrationPhase.READY
        assert len(reader.calls) == 3

    def test_result_discarded_after_sign_out(self, panel, session, reader):
        signed_in(session)

        async def scenario():
            reader.gate = asyncio.Event()
            pending = asyncio.create_task(panel.refresh())
            await asyncio.sleep(0)
            await session.sign_out()
            reader.gate.set()
            return await pending

        state = asyncio.run(scenario())
        assert state.phase is IntegrationPhase.IDLE
        assert panel.tasks == []
        assert panel.events == []

    def test_inactive_view_skips_fetch(self, panel, session, reader):
        signed_in(session)
        panel.set_view_active(False)

        state = asyncio.run(panel.refresh())

        assert state.phase is IntegrationPhase.IDLE
        assert reader.calls == []
        assert not panel.active

    def test_sign_out_resets_to_idle(self, panel, session):
        signed_in(session)
        asyncio.run(panel.refresh())

        asyncio.run(session.sign_out())

        assert panel.phase is IntegrationPhase.IDLE
        assert panel.tasks == []

    def test_listeners_see_loading_then_ready(self, panel, session):
        signed_in(session)
        phases = []
        panel.on_change(lambda state: phases.append(state.phase))

        asyncio.run(panel.refresh())

        assert phases == [IntegrationPhase.LOADING, IntegrationPhase.READY]


class TestPanelReconnect:
    def test_reconnect_refreshes_with_new_credential(self, panel, session, provider, reader):
        signed_in(session)
        reader.events_error = ExpiredCredential("invalid_token", 401)
        asyncio.run(panel.refresh())
        assert panel.phase is IntegrationPhase.EXPIRED

        reader.events_error = None
        provider.credential = "token-456"
        state = asyncio.run(panel.reconnect())

        assert state.phase is IntegrationPhase.READY
        assert reader.calls[-1][1] == "token-456"

    def test_reconnect_keeps_data_until_refreshed(self, panel, session, provider, reader):
        signed_in(session)
        asyncio.run(panel.refresh())
        reader.events_error = ExpiredCredential("invalid_token", 401)
        asyncio.run(panel.refresh())
        seen = []
        panel.on_change(lambda state: seen.append((state.phase, [e.id for e in state.events])))

        reader.events_error = None
        reader.events = []
        provider.credential = "token-456"
        asyncio.run(panel.reconnect())

        assert seen == [(IntegrationPhase.LOADING, ["ev1"]), (IntegrationPhase.READY, [])]

    def test_renewed_credential_abandons_old_refresh(self, panel, session, provider, reader):
        signed_in(session)
        asyncio.run(panel.refresh())

        async def scenario():
            reader.gate = asyncio.Event()
            pending = asyncio.create_task(panel.refresh())
            await asyncio.sleep(0)
            assert panel.loading
            provider.credential = "token-456"
            await session.reconnect()
            assert panel.phase is IntegrationPhase.READY
            reader.gate.set()
            await pending
            return await panel.refresh()

        state = asyncio.run(scenario())
        assert state.phase is IntegrationPhase.READY
        assert reader.calls[-1][1] == "token-456"
        assert [t.id for t in state.tasks] == ["e1"]

    def test_reconnect_cancelled_keeps_state(self, panel, session, provider, reader):
        signed_in(session)
        reader.events_error = ExpiredCredential("invalid_token", 401)
        asyncio.run(panel.refresh())
        provider.cancel_next = True

        state = asyncio.run(panel.reconnect())

        assert state.phase is IntegrationPhase.EXPIRED

    def test_reconnect_provider_failure_is_failed(self, panel, session, provider):
        signed_in(session)
        provider.fail_next = RuntimeError("consent screen unavailable")

        state = asyncio.run(panel.reconnect())

        assert state.phase is IntegrationPhase.FAILED
        assert "consent screen unavailable" in state.error
