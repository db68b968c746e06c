"""Tests for the command line interface."""

import json
import re
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from notedash.adapters import DevIdentityProvider, FileKeyValueStore
from notedash.board import BoardController
from notedash.cli import main
from notedash.config import Config
from notedash.core.errors import ExpiredCredential
from notedash.integration import IntegrationFetcher, IntegrationPanel
from notedash.preferences import LanguagePreference
from notedash.session import SessionState
from notedash.task_store import TaskStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli_storage(tmp_path):
    return FileKeyValueStore(tmp_path / "state.json")


@pytest.fixture(autouse=True)
def dev_controller(cli_storage, documents, reader, fixed_clock):
    """Every command gets a fresh controller over the same offline backends."""

    def factory(config):
        provider = DevIdentityProvider(credential="token-123", storage=cli_storage)
        session = SessionState(provider, cli_storage)
        panel = IntegrationPanel(IntegrationFetcher(reader, config, clock=fixed_clock), session)
        return BoardController(session, TaskStore(documents), panel, LanguagePreference(cli_storage))

    with patch("notedash.cli.build_controller", side_effect=factory), patch(
        "notedash.cli.load_config", return_value=Config(dev_mode=True)
    ):
        yield


def added_id(output: str) -> str:
    return re.search(r"Added task (\S+)\.", output).group(1)


class TestSession:
    def test_commands_require_login(self, runner):
        result = runner.invoke(main, ["board"])
        assert result.exit_code == 1
        assert "Not signed in" in result.output

    def test_login_and_logout(self, runner, cli_storage):
        result = runner.invoke(main, ["login"])
        assert result.exit_code == 0
        assert "Signed in as Dev Mode User." in result.output
        assert cli_storage.get("google_token") == "token-123"

        result = runner.invoke(main, ["logout"])
        assert result.exit_code == 0
        assert cli_storage.get("google_token") is None
        assert runner.invoke(main, ["board"]).exit_code == 1

    def test_agenda_needs_google(self, runner):
        runner.invoke(main, ["login", "--provider", "facebook"])

        result = runner.invoke(main, ["agenda"])

        assert result.exit_code == 1
        assert "No Google access" in result.output


class TestTasks:
    def test_add_then_board(self, runner):
        runner.invoke(main, ["login"])

        result = runner.invoke(main, ["add", "Write notes", "-p", "high"])
        assert result.exit_code == 0
        task_id = added_id(result.output)

        result = runner.invoke(main, ["board"])
        assert result.exit_code == 0
        assert "### To do (2)" in result.output
        assert f"[high] {task_id}  Write notes" in result.output
        assert "[ext ] e1  Buy milk" in result.output

    def test_board_json(self, runner):
        runner.invoke(main, ["login"])
        runner.invoke(main, ["add", "Write notes"])

        result = runner.invoke(main, ["board", "--json"])

        data = json.loads(result.output)
        assert set(data) == {"todo", "in_progress", "done"}
        assert [c["provenance"] for c in data["todo"]] == ["local", "external"]
        assert [c["mutable"] for c in data["todo"]] == [True, False]

    def test_local_only_skips_google(self, runner, reader):
        runner.invoke(main, ["login"])

        result = runner.invoke(main, ["board", "--local-only"])

        assert result.exit_code == 0
        assert "Buy milk" not in result.output
        assert reader.calls == []

    def test_advance_and_delete(self, runner, documents):
        runner.invoke(main, ["login"])
        task_id = added_id(runner.invoke(main, ["add", "Write notes"]).output)

        result = runner.invoke(main, ["advance", task_id])
        assert result.exit_code == 0
        assert f"Moved {task_id} to In progress." in result.output
        assert documents.records("tasks")[0]["status"] == "in_progress"

        result = runner.invoke(main, ["delete", task_id])
        assert result.exit_code == 0
        assert documents.records("tasks") == []

    def test_advance_unknown_fails(self, runner):
        runner.invoke(main, ["login"])

        result = runner.invoke(main, ["advance", "ghost"])

        assert result.exit_code == 1
        assert "Task not found: ghost" in result.output

    def test_delete_unknown_reports_not_found(self, runner, documents):
        runner.invoke(main, ["login"])
        runner.invoke(main, ["add", "Keep me"])

        result = runner.invoke(main, ["delete", "ghost"])

        assert result.exit_code == 1
        assert "Task not found: ghost" in result.output
        assert "Deleted" not in result.output
        assert len(documents.records("tasks")) == 1

    def test_delete_google_task_id_reports_not_found(self, runner):
        runner.invoke(main, ["login"])

        result = runner.invoke(main, ["delete", "e1"])

        assert result.exit_code == 1
        assert "Task not found: e1" in result.output

    def test_blank_title_rejected(self, runner):
        runner.invoke(main, ["login"])

        result = runner.invoke(main, ["add", "  "])

        assert result.exit_code == 1
        assert "must not be blank" in result.output


class TestIntegration:
    def test_agenda_lists_events_and_mail(self, runner):
        runner.invoke(main, ["login"])

        result = runner.invoke(main, ["agenda"])

        assert result.exit_code == 0
        assert "Standup" in result.output
        assert "Hello (a@example.com)" in result.output

    def test_expired_credential_notice(self, runner, reader):
        runner.invoke(main, ["login"])
        reader.events_error = ExpiredCredential("invalid_token", 401)

        result = runner.invoke(main, ["board"])

        assert result.exit_code == 0
        assert "notedash reconnect" in result.output

    def test_reconnect(self, runner, reader):
        runner.invoke(main, ["login"])

        result = runner.invoke(main, ["reconnect"])

        assert result.exit_code == 0
        assert "Reconnected." in result.output


class TestLanguage:
    def test_show_and_set(self, runner):
        assert runner.invoke(main, ["lang"]).output.strip() == "es"

        result = runner.invoke(main, ["lang", "en"])
        assert result.output.strip() == "en"
        assert runner.invoke(main, ["lang"]).output.strip() == "en"

    def test_unsupported_language(self, runner):
        result = runner.invoke(main, ["lang", "fr"])

        assert result.exit_code == 1
        assert "Unsupported language" in result.output
