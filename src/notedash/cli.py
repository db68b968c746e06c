"""notedash CLI - terminal board for notes, tasks and calendar."""

import asyncio
import json
import logging
import sys

import click

from .board import BoardController, BoardView, build_controller
from .core.fusion import Board, Provenance
from .core.integration import IntegrationPhase
from .core.session import AuthProvider
from .core.tasks import Priority, TaskInput, TaskStatus
from .config import load_config

SNAPSHOT_TIMEOUT = 10.0

COLUMN_TITLES = {
    TaskStatus.TODO: "To do",
    TaskStatus.IN_PROGRESS: "In progress",
    TaskStatus.DONE: "Done",
}


def _run(action, view: BoardView = BoardView.DASHBOARD, start: bool = True):
    """Build a controller, run one async action against it, and tear it down."""
    config = load_config()

    async def runner():
        controller = build_controller(config)
        controller.select_view(view)
        try:
            if start:
                await controller.start(wait=SNAPSHOT_TIMEOUT)
            return await action(controller)
        finally:
            controller.close()

    try:
        return asyncio.run(runner())
    except asyncio.TimeoutError:
        click.echo("Error: timed out waiting for tasks to load.", err=True)
        sys.exit(1)


def _require_identity(controller: BoardController) -> None:
    if controller.identity is None:
        click.echo("Not signed in. Run 'notedash login' first.", err=True)
        sys.exit(1)


def _fail_on_error(controller: BoardController) -> None:
    if controller.error:
        click.echo(f"Error: {controller.error}", err=True)
        sys.exit(1)


def _integration_notice(controller: BoardController) -> str | None:
    state = controller.integration
    if state.phase is IntegrationPhase.EXPIRED:
        return "Google session expired. Run 'notedash reconnect'."
    if state.phase is IntegrationPhase.FAILED:
        return f"Google data unavailable: {state.error}"
    return None


def _show_board(board: Board, as_json: bool) -> None:
    if as_json:
        click.echo(
            json.dumps(
                {
                    status.value: [
                        {
                            "id": card.id,
                            "title": card.title,
                            "description": card.description,
                            "priority": card.priority.value,
                            "provenance": card.provenance.value,
                            "mutable": card.is_mutable,
                        }
                        for card in board.bucket(status)
                    ]
                    for status in TaskStatus
                },
                indent=2,
            )
        )
        return

    for i, status in enumerate(TaskStatus):
        cards = board.bucket(status)
        if i:
            click.echo()
        click.echo(f"### {COLUMN_TITLES[status]} ({len(cards)})")
        if not cards:
            click.echo("  (empty)")
        for card in cards:
            marker = "ext" if card.provenance is Provenance.EXTERNAL else card.priority.value
            click.echo(f"  [{marker:4}] {card.id}  {card.title}")


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """notedash - notes, tasks and calendar in one board."""
    config = load_config()
    level = logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
    )


@main.command()
@click.option(
    "--provider",
    type=click.Choice([p.value for p in AuthProvider]),
    default=AuthProvider.GOOGLE.value,
    show_default=True,
)
def login(provider: str):
    """Sign in (Google also grants calendar, task and mail read access)."""

    async def action(controller: BoardController):
        identity = await controller.sign_in(AuthProvider(provider))
        _fail_on_error(controller)
        return identity

    identity = _run(action)
    if identity is None:
        click.echo("Sign-in cancelled.")
        return
    click.echo(f"Signed in as {identity.display_name}.")


@main.command()
def logout():
    """Sign out and forget the Google credential."""

    async def action(controller: BoardController):
        await controller.sign_out()

    _run(action)
    click.echo("Signed out.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--local-only", is_flag=True, help="Skip Google Tasks")
def board(as_json: bool, local_only: bool):
    """Show the task board."""

    async def action(controller: BoardController):
        _require_identity(controller)
        if not local_only:
            await controller.refresh_integration()
        return controller.columns(), _integration_notice(controller)

    view = BoardView.NOTES if local_only else BoardView.BOARD
    columns, notice = _run(action, view)
    _show_board(columns, as_json)
    if notice and not as_json:
        click.echo(f"\n{notice}", err=True)


@main.command()
@click.argument("title")
@click.option("--description", "-d", default="", help="Task details")
@click.option(
    "--priority",
    "-p",
    type=click.Choice([p.value for p in Priority]),
    default=Priority.MED.value,
    show_default=True,
)
@click.option(
    "--status",
    "-s",
    type=click.Choice([s.value for s in TaskStatus]),
    default=TaskStatus.TODO.value,
    show_default=True,
)
@click.option("--area", "-a", default=None, help="Area label, e.g. Work or Personal")
def add(title: str, description: str, priority: str, status: str, area: str | None):
    """Add a task."""

    async def action(controller: BoardController):
        _require_identity(controller)
        task_id = await controller.add_task(
            TaskInput(
                title=title,
                description=description,
                status=TaskStatus(status),
                priority=Priority(priority),
                area=area,
            )
        )
        _fail_on_error(controller)
        return task_id

    task_id = _run(action, BoardView.NOTES)
    click.echo(f"Added task {task_id}.")


@main.command()
@click.argument("task_id")
def advance(task_id: str):
    """Move a task to its next column."""

    async def action(controller: BoardController):
        _require_identity(controller)
        task = controller.task_store.get(task_id)
        await controller.advance(task_id)
        _fail_on_error(controller)
        return task.status.next() if task else None

    new_status = _run(action, BoardView.NOTES)
    if new_status is not None:
        click.echo(f"Moved {task_id} to {COLUMN_TITLES[new_status]}.")


@main.command()
@click.argument("task_id")
def delete(task_id: str):
    """Delete a task."""

    async def action(controller: BoardController):
        _require_identity(controller)
        if controller.task_store.get(task_id) is None:
            click.echo(f"Error: Task not found: {task_id}", err=True)
            sys.exit(1)
        await controller.delete(task_id)
        _fail_on_error(controller)

    _run(action, BoardView.NOTES)
    click.echo(f"Deleted {task_id}.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def agenda(as_json: bool):
    """Show upcoming events and recent mail."""

    async def action(controller: BoardController):
        _require_identity(controller)
        if not controller.session.credential:
            click.echo("No Google access. Sign in with 'notedash login --provider google'.", err=True)
            sys.exit(1)
        await controller.refresh_integration()
        return controller.integration, _integration_notice(controller)

    state, notice = _run(action, BoardView.CALENDAR)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "status": state.phase.value,
                    "error": state.error,
                    "events": [
                        {
                            "id": e.id,
                            "summary": e.summary,
                            "start": e.start.isoformat() if e.start else None,
                            "all_day": e.all_day,
                        }
                        for e in state.events
                    ],
                    "mail": [
                        {"id": t.id, "subject": t.subject, "from": t.sender, "snippet": t.snippet}
                        for t in state.threads
                    ],
                },
                indent=2,
            )
        )
        return

    if notice:
        click.echo(notice, err=True)

    click.echo("### Upcoming")
    if not state.events:
        click.echo("  No events.")
    current_date = None
    for event in state.events:
        event_date = event.start.date() if event.start else None
        if event_date != current_date and event_date is not None:
            click.echo(f"  {event_date.strftime('%A, %B %d')}")
            current_date = event_date
        click.echo(f"    {event.format_time():8} {event.summary}")

    click.echo("\n### Inbox")
    if not state.threads:
        click.echo("  No messages.")
    for thread in state.threads:
        click.echo(f"  • {thread.subject} ({thread.sender})")


@main.command()
def reconnect():
    """Renew Google access after the session expired."""

    async def action(controller: BoardController):
        _require_identity(controller)
        return await controller.reconnect()

    state = _run(action, BoardView.CALENDAR)
    match state.phase:
        case IntegrationPhase.READY:
            click.echo("Reconnected.")
        case IntegrationPhase.EXPIRED:
            click.echo("Still disconnected.", err=True)
            sys.exit(1)
        case IntegrationPhase.FAILED:
            click.echo(f"Error: {state.error}", err=True)
            sys.exit(1)
        case _:
            click.echo("Reconnect cancelled.")


@main.command()
@click.argument("code", required=False)
def lang(code: str | None):
    """Show or set the interface language."""

    async def action(controller: BoardController):
        if code:
            controller.language.set(code)
        return controller.language.language

    try:
        current = _run(action, start=False)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(current)


if __name__ == "__main__":
    main()
