"""CLI package for opencode-sessions."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import TypeVar

import typer
from pydantic import ValidationError
from rich.markup import escape

from opencode_sessions.client import OpencodeClientError
from opencode_sessions.core.config import (
    DEFAULT_CONFIG_DIR,
    ConfigManager,
    ConfigurationError,
    SessionsConfig,
    project_config_path,
)
from opencode_sessions.server import ServerStartError
from opencode_sessions.service import OpencodeService
from opencode_sessions.session import OperationResult, SessionOpsError

from .console import (
    diffs_table,
    message_lines,
    session_details,
    sessions_table,
    status_table,
    themed_console,
    todos_table,
)

T = TypeVar("T")

app = typer.Typer(help="Manage OpenCode sessions", no_args_is_help=True)
config_app = typer.Typer(help="Show or change persisted settings", no_args_is_help=True)
app.add_typer(config_app, name="config")

CLI_CONSOLE = themed_console()

CLI_ERRORS = (SessionOpsError, OpencodeClientError, ServerStartError, ConfigurationError, ValidationError)


@dataclass(slots=True)
class CLIOptions:
    config_path: Path | None = None
    base_url: str | None = None
    workspace: Path | None = None


def styled_echo(message: str = "", *, nl: bool = True) -> None:
    """Print using the themed console."""
    CLI_CONSOLE.print(message, end="" if not nl else "\n")


def _configure_logging(verbose: bool, log_dir: Path | None) -> None:
    root_logger = logging.getLogger()
    if verbose:
        if not root_logger.handlers:
            logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        root_logger.setLevel(logging.DEBUG)
    else:
        if root_logger.handlers:
            root_logger.setLevel(logging.WARNING)
        else:
            logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if verbose and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "opencode-sessions.log", encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logging.getLogger().addHandler(handler)


def _config_manager(options: CLIOptions) -> ConfigManager:
    # An explicit --config file replaces the project-level layer.
    project_path = None if options.config_path else project_config_path()
    return ConfigManager(project_config_path=project_path, override_config_path=options.config_path)


def _load_config(options: CLIOptions) -> SessionsConfig:
    config = _config_manager(options).load()
    updates: dict[str, object] = {}
    if options.base_url:
        updates["base_url"] = options.base_url
    if options.workspace:
        updates["workspace_dir"] = str(options.workspace.expanduser())
    if updates:
        config = config.model_copy(update=updates)
    return config


def _build_service(config: SessionsConfig) -> OpencodeService:
    return OpencodeService(config)


async def _with_service(options: CLIOptions, action: Callable[[OpencodeService], Awaitable[T]]) -> T:
    config = _load_config(options)
    service = _build_service(config)
    try:
        await service.initialize(config.workspace_dir)
        return await action(service)
    finally:
        await service.close()


def _execute(ctx: typer.Context, action: Callable[[OpencodeService], Awaitable[T]]) -> T:
    options: CLIOptions = ctx.obj or CLIOptions()
    try:
        return asyncio.run(_with_service(options, action))
    except CLI_ERRORS as exc:
        styled_echo(f"[sessions.error]❌ {escape(str(exc))}[/]")
        raise typer.Exit(code=1)


def _report(result: OperationResult, message: str) -> None:
    if not result.success:
        styled_echo(f"[sessions.error]❌ {escape(result.error or '')}[/]")
        raise typer.Exit(code=1)
    styled_echo(f"[sessions.success]✅ {message}[/]")


def _require(value: T | None, what: str) -> T:
    if value is None:
        styled_echo(f"[sessions.warning]⚠️ Unable to fetch {what}. Run with --verbose for details.[/]")
        raise typer.Exit(code=1)
    return value


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),  # noqa: B008
    config: Path | None = typer.Option(None, "--config", help="Use an alternate config file and skip project overrides"),  # noqa: B008
    base_url: str | None = typer.Option(None, "--base-url", help="Connect to a running OpenCode server"),  # noqa: B008
    workspace: Path | None = typer.Option(None, "--workspace", help="Workspace directory sessions are scoped to"),  # noqa: B008
) -> None:
    """Manage OpenCode sessions."""
    _configure_logging(verbose, DEFAULT_CONFIG_DIR / "logs" if verbose else None)
    ctx.obj = CLIOptions(config_path=config, base_url=base_url, workspace=workspace)


@app.command()
def version() -> None:
    """Show CLI version."""
    try:
        pkg_version = metadata.version("opencode-sessions")
    except metadata.PackageNotFoundError:
        pkg_version = "0.0.0"
    styled_echo(f"opencode-sessions version {pkg_version}")


# ----------------------------------------------------------------------
# Session CRUD
# ----------------------------------------------------------------------
@app.command("list")
def list_command(ctx: typer.Context) -> None:
    """List sessions in the workspace."""
    sessions = _execute(ctx, lambda service: service.sessions.list_sessions())
    if not sessions:
        styled_echo("[sessions.muted]No sessions found.[/]")
        return
    CLI_CONSOLE.print(sessions_table(sessions))


@app.command()
def create(ctx: typer.Context) -> None:
    """Create a new session and print its id."""
    session_id = _execute(ctx, lambda service: service.create_session())
    styled_echo(f"[sessions.success]✅ Created session[/] [sessions.id]{session_id}[/]")


@app.command()
def show(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Show one session."""
    session = _execute(ctx, lambda service: service.switch_session(session_id))
    for line in session_details(session):
        styled_echo(line)


@app.command()
def messages(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Print the messages of a session."""
    history = _execute(ctx, lambda service: service.sessions.get_messages(session_id))
    if not history:
        styled_echo("[sessions.muted](no messages)[/]")
        return
    for line in message_lines(history):
        styled_echo(line)


@app.command()
def delete(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Delete a session."""
    result = _execute(ctx, lambda service: service.delete_session(session_id))
    _report(result, f"Deleted session {session_id}")


@app.command()
def rename(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    title: str = typer.Argument(..., help="New title"),  # noqa: B008
) -> None:
    """Change a session's title."""
    result = _execute(ctx, lambda service: service.update_session(session_id, title=title))
    _report(result, f"Renamed session {session_id}")


@app.command()
def abort(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Abort whatever a session is currently running."""
    _execute(ctx, lambda service: service.sessions.abort_session(session_id))
    styled_echo(f"[sessions.success]✅ Aborted session {session_id}[/]")


# ----------------------------------------------------------------------
# Snapshots
# ----------------------------------------------------------------------
@app.command()
def status(ctx: typer.Context) -> None:
    """Show idle/busy/retry status for every session."""
    statuses = _require(_execute(ctx, lambda service: service.sessions.get_session_status()), "session status")
    if not statuses:
        styled_echo("[sessions.muted]All sessions idle.[/]")
        return
    CLI_CONSOLE.print(status_table(statuses))


@app.command()
def todos(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Show the todo list of a session."""
    items = _require(_execute(ctx, lambda service: service.sessions.get_session_todos(session_id)), "todos")
    if not items:
        styled_echo("[sessions.muted]No todos.[/]")
        return
    CLI_CONSOLE.print(todos_table(items))


@app.command()
def diff(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    message_id: str | None = typer.Option(None, "--message", help="Only changes made by this message"),  # noqa: B008
) -> None:
    """Show files changed in a session."""
    diffs = _require(
        _execute(ctx, lambda service: service.sessions.get_session_diff(session_id, message_id)),
        "diff",
    )
    if not diffs:
        styled_echo("[sessions.muted]No changes.[/]")
        return
    CLI_CONSOLE.print(diffs_table(diffs))


@app.command()
def children(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """List sessions spawned from a session."""
    sessions = _require(
        _execute(ctx, lambda service: service.sessions.get_session_children(session_id)),
        "child sessions",
    )
    if not sessions:
        styled_echo("[sessions.muted]No child sessions.[/]")
        return
    CLI_CONSOLE.print(sessions_table(sessions, title="Child sessions"))


# ----------------------------------------------------------------------
# Commands and actions
# ----------------------------------------------------------------------
@app.command()
def init(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    provider: str | None = typer.Option(None, "--provider", help="Provider ID"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", help="Model ID"),  # noqa: B008
    message_id: str | None = typer.Option(None, "--message", help="Message ID"),  # noqa: B008
) -> None:
    """Analyze the workspace and write an AGENTS.md through a session."""
    result = _execute(
        ctx,
        lambda service: service.sessions.init_session(
            session_id, provider_id=provider, model_id=model, message_id=message_id
        ),
    )
    _report(result, f"Initialized session {session_id}")


@app.command("command")
def command_command(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    name: str = typer.Argument(..., help="Command name, e.g. review"),  # noqa: B008
    arguments: str | None = typer.Argument(None, help="Command arguments"),  # noqa: B008
    agent: str | None = typer.Option(None, "--agent", help="Agent to run the command"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", help="provider/model to use"),  # noqa: B008
) -> None:
    """Run a slash command in a session."""
    result = _execute(
        ctx,
        lambda service: service.sessions.execute_command(session_id, name, arguments, agent=agent, model=model),
    )
    _report(result, f"Command {name} sent to session {session_id}")


@app.command()
def shell(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    command: str = typer.Argument(..., help="Shell command line"),  # noqa: B008
    agent: str | None = typer.Option(None, "--agent", help="Agent to run the command"),  # noqa: B008
    provider: str | None = typer.Option(None, "--provider", help="Provider ID"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", help="Model ID"),  # noqa: B008
) -> None:
    """Run a shell command in a session."""
    result = _execute(
        ctx,
        lambda service: service.sessions.execute_shell(
            session_id, command, agent=agent, provider_id=provider, model_id=model
        ),
    )
    _report(result, f"Shell command sent to session {session_id}")


@app.command()
def summarize(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    provider: str | None = typer.Option(None, "--provider", help="Provider ID"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", help="Model ID"),  # noqa: B008
    auto: bool | None = typer.Option(None, "--auto/--no-auto", help="Mark the summary as automatic"),  # noqa: B008
) -> None:
    """Compact a session into a summary."""
    result = _execute(
        ctx,
        lambda service: service.sessions.summarize_session(
            session_id, provider_id=provider, model_id=model, auto=auto
        ),
    )
    _report(result, f"Summarized session {session_id}")


# ----------------------------------------------------------------------
# Sharing and history
# ----------------------------------------------------------------------
@app.command()
def share(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Share a session and print its public URL."""
    result = _execute(ctx, lambda service: service.sessions.share_session(session_id))
    _report(result, f"Shared session {session_id}")
    if result.share_url:
        styled_echo(f"🔗 {result.share_url}")


@app.command()
def unshare(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Stop sharing a session."""
    result = _execute(ctx, lambda service: service.sessions.unshare_session(session_id))
    _report(result, f"Unshared session {session_id}")


@app.command()
def revert(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    message_id: str = typer.Argument(..., help="Message to revert to"),  # noqa: B008
) -> None:
    """Revert a session to a message."""
    result = _execute(ctx, lambda service: service.sessions.revert_to_message(session_id, message_id))
    _report(result, f"Reverted session {session_id} to {message_id}")


@app.command()
def unrevert(ctx: typer.Context, session_id: str = typer.Argument(..., help="Session ID")) -> None:  # noqa: B008
    """Undo the last revert of a session."""
    result = _execute(ctx, lambda service: service.sessions.unrevert_session(session_id))
    _report(result, f"Restored reverted messages in session {session_id}")


@app.command()
def fork(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID"),  # noqa: B008
    message_id: str = typer.Argument(..., help="Message to fork at"),  # noqa: B008
) -> None:
    """Fork a session at a message into a new session."""
    result = _execute(ctx, lambda service: service.sessions.fork_session(session_id, message_id))
    styled_echo(f"[sessions.success]✅ Forked session[/] [sessions.id]{result.new_session_id}[/]")


# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------
@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the effective configuration."""
    options: CLIOptions = ctx.obj or CLIOptions()
    try:
        config = _load_config(options)
    except ConfigurationError as exc:
        styled_echo(f"[sessions.error]❌ {escape(str(exc))}[/]")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(config.model_dump(), indent=2))


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Setting name, e.g. base_url"),  # noqa: B008
    value: str = typer.Argument(..., help="New value"),  # noqa: B008
) -> None:
    """Persist a setting to the global config file."""
    options: CLIOptions = ctx.obj or CLIOptions()
    manager = _config_manager(options)
    try:
        manager.update_preferences(**{key: value})
    except ConfigurationError as exc:
        styled_echo(f"[sessions.error]❌ {escape(str(exc))}[/]")
        raise typer.Exit(code=1)
    styled_echo(f"[sessions.success]✅ Saved {key} to {manager.config_path}[/]")


def main() -> None:
    """Console script entrypoint."""
    app()


__all__ = ["app", "main", "CLIOptions"]
