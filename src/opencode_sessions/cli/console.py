"""Rich console styling and renderers for session records."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from opencode_sessions.session import FileDiff, Session, SessionMessage, SessionStatus, Todo

SESSIONS_THEME = Theme(
    {
        "sessions.header": "bold #38BDF8",
        "sessions.id": "#A855F7",
        "sessions.muted": "#94A3B8",
        "sessions.success": "bold #14F195",
        "sessions.warning": "bold #FBBF24",
        "sessions.error": "bold #FB7185",
        "sessions.status.idle": "#14F195",
        "sessions.status.busy": "#FBBF24",
        "sessions.status.retry": "#FB7185",
        "sessions.diff.add": "#14F195",
        "sessions.diff.del": "#FB7185",
    }
)


def themed_console(**kwargs: object) -> Console:
    """Return a Console configured with the sessions theme."""
    return Console(theme=SESSIONS_THEME, **kwargs)


def format_timestamp(value: int | None) -> str:
    if value is None:
        return "-"
    return datetime.fromtimestamp(value / 1000, UTC).strftime("%Y-%m-%d %H:%M")


def sessions_table(sessions: Iterable[Session], *, title: str = "Sessions") -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD, header_style="sessions.header")
    table.add_column("ID", style="sessions.id", no_wrap=True)
    table.add_column("Title")
    table.add_column("Updated", style="sessions.muted", no_wrap=True)
    table.add_column("Directory", style="sessions.muted")
    for session in sessions:
        updated = session.time.updated if session.time else None
        table.add_row(
            session.id,
            escape(session.title or "(untitled)"),
            format_timestamp(updated),
            escape(session.directory or "-"),
        )
    return table


def session_details(session: Session) -> list[str]:
    created = session.time.created if session.time else None
    updated = session.time.updated if session.time else None
    return [
        f"[sessions.header]Session[/] [sessions.id]{session.id}[/]",
        f"Title: {escape(session.title or '(untitled)')}",
        f"Project: {escape(session.project_id or '-')}",
        f"Directory: {escape(session.directory or '-')}",
        f"Created: {format_timestamp(created)}",
        f"Updated: {format_timestamp(updated)}",
    ]


def status_table(statuses: Mapping[str, SessionStatus]) -> Table:
    table = Table(title="Session status", box=box.SIMPLE_HEAD, header_style="sessions.header")
    table.add_column("Session", style="sessions.id", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Attempt", justify="right")
    table.add_column("Message")
    for session_id, status in sorted(statuses.items()):
        table.add_row(
            session_id,
            f"[sessions.status.{status.type}]{status.type}[/]",
            str(status.attempt) if status.attempt is not None else "",
            escape(status.message or ""),
        )
    return table


def todos_table(todos: Iterable[Todo]) -> Table:
    table = Table(title="Todos", box=box.SIMPLE_HEAD, header_style="sessions.header")
    table.add_column("Status", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Content")
    for todo in todos:
        table.add_row(escape(todo.status), escape(todo.priority), escape(todo.content))
    return table


def diffs_table(diffs: Iterable[FileDiff]) -> Table:
    table = Table(title="Changed files", box=box.SIMPLE_HEAD, header_style="sessions.header")
    table.add_column("File")
    table.add_column("+", justify="right", style="sessions.diff.add")
    table.add_column("-", justify="right", style="sessions.diff.del")
    for diff in diffs:
        table.add_row(escape(diff.file), str(diff.additions), str(diff.deletions))
    return table


def _message_text(parts: list[Any]) -> str:
    chunks: list[str] = []
    for part in parts:
        if isinstance(part, dict) and part.get("type") == "text":
            text = part.get("text")
            if isinstance(text, str) and text.strip():
                chunks.append(text.strip())
    return "\n".join(chunks)


def message_lines(messages: Iterable[SessionMessage]) -> list[str]:
    lines: list[str] = []
    for message in messages:
        role = str(message.info.get("role", "?"))
        text = _message_text(message.parts)
        if not text:
            text = f"({len(message.parts)} parts)"
        lines.append(f"[sessions.header]\\[{escape(role)}][/] {escape(text)}")
    return lines


__all__ = [
    "SESSIONS_THEME",
    "themed_console",
    "format_timestamp",
    "sessions_table",
    "session_details",
    "status_table",
    "todos_table",
    "diffs_table",
    "message_lines",
]
