from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from llm_chat.infrastructure.data_models import (
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    SessionSummary,
    StoredMessage,
)

ROLE_STYLES = {
    ROLE_ASSISTANT: "bold green",
    ROLE_SYSTEM: "bold yellow",
}
SPINNER = "dots"


def pretty_datetime(value: datetime, fmt: str = "%a %d %b %Y, %H:%M") -> str:
    """
    Format a stored timestamp in the local timezone.

    Naive values are UTC (SQLite drops the offset on the way back).

    Args:
        value: The timestamp to format.
        fmt: strftime format for output (default 'Mon 13 Oct 2025, 01:00').
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime(fmt)


def render_message(message: StoredMessage, console: Console) -> None:
    style = ROLE_STYLES.get(message.role, "bold cyan")
    console.print(f"[{style}]{message.role}[/] [dim]@ {pretty_datetime(message.created_at)}[/]")
    console.print(Markdown(message.content))
    console.print()


def render_history(messages: Iterable[StoredMessage], console: Console) -> None:
    for message in messages:
        render_message(message, console)


def render_sessions(sessions: Iterable[SessionSummary], console: Console) -> None:
    table = Table(show_edge=False)
    table.add_column("", width=1)
    table.add_column("Session", style="bold")
    table.add_column("Messages", justify="right")
    table.add_column("Hint", overflow="fold")

    for session in sessions:
        table.add_row(
            "*" if session.active else "",
            session.name,
            str(session.message_count),
            session.hint,
        )
    console.print(table)


@contextmanager
def progress(console: Console, text: str = "Querying GPT") -> Iterator[None]:
    """Show a spinner while the block runs. Purely cosmetic."""
    with console.status(text, spinner=SPINNER):
        yield


@contextmanager
def no_progress() -> Iterator[None]:
    yield
