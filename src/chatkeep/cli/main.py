"""chatkeep CLI - Main entry point."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from chatkeep.chat import MessageRole, SessionController
from chatkeep.config import configure_logging, get_settings
from chatkeep.storage import FileStorage

app = typer.Typer(
    name="chatkeep",
    help="Manage locally stored chat conversations",
    add_completion=False,
)
console = Console()


def open_session() -> SessionController:
    """Build and initialize a session over the configured storage file."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    session = SessionController.from_settings(
        FileStorage(settings.storage_path), settings
    )
    session.initialize()
    return session


def validate_message(text: str, max_length: int) -> str | None:
    """Return an error message if ``text`` cannot be sent, else None."""
    if not text.strip():
        return "Message cannot be empty."
    if len(text) > max_length:
        return f"Message must be at most {max_length} characters."
    return None


@app.command("list")
def list_conversations(
    json_output: bool = typer.Option(
        False,
        "--json", "-j",
        help="Output conversations as JSON",
    ),
):
    """List conversations, newest first."""
    session = open_session()
    summaries = session.summaries()

    if json_output:
        console.print_json(json.dumps({
            "active_id": session.active_id,
            "conversations": [s.model_dump() for s in summaries],
        }))
        return

    if not summaries:
        console.print("[dim]No previous chats yet.[/dim]")
        return

    table = Table(title="Chats")
    table.add_column("", width=1)
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    for summary in summaries:
        marker = "*" if summary.id == session.active_id else ""
        table.add_row(marker, summary.id, escape(summary.title))
    console.print(table)


@app.command()
def new():
    """Start a new conversation and make it active."""
    session = open_session()
    conversation_id = session.new_conversation()
    console.print(f"[green]Started conversation[/green] {conversation_id}")


@app.command("open")
def open_conversation(
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
):
    """Make a conversation active."""
    session = open_session()
    if not session.select_conversation(conversation_id):
        console.print(f"[red]Conversation not found:[/red] {conversation_id}")
        raise typer.Exit(1)
    console.print(f"[green]Active conversation:[/green] {conversation_id}")


@app.command()
def delete(
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
):
    """Delete a conversation."""
    session = open_session()
    if not session.delete_conversation(conversation_id):
        console.print(f"[red]Conversation not found:[/red] {conversation_id}")
        raise typer.Exit(1)
    console.print(f"[green]Deleted[/green] {conversation_id}")
    if session.active_id:
        console.print(f"[dim]Active conversation:[/dim] {session.active_id}")


@app.command()
def show():
    """Print the active conversation's transcript."""
    session = open_session()
    active = session.repository.active
    title = active.title if active else "No active conversation"
    durations = session.durations

    lines = []
    for message in session.messages:
        text = escape(message.text_content) if message.text_content else "[dim](no text)[/dim]"
        line = f"[bold]{message.role.value}[/bold]: {text}"
        if message.role == MessageRole.ASSISTANT and message.id in durations:
            line += f" [dim]({durations[message.id] / 1000:.1f}s)[/dim]"
        lines.append(line)

    console.print(Panel("\n".join(lines) or "[dim]Empty[/dim]", title=escape(title), border_style="blue"))


@app.command()
def send(
    text: str = typer.Argument(..., help="Message text"),
):
    """Append a user message to the active conversation."""
    settings = get_settings()
    error = validate_message(text, settings.max_message_length)
    if error:
        console.print(f"[red]{error}[/red]")
        raise typer.Exit(1)

    session = open_session()
    if not session.can_send:
        console.print(f"[yellow]Engine busy ({session.status.value})[/yellow]")
        raise typer.Exit(1)
    session.send(text)
    console.print(f"[green]Sent to[/green] {session.active_id}")


@app.command()
def duration(
    message_id: str = typer.Argument(..., help="Assistant message ID"),
    ms: float = typer.Argument(..., help="Generation time in milliseconds"),
):
    """Record how long an assistant message took to generate."""
    session = open_session()
    session.record_duration(message_id, ms)
    console.print(f"[green]Recorded[/green] {ms:.0f} ms for {message_id}")


@app.command()
def migrate():
    """Reconcile legacy single-chat storage with the conversation list."""
    session = open_session()
    result = session.bootstrap_result
    console.print(f"[bold]Outcome:[/bold] {result.outcome.value}")
    if result.active is not None:
        console.print(f"[dim]Active conversation:[/dim] {result.active.id} ({escape(result.active.title)})")


if __name__ == "__main__":
    app()
