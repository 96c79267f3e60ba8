"""CLI commands for agent-deck."""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from agent_deck import __version__

app = typer.Typer(
    name="agent_deck",
    help="agent-deck - normalized chat state for CLI coding agents",
    no_args_is_help=True,
)
console = Console()

_ROLE_STYLES = {
    "user": "cyan",
    "assistant": "green",
    "system": "red",
}


def version_callback(value: bool) -> None:
    if value:
        console.print(f"agent-deck v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option(
        "",
        "--log-level",
        help="Log level for stderr output (defaults to config logging.level).",
    ),
    config_path: Path = typer.Option(
        None,
        "--config",
        help="Path to config.json (default ~/.agent-deck/config.json).",
    ),
) -> None:
    """agent-deck entrypoint."""
    del version
    from agent_deck.config.loader import load_config

    config = load_config(config_path)
    logger.remove()
    logger.add(sys.stderr, level=(log_level or config.logging.level).upper())
    ctx.obj = config


@app.command()
def replay(
    ctx: typer.Context,
    transcript: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSONL transcript"),
    session: str = typer.Option("", "--session", "-s", help="Only replay this session id"),
) -> None:
    """Replay a recorded adapter transcript and print the resulting chat."""
    from agent_deck.cli.replay import read_transcript, replay_records

    config = ctx.obj
    records = read_transcript(transcript)
    result = asyncio.run(
        replay_records(records, only_session=session or None, config=config.engine if config else None)
    )
    if not result.session_ids:
        console.print("[yellow]No matching records.[/yellow]")
        raise typer.Exit(1)

    engine = result.engine
    for session_id in result.session_ids:
        table = Table(title=f"Session {session_id}", show_lines=True)
        table.add_column("Role")
        table.add_column("Type")
        table.add_column("Content", overflow="fold")
        for message in engine.messages(session_id):
            style = _ROLE_STYLES.get(message.role.value, "")
            table.add_row(
                f"[{style}]{message.role.value}[/{style}]" if style else message.role.value,
                message.message_type.value,
                Text(message.content),
            )
        console.print(table)

        state = "busy" if engine.is_session_busy(session_id) else "idle"
        status = engine.live_status(session_id) or "-"
        console.print(f"  state: [bold]{state}[/bold]  status: {escape(status)}  queued: {engine.queued_count(session_id)}")
        started = engine.turn_started_at(session_id)
        if started is not None:
            console.print(f"  turn started: {datetime.fromtimestamp(started).isoformat(timespec='seconds')}")
        usage = engine.context_usage(session_id)
        if usage is not None:
            console.print(f"  context: {usage.format_status()}")
        native = engine.native_session_id(session_id)
        if native:
            console.print(f"  provider session: [dim]{escape(native)}[/dim]")
        name = engine.session_name(session_id)
        if name:
            console.print(f"  name: {escape(name)}")

    console.print(f"\n[dim]{len(result.adapter.submitted)} submission(s) sent, {result.skipped} record(s) skipped[/dim]")


@app.command("classify")
def classify_payload(
    provider: str = typer.Argument(..., help="Provider tag (codex|claude|gemini)"),
    payload: str = typer.Argument("-", help="JSON payload, or '-' to read stdin"),
) -> None:
    """Show how one raw provider payload is normalized."""
    from agent_deck.providers.classifier import classify
    from agent_deck.providers.registry import get_provider_def

    try:
        get_provider_def(provider)
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2)

    raw = sys.stdin.read() if payload == "-" else payload
    try:
        data = json.loads(raw)
    except ValueError as exc:
        console.print(f"[red]Invalid JSON: {escape(str(exc))}[/red]")
        raise typer.Exit(2)

    result = classify(provider, data)
    console.print_json(
        data={
            "updates": [
                {
                    "role": u.role.value,
                    "messageType": u.message_type.value,
                    "content": u.content,
                    "mode": u.mode.value,
                }
                for u in result.updates
            ],
            "liveStatus": result.live_status,
            "statusSet": result.status_set,
            "turnEnded": result.turn_ended,
            "contextUsage": (
                {
                    "usedTokens": result.context_usage.used_tokens,
                    "maxTokens": result.context_usage.max_tokens,
                    "usagePercent": result.context_usage.usage_percent,
                }
                if result.context_usage
                else None
            ),
            "nativeSessionId": result.native_session_id,
            "sessionName": result.session_name,
        }
    )


if __name__ == "__main__":
    app()
