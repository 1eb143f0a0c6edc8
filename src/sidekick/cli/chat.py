"""sidekick chat — interactive question loop over one project.

Commands inside the loop:
  /clear   start over with the welcome message
  /exit    leave (also: Ctrl-D, Ctrl-C)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from sidekick.cli.ask import build_pipeline, print_answer
from sidekick.cli.common import console, load_cfg, open_db, resolve_db
from sidekick.session import ChatSession


def chat_cmd(
    project: Annotated[str, typer.Option("--project", "-p", help="Project id to chat about.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .sidekick.db (default: from config)."),
    ] = None,
) -> None:
    """Start an interactive chat about a project. History is not saved."""
    cfg = load_cfg()
    conn = open_db(resolve_db(db, cfg))
    try:
        session = ChatSession(project, build_pipeline(conn, project, cfg))
        console.print(f"[bold]{session.turns[0].text}[/]")
        console.print("[dim]/clear to start over, /exit to quit.[/]\n")
        _loop(session)
    finally:
        conn.close()


def _loop(session: ChatSession) -> None:
    while True:
        try:
            line = typer.prompt("you", prompt_suffix=" > ").strip()
        except (EOFError, KeyboardInterrupt, typer.Abort):
            console.print()
            return

        if not line:
            continue
        if line == "/exit":
            return
        if line == "/clear":
            session.clear()
            console.print(f"[dim]Conversation cleared.[/]\n[bold]{session.turns[0].text}[/]")
            continue

        with console.status("Thinking…"):
            reply = session.ask(line)
        print_answer(reply.text, reply.citations)
        console.print()
