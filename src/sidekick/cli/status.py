"""sidekick status — database and knowledge index overview."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from sidekick.cli.common import console, load_cfg, open_db, resolve_db
from sidekick.cli.errors import err_project_not_found
from sidekick.config import SidekickConfig
from sidekick.db.chunks import ChunkStore
from sidekick.db.migrations import current_version
from sidekick.db.records import RecordStore


def status_cmd(
    project: Annotated[
        str | None,
        typer.Option("--project", "-p", help="Show chunk counts for this project."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .sidekick.db (default: from config)."),
    ] = None,
) -> None:
    """Show database info, and per-source-type chunk counts for a project."""
    cfg = load_cfg()
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  sidekick init",
                title="[bold]Database[/]",
                expand=False,
            )
        )
        return

    conn = open_db(db_path)
    try:
        _show_database_panel(db_path, conn, cfg)
        if project is not None:
            _show_project_panel(conn, project, cfg)
    finally:
        conn.close()


def _show_database_panel(db_path: Path, conn: sqlite3.Connection, cfg: SidekickConfig) -> None:
    size_mb = db_path.stat().st_size / (1024 * 1024)
    projects = conn.execute("SELECT COUNT(*) FROM projects").fetchone()[0]
    chunks = conn.execute(
        "SELECT COUNT(*) FROM knowledge_chunks WHERE status = 'live'"
    ).fetchone()[0]
    lines = [
        f"Database:   {db_path} ({size_mb:.1f} MB, schema v{current_version(conn)})",
        f"Projects:   [bold]{projects}[/]  |  Chunks: [bold]{chunks:,}[/]",
        f"Embedding:  {cfg.embedding.model} ({cfg.embedding.dimensions}d)",
        f"Generation: {cfg.generation.model}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Database[/]", expand=False))


def _show_project_panel(conn: sqlite3.Connection, project_id: str, cfg: SidekickConfig) -> None:
    project = RecordStore(conn).get_project(project_id)
    if project is None:
        console.print(err_project_not_found(project_id))
        raise typer.Exit(1)

    counts = ChunkStore(conn, dimensions=cfg.embedding.dimensions).count_by_type(project_id)
    if not counts:
        console.print(
            Panel(
                "[dim]Not indexed yet.[/]\n"
                f"  Run:  sidekick reindex --project {project_id}",
                title=f"[bold]{project.name}[/]",
                expand=False,
            )
        )
        return

    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("Source type")
    table.add_column("Chunks", justify="right")
    for source_type, n in sorted(counts.items()):
        table.add_row(source_type, str(n))
    table.add_row("[bold]total[/]", f"[bold]{sum(counts.values())}[/]")
    console.print(Panel(table, title=f"[bold]{project.name}[/]", expand=False))
