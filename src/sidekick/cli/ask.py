"""sidekick ask — one query turn: answer plus a citations table."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.markdown import Markdown
from rich.table import Table

from sidekick.cli.common import console, load_cfg, open_db, resolve_db
from sidekick.cli.errors import err_not_indexed, err_project_not_found
from sidekick.config import SidekickConfig
from sidekick.db.chunks import ChunkStore
from sidekick.db.records import RecordStore
from sidekick.rag.citations import Citation
from sidekick.rag.pipeline import QueryPipeline


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question about the project.")],
    project: Annotated[str, typer.Option("--project", "-p", help="Project id to ask about.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .sidekick.db (default: from config)."),
    ] = None,
    show_sources: Annotated[
        bool,
        typer.Option("--sources/--no-sources", help="Show the citations table."),
    ] = True,
) -> None:
    """Answer a question from the project's records and knowledge index."""
    if not question.strip():
        console.print("[red]Error:[/] Question must not be empty.")
        raise typer.Exit(1)

    cfg = load_cfg()
    conn = open_db(resolve_db(db, cfg))
    try:
        pipeline = build_pipeline(conn, project, cfg)
        result = pipeline.ask(project, question)
    finally:
        conn.close()

    print_answer(result.answer, result.citations if show_sources else [])
    if result.failed:
        raise typer.Exit(1)


def build_pipeline(conn: sqlite3.Connection, project: str, cfg: SidekickConfig) -> QueryPipeline:
    """Check the project exists and wire a pipeline for it. Exits 1 if unknown."""
    records = RecordStore(conn)
    chunks = ChunkStore(conn, dimensions=cfg.embedding.dimensions)
    if records.get_project(project) is None:
        console.print(err_project_not_found(project))
        raise typer.Exit(1)
    if chunks.count(project) == 0:
        console.print(err_not_indexed(project))
    return QueryPipeline(records, chunks, cfg)


def print_answer(answer: str, citations: list[Citation]) -> None:
    console.print(Markdown(answer))
    if not citations:
        return

    table = Table(title="Sources", title_justify="left", show_lines=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Source", style="bold")
    table.add_column("Excerpt")
    for i, citation in enumerate(citations, start=1):
        table.add_row(str(i), citation.display_name, citation.excerpt)
    console.print(table)
