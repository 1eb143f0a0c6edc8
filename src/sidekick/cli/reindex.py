"""sidekick reindex — rebuild the knowledge chunks of one project."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from sidekick.cli.common import console, load_cfg, open_db, resolve_db
from sidekick.cli.errors import (
    err_index_partial,
    err_project_not_found,
    err_reindex_busy,
    err_service,
)
from sidekick.db.chunks import BuildInProgressError, ChunkStore
from sidekick.db.records import RecordStore
from sidekick.index.indexer import (
    LOCK_WAIT_SECONDS,
    EntityIndexer,
    IndexingError,
    ProjectNotFoundError,
)


def reindex_cmd(
    project: Annotated[str, typer.Option("--project", "-p", help="Project id to index.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .sidekick.db (default: from config)."),
    ] = None,
    wait: Annotated[
        float,
        typer.Option("--wait", help="Seconds to wait for a running re-index of the same project."),
    ] = LOCK_WAIT_SECONDS,
) -> None:
    """Replace a project's knowledge chunks with a fresh build."""
    cfg = load_cfg()
    conn = open_db(resolve_db(db, cfg))
    try:
        indexer = EntityIndexer(
            RecordStore(conn),
            ChunkStore(conn, dimensions=cfg.embedding.dimensions),
            cfg.embedding,
            lock_wait=wait,
        )
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Indexing {project}…", total=None)
            try:
                total = indexer.reindex(project)
            except ProjectNotFoundError:
                prog.stop()
                console.print(err_project_not_found(project))
                raise typer.Exit(1)
            except IndexingError as exc:
                prog.stop()
                console.print(err_service(exc.kind, exc.detail))
                if exc.indexed:
                    console.print(err_index_partial(exc.indexed))
                raise typer.Exit(1)
            except BuildInProgressError as exc:
                prog.stop()
                console.print(err_reindex_busy(project, exc.holder))
                raise typer.Exit(1)
    finally:
        conn.close()

    console.print(f"  [green]✓[/] Indexed [bold]{total}[/] chunk(s) for project {project}.")
