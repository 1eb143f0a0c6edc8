"""sidekick init — create or migrate the project database.

Creates:
  .sidekick.db             — record tables + knowledge chunk store
  ~/.sidekick/config.yaml  — global model config (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from sidekick.config import ensure_global_config
from sidekick.db.connection import Database
from sidekick.db.migrations import current_version, initialize

console = Console()


def init_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the database file to create."),
    ] = Path(".sidekick.db"),
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override global config path (for testing)."),
    ] = None,
) -> None:
    """Create the database (or migrate an existing one) and the global config."""
    existed = db.exists()
    db.parent.mkdir(parents=True, exist_ok=True)

    with Database(db) as conn:
        initialize(conn)
        version = current_version(conn)

    verb = "Migrated" if existed else "Created"
    console.print(f"  [green]✓[/] {verb} {db} (schema v{version})")

    cfg_path = ensure_global_config(global_config)
    console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. sidekick reindex --project <id>          (build the knowledge index)")
    console.print('  2. sidekick ask --project <id> "question"   (ask a question)')
    console.print("  3. sidekick chat --project <id>             (interactive session)")
