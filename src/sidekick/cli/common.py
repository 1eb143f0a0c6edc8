"""Helpers shared by the CLI commands: config loading and database opening."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from sidekick.cli.errors import err_config, err_no_db
from sidekick.config import ConfigError, SidekickConfig, load_config
from sidekick.db.connection import Database
from sidekick.db.migrations import initialize

console = Console()


def load_cfg() -> SidekickConfig:
    """Load the merged config, or exit 1 with an actionable message."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: SidekickConfig) -> Path:
    """--db flag wins over config (CLI flags are the top config layer)."""
    return db if db is not None else Path(cfg.database.path)


def open_db(db_path: Path) -> sqlite3.Connection:
    """Open an existing database and bring its schema up to date."""
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    conn = Database(db_path).connect()
    initialize(conn)
    return conn
