"""Sidekick database layer — record store and knowledge chunk store."""

from sidekick.db.chunks import BuildInProgressError, ChunkStore
from sidekick.db.connection import Database
from sidekick.db.migrations import MIGRATIONS, initialize, run_migrations
from sidekick.db.records import RecordStore

__all__ = [
    "BuildInProgressError",
    "ChunkStore",
    "Database",
    "RecordStore",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
