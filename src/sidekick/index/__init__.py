"""Sidekick indexing pipeline — entity renderers and the full-rebuild indexer."""

from sidekick.index.indexer import EntityIndexer, IndexingError, ProjectNotFoundError
from sidekick.index.renderers import Rendered

__all__ = [
    "EntityIndexer",
    "IndexingError",
    "ProjectNotFoundError",
    "Rendered",
]
