"""Semantic evidence gatherer — embed the question, search the project's chunks.

Runs when the question asks about responses or questions, or when direct
lookups produced nothing, so every question gets some evidence path. The
match cap is smaller when direct evidence already exists, which keeps the
total evidence bounded while letting semantic search carry open-ended
questions on its own.
"""

from __future__ import annotations

import logging
import sqlite3

from sidekick.config import EmbeddingCfg, RetrievalCfg
from sidekick.db.chunks import ChunkStore
from sidekick.rag.classifier import SEMANTIC_TOPICS, Topic
from sidekick.rag.evidence import EvidenceItem
from sidekick.rag.llm_client import ServiceError, embed

logger = logging.getLogger(__name__)


def needs_semantic(topics: frozenset[Topic], has_direct_evidence: bool) -> bool:
    """Semantic search runs for content-heavy topics or when nothing was found directly."""
    return bool(topics & SEMANTIC_TOPICS) or not has_direct_evidence


class SemanticEvidenceGatherer:
    """Similarity search over indexed chunks, scoped to one project.

    Args:
        chunks: Chunk store to search.
        embedding: Embedding model used at index time (queries must match it).
        retrieval: Threshold and match caps.
    """

    def __init__(
        self,
        chunks: ChunkStore,
        embedding: EmbeddingCfg | None = None,
        retrieval: RetrievalCfg | None = None,
    ) -> None:
        self._chunks = chunks
        self._embedding = embedding or EmbeddingCfg()
        self._retrieval = retrieval or RetrievalCfg()

    def limit_for(self, has_direct_evidence: bool) -> int:
        if has_direct_evidence:
            return self._retrieval.semantic_limit_with_direct
        return self._retrieval.semantic_limit

    def gather(
        self,
        project_id: str,
        question: str,
        has_direct_evidence: bool,
    ) -> list[EvidenceItem]:
        """Return up to ``limit_for(has_direct_evidence)`` matches above the threshold.

        Embedding or search failures are logged and yield no items.
        """
        limit = self.limit_for(has_direct_evidence)
        try:
            vector = embed(
                self._embedding.model,
                question,
                max_chars=self._embedding.max_input_chars,
            )
            results = self._chunks.search(
                project_id,
                vector,
                threshold=self._retrieval.similarity_threshold,
                limit=limit,
            )
        except ServiceError as exc:
            logger.warning("Semantic search skipped for %s (%s): %s", project_id, exc.kind.value, exc.detail)
            return []
        except (sqlite3.Error, ValueError) as exc:
            logger.warning("Semantic search failed for %s: %s", project_id, exc)
            return []

        logger.debug(
            "Semantic evidence for %s: %d matches (limit=%d, threshold=%.2f)",
            project_id, len(results), limit, self._retrieval.similarity_threshold,
        )
        return [EvidenceItem.from_search_result(r) for r in results]
