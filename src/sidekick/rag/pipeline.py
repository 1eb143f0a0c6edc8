"""Hybrid query pipeline.

question → classify → direct lookups → semantic search (when needed)
         → merge/dedup/bound → grounded answer → citations

Stateless per call: conversation state lives in ``sidekick.session``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sidekick.config import SidekickConfig
from sidekick.db.chunks import ChunkStore
from sidekick.db.records import RecordStore
from sidekick.rag.answer import AnswerGenerator
from sidekick.rag.assembler import merge
from sidekick.rag.citations import Citation, format_citations
from sidekick.rag.classifier import Topic, classify
from sidekick.rag.direct import DirectEvidenceGatherer
from sidekick.rag.evidence import EvidenceItem
from sidekick.rag.llm_client import ServiceError, ServiceErrorKind
from sidekick.rag.semantic import SemanticEvidenceGatherer, needs_semantic

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, I encountered an error processing your request."


@dataclass
class QueryResult:
    """Outcome of one query turn.

    Attributes:
        answer: Generated answer, or an apology when generation failed.
        citations: One per evidence item the model saw (empty on failure).
        evidence: The bounded evidence list passed to the model.
        topics: Classifier output for the question.
        error: Category of the generation failure, if any.
    """

    answer: str
    citations: list[Citation] = field(default_factory=list)
    evidence: list[EvidenceItem] = field(default_factory=list)
    topics: frozenset[Topic] = frozenset()
    error: ServiceErrorKind | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class QueryPipeline:
    """Answer free-text questions about one project at a time."""

    def __init__(
        self,
        records: RecordStore,
        chunks: ChunkStore,
        config: SidekickConfig | None = None,
        now: datetime | None = None,
    ) -> None:
        self.config = config or SidekickConfig()
        self.direct = DirectEvidenceGatherer(records, self.config.retrieval, now=now)
        self.semantic = SemanticEvidenceGatherer(
            chunks, self.config.embedding, self.config.retrieval
        )
        self.generator = AnswerGenerator(self.config.generation)

    def gather(self, project_id: str, question: str) -> tuple[frozenset[Topic], list[EvidenceItem]]:
        """Classify *question* and return (topics, bounded evidence list)."""
        topics = classify(question)
        direct_items = self.direct.gather(project_id, topics)

        semantic_items: list[EvidenceItem] = []
        if needs_semantic(topics, bool(direct_items)):
            semantic_items = self.semantic.gather(
                project_id, question, has_direct_evidence=bool(direct_items)
            )

        evidence = merge(
            direct_items, semantic_items, max_items=self.config.retrieval.max_context_items
        )
        logger.info(
            "Evidence for %s: %d direct + %d semantic → %d kept",
            project_id, len(direct_items), len(semantic_items), len(evidence),
        )
        return topics, evidence

    def ask(self, project_id: str, question: str) -> QueryResult:
        """Run one full query turn. Generation failures become an apology, not an exception."""
        topics, evidence = self.gather(project_id, question)

        try:
            answer = self.generator.answer(question, evidence)
        except ServiceError as exc:
            logger.warning("Answer generation failed (%s): %s", exc.kind.value, exc.detail)
            return QueryResult(
                answer=f"{APOLOGY} {exc.user_message}",
                evidence=evidence,
                topics=topics,
                error=exc.kind,
            )

        return QueryResult(
            answer=answer,
            citations=format_citations(evidence, self.config.retrieval.excerpt_chars),
            evidence=evidence,
            topics=topics,
        )
