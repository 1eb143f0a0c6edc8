"""Evidence items exchanged between the gatherers, the assembler and the formatter.

Direct lookups and semantic matches share one shape so the assembler can
treat them uniformly. The dedup key is the entity id found under the first
of ``stakeholder_id``, ``session_id`` or ``document_id`` in the metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sidekick.db.models import SearchResult, SourceType

DEDUP_FIELDS = ("stakeholder_id", "session_id", "document_id")


@dataclass
class EvidenceItem:
    """One piece of evidence offered to the language model.

    Attributes:
        text: Rendered text exactly as the model will see it.
        source_type: What the text was rendered from.
        metadata: Identifying fields (ids, names, categories, timestamps).
        similarity: Cosine similarity for semantic matches; None for direct lookups.
    """

    text: str
    source_type: SourceType
    metadata: dict = field(default_factory=dict)
    similarity: float | None = None

    @property
    def dedup_key(self) -> str | None:
        """Entity id used for deduplication, or None when no identifying field is set."""
        for name in DEDUP_FIELDS:
            value = self.metadata.get(name)
            if value:
                return str(value)
        return None

    @property
    def is_direct(self) -> bool:
        return self.similarity is None

    @classmethod
    def from_search_result(cls, result: SearchResult) -> EvidenceItem:
        return cls(
            text=result.chunk_text,
            source_type=result.source_type,
            metadata=dict(result.metadata),
            similarity=result.similarity,
        )
