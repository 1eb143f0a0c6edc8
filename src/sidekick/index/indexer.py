"""Entity indexer — full-replace rebuild of a project's knowledge chunks.

For each entity type: fetch all rows for the project, render them with the
fixed templates in ``renderers``, embed each rendered text via LiteLLM and
write it to the chunk store.

The rebuild is staged: new chunks are written under a build id and only
replace the live set in one transaction once every chunk has an embedding.
A failed rebuild therefore leaves the previous chunk set searchable. Rebuilds
of the same project are serialized through the chunk store's rebuild lease,
which holds across processes; a second run waits for the first to finish.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Iterator
from datetime import datetime

from sidekick.config import EmbeddingCfg
from sidekick.db.chunks import BuildInProgressError, ChunkStore
from sidekick.db.models import KnowledgeChunk
from sidekick.db.records import RecordStore
from sidekick.index import renderers
from sidekick.index.renderers import Rendered
from sidekick.rag.llm_client import ServiceError, ServiceErrorKind, embed, validate_api_key

logger = logging.getLogger(__name__)

LOCK_WAIT_SECONDS = 600.0
LOCK_POLL_SECONDS = 0.5


class ProjectNotFoundError(LookupError):
    """Raised when the project to index does not exist."""


class IndexingError(ServiceError):
    """A rebuild was aborted because the embedding service failed.

    The staged chunks of the aborted build are discarded; the previous live
    set is kept.
    """

    def __init__(self, kind: ServiceErrorKind, detail: str, indexed: int = 0) -> None:
        super().__init__(kind, detail)
        self.indexed = indexed


class EntityIndexer:
    """Render, embed and store every indexable record of a project.

    Args:
        records: Read access to project records.
        chunks: Chunk store receiving the rebuilt chunks.
        config: Embedding model, dimensions and input clipping.
        now: Clock used for the client activity windows (for testing).
        lock_wait: Seconds to wait for a running rebuild of the same project
            before giving up with BuildInProgressError.
    """

    def __init__(
        self,
        records: RecordStore,
        chunks: ChunkStore,
        config: EmbeddingCfg | None = None,
        now: datetime | None = None,
        lock_wait: float = LOCK_WAIT_SECONDS,
    ) -> None:
        self._records = records
        self._chunks = chunks
        self._config = config or EmbeddingCfg()
        self._now = now
        self._lock_wait = lock_wait

    def reindex(self, project_id: str) -> int:
        """Rebuild all chunks for *project_id* and return the new chunk count.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            IndexingError: If the embedding service fails; nothing is replaced.
            BuildInProgressError: If another rebuild of the project is still
                running after ``lock_wait`` seconds, or took over this one.
        """
        if self._records.get_project(project_id) is None:
            raise ProjectNotFoundError(f"Project '{project_id}' not found.")

        try:
            validate_api_key(self._config.model)
        except ServiceError as exc:
            raise IndexingError(exc.kind, exc.detail) from exc

        build_id = self._acquire(project_id)
        logger.info("Re-indexing project %s with %s", project_id, self._config.model)
        written: Counter[str] = Counter()

        try:
            for item in self.render(project_id):
                vector = embed(
                    self._config.model,
                    item.text,
                    max_chars=self._config.max_input_chars,
                )
                self._chunks.insert(
                    KnowledgeChunk(
                        project_id=project_id,
                        source_type=item.source_type,
                        source_id=item.source_id,
                        chunk_text=item.text,
                        chunk_index=item.chunk_index,
                        embedding=vector,
                        metadata=item.metadata,
                    ),
                    build_id=build_id,
                )
                self._chunks.heartbeat(project_id, build_id)
                written[item.source_type.value] += 1
            total = self._chunks.commit_build(project_id, build_id)
        except ServiceError as exc:
            self._chunks.discard_build(project_id, build_id)
            logger.warning(
                "Re-index of %s aborted after %d chunks: %s",
                project_id, sum(written.values()), exc.detail,
            )
            raise IndexingError(exc.kind, exc.detail, indexed=sum(written.values())) from exc
        except Exception:
            self._chunks.discard_build(project_id, build_id)
            raise

        logger.info(
            "Re-indexed project %s: %d chunks (%s)",
            project_id, total, ", ".join(f"{k}={v}" for k, v in sorted(written.items())),
        )
        return total

    def _acquire(self, project_id: str) -> str:
        deadline = time.monotonic() + self._lock_wait
        while True:
            try:
                return self._chunks.begin_build(project_id)
            except BuildInProgressError as exc:
                if time.monotonic() >= deadline:
                    raise
                logger.info("Waiting for running rebuild of %s (%s)", project_id, exc.holder)
                time.sleep(LOCK_POLL_SECONDS)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, project_id: str) -> Iterator[Rendered]:
        """Yield every non-empty rendered item for the project, entity type by entity type."""
        for item in self._render_all(project_id):
            if item.text.strip():
                yield item

    def _render_all(self, project_id: str) -> Iterator[Rendered]:
        records = self._records
        project = records.get_project(project_id)
        if project is None:
            return

        yield from renderers.render_project(project)

        for stakeholder in records.list_stakeholders(project_id):
            yield renderers.render_stakeholder(stakeholder)

        for question in records.list_questions(project_id):
            yield renderers.render_question(question)

        for response in records.list_responses(project_id):
            rendered = renderers.render_response(response)
            if rendered is not None:
                yield rendered

        for transcription in records.list_transcriptions(project_id):
            yield renderers.render_transcription(transcription)

        for session in records.list_sessions(project_id):
            yield renderers.render_session(session)
            times = records.response_times(session.id)
            if times.answer_count > 0:
                yield renderers.render_response_timeline(session, times)

        for document in records.list_documents(project_id):
            yield from renderers.render_document(document)

        for upload in records.list_uploads(project_id, generation_only=True):
            yield from renderers.render_upload(upload)

        for template in records.list_document_templates(project_id):
            yield renderers.render_template(template)

        for run in records.list_document_runs(project_id):
            yield renderers.render_document_run(run)

        for export in records.list_exports(project_id):
            yield renderers.render_export(export)

        if project.client_id:
            client = records.get_client(project.client_id)
            if client is not None:
                siblings = records.list_client_projects(client.id)
                yield renderers.render_client_history(client, siblings)
                yield renderers.render_client_activity(client, siblings, self._now)
