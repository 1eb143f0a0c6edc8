"""Direct evidence gatherer — exact record lookups driven by topic flags.

Never performs similarity search: every item comes from a deterministic
query and can be audited against the record store. A failing lookup is
logged and contributes no items; the remaining lookups still run.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime

from sidekick.config import RetrievalCfg
from sidekick.db.records import RecordStore
from sidekick.index import renderers
from sidekick.index.renderers import Rendered
from sidekick.rag.classifier import Topic
from sidekick.rag.evidence import EvidenceItem

logger = logging.getLogger(__name__)


class DirectEvidenceGatherer:
    """Issue the record lookups implied by a question's topics.

    Args:
        records: Read access to project records.
        config: Retrieval settings (``recent_limit`` caps the recency lookups).
        now: Clock for the client activity windows (for testing).
    """

    def __init__(
        self,
        records: RecordStore,
        config: RetrievalCfg | None = None,
        now: datetime | None = None,
    ) -> None:
        self._records = records
        self._config = config or RetrievalCfg()
        self._now = now

    def gather(self, project_id: str, topics: frozenset[Topic]) -> list[EvidenceItem]:
        """Return evidence items for every active direct topic, one per matched record."""
        timeline = Topic.TIMELINE in topics
        lookups: list[tuple[str, Callable[[], list[Rendered]]]] = []

        if Topic.PEOPLE in topics or timeline:
            lookups.append(("stakeholders", lambda: self._stakeholders(project_id)))
        if Topic.OVERVIEW in topics or timeline:
            lookups.append(("project", lambda: self._project(project_id)))
        if Topic.INTERVIEWS in topics or timeline:
            lookups.append(("sessions", lambda: self._sessions(project_id, timeline)))
        if Topic.DOCUMENTS in topics or timeline:
            lookups.append(("documents", lambda: self._documents(project_id)))
            lookups.append(("uploads", lambda: self._uploads(project_id)))
        if Topic.EXPORTS in topics or timeline:
            lookups.append(("exports", lambda: self._exports(project_id)))
        if Topic.CLIENT in topics:
            lookups.append(("client", lambda: self._client(project_id)))

        items: list[EvidenceItem] = []
        for name, lookup in lookups:
            try:
                rendered = lookup()
            except sqlite3.Error as exc:
                logger.warning("Direct lookup '%s' failed for %s: %s", name, project_id, exc)
                continue
            items.extend(_to_evidence(r) for r in rendered)

        logger.debug(
            "Direct evidence for %s: %d items (topics=%s)",
            project_id, len(items), sorted(t.value for t in topics),
        )
        return items

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _stakeholders(self, project_id: str) -> list[Rendered]:
        return [
            renderers.render_stakeholder(s)
            for s in self._records.list_stakeholders(project_id)
        ]

    def _project(self, project_id: str) -> list[Rendered]:
        project = self._records.get_project(project_id)
        return renderers.render_project(project) if project else []

    def _sessions(self, project_id: str, timeline: bool) -> list[Rendered]:
        out: list[Rendered] = []
        for session in self._records.list_sessions(project_id):
            out.append(renderers.render_session(session))
            if timeline and session.answered_questions >= 1:
                times = self._records.response_times(session.id)
                if times.answer_count > 0:
                    out.append(renderers.render_response_timeline(session, times))
        return out

    def _documents(self, project_id: str) -> list[Rendered]:
        # Record summary only; full document text is left to semantic search.
        docs = self._records.list_documents(project_id, limit=self._config.recent_limit)
        return [renderers.render_document(d)[0] for d in docs]

    def _uploads(self, project_id: str) -> list[Rendered]:
        uploads = self._records.list_uploads(
            project_id, generation_only=True, limit=self._config.recent_limit
        )
        return [renderers.render_upload(u)[0] for u in uploads]

    def _exports(self, project_id: str) -> list[Rendered]:
        return [
            renderers.render_export(e)
            for e in self._records.list_exports(project_id, limit=self._config.recent_limit)
        ]

    def _client(self, project_id: str) -> list[Rendered]:
        project = self._records.get_project(project_id)
        if project is None or not project.client_id:
            return []
        client = self._records.get_client(project.client_id)
        if client is None:
            return []
        siblings = self._records.list_client_projects(client.id)
        return [
            renderers.render_client_history(client, siblings),
            renderers.render_client_activity(client, siblings, self._now),
        ]


def _to_evidence(rendered: Rendered) -> EvidenceItem:
    return EvidenceItem(
        text=rendered.text,
        source_type=rendered.source_type,
        metadata=dict(rendered.metadata),
    )
