"""Read-only access to project records (projects, people, interviews, files, outputs).

Every lookup is scoped by project id. The assistant never writes to these
tables; the only writes it performs go to the chunk store.
"""

from __future__ import annotations

import json
import sqlite3

from sidekick.db.models import (
    Client,
    Document,
    DocumentRun,
    DocumentTemplate,
    InterviewResponse,
    InterviewSession,
    Project,
    ProjectExport,
    Question,
    ResponseTimes,
    Stakeholder,
    Transcription,
    Upload,
)


class RecordStore:
    """Typed read accessors over the record tables.

    The connection is owned by the caller and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Project + client
    # ------------------------------------------------------------------

    def get_project(self, project_id: str) -> Project | None:
        row = self._conn.execute(
            "SELECT * FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return _row_to_project(row) if row else None

    def get_client(self, client_id: str) -> Client | None:
        row = self._conn.execute(
            "SELECT * FROM clients WHERE id = ?", (client_id,)
        ).fetchone()
        if row is None:
            return None
        return Client(
            id=row["id"],
            name=row["name"],
            industry=row["industry"],
            contact_person=row["contact_person"],
            email=row["email"],
            status=row["status"],
            created_at=row["created_at"],
        )

    def list_client_projects(self, client_id: str) -> list[Project]:
        """Return every project for *client_id*, newest first."""
        rows = self._conn.execute(
            "SELECT * FROM projects WHERE client_id = ? ORDER BY created_at DESC",
            (client_id,),
        ).fetchall()
        return [_row_to_project(r) for r in rows]

    # ------------------------------------------------------------------
    # People + questions
    # ------------------------------------------------------------------

    def list_stakeholders(self, project_id: str) -> list[Stakeholder]:
        """Return all stakeholders in insertion order."""
        rows = self._conn.execute(
            "SELECT * FROM stakeholders WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        ).fetchall()
        return [
            Stakeholder(
                id=r["id"],
                project_id=r["project_id"],
                name=r["name"],
                email=r["email"],
                role=r["role"],
                department=r["department"],
                phone=r["phone"],
                seniority=r["seniority"],
                experience_years=r["experience_years"],
                status=r["status"],
                mentioned_context=r["mentioned_context"],
                created_at=r["created_at"],
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def list_questions(self, project_id: str) -> list[Question]:
        rows = self._conn.execute(
            "SELECT * FROM questions WHERE project_id = ? ORDER BY rowid",
            (project_id,),
        ).fetchall()
        return [
            Question(
                id=r["id"],
                project_id=r["project_id"],
                text=r["text"],
                category=r["category"],
                target_roles=_json_list(r["target_roles"]),
                created_at=r["created_at"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Interviews
    # ------------------------------------------------------------------

    def list_sessions(self, project_id: str) -> list[InterviewSession]:
        """Return all interview sessions joined with their stakeholder."""
        rows = self._conn.execute(
            """
            SELECT s.*, st.name AS stakeholder_name, st.role AS stakeholder_role
            FROM interview_sessions s
            JOIN stakeholders st ON st.id = s.stakeholder_id
            WHERE s.project_id = ?
            ORDER BY s.rowid
            """,
            (project_id,),
        ).fetchall()
        return [
            InterviewSession(
                id=r["id"],
                project_id=r["project_id"],
                stakeholder_id=r["stakeholder_id"],
                stakeholder_name=r["stakeholder_name"],
                stakeholder_role=r["stakeholder_role"],
                interview_name=r["interview_name"],
                status=r["status"],
                started_at=r["started_at"],
                completed_at=r["completed_at"],
                total_questions=r["total_questions"],
                answered_questions=r["answered_questions"],
                completion_percentage=r["completion_percentage"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def list_responses(self, project_id: str) -> list[InterviewResponse]:
        """Return all responses joined with stakeholder and question details."""
        rows = self._conn.execute(
            """
            SELECT r.*,
                   st.name AS stakeholder_name, st.role AS stakeholder_role,
                   st.department AS stakeholder_department,
                   q.text AS question_text, q.category AS question_category
            FROM interview_responses r
            JOIN stakeholders st ON st.id = r.stakeholder_id
            JOIN questions q ON q.id = r.question_id
            WHERE r.project_id = ?
            ORDER BY r.created_at
            """,
            (project_id,),
        ).fetchall()
        return [
            InterviewResponse(
                id=r["id"],
                project_id=r["project_id"],
                stakeholder_id=r["stakeholder_id"],
                stakeholder_name=r["stakeholder_name"],
                stakeholder_role=r["stakeholder_role"],
                stakeholder_department=r["stakeholder_department"],
                question_id=r["question_id"],
                question_text=r["question_text"],
                question_category=r["question_category"],
                session_id=r["interview_session_id"],
                response_type=r["response_type"],
                response_text=r["response_text"],
                transcription=r["transcription"],
                ai_summary=r["ai_summary"],
                sentiment=r["sentiment"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def response_times(self, session_id: str) -> ResponseTimes:
        """Return answer count and first/last answer timestamps for a session."""
        row = self._conn.execute(
            """
            SELECT COUNT(*) AS n, MIN(created_at) AS first_at, MAX(created_at) AS last_at
            FROM interview_responses WHERE interview_session_id = ?
            """,
            (session_id,),
        ).fetchone()
        return ResponseTimes(
            session_id=session_id,
            answer_count=row["n"],
            first_answer_at=row["first_at"],
            last_answer_at=row["last_at"],
        )

    def list_transcriptions(self, project_id: str) -> list[Transcription]:
        rows = self._conn.execute(
            """
            SELECT t.*, r.stakeholder_id, st.name AS stakeholder_name,
                   q.text AS question_text
            FROM transcriptions t
            JOIN interview_responses r ON r.id = t.response_id
            JOIN stakeholders st ON st.id = r.stakeholder_id
            JOIN questions q ON q.id = r.question_id
            WHERE r.project_id = ?
            ORDER BY t.created_at
            """,
            (project_id,),
        ).fetchall()
        return [
            Transcription(
                id=r["id"],
                response_id=r["response_id"],
                transcription_text=r["transcription_text"],
                stakeholder_id=r["stakeholder_id"],
                stakeholder_name=r["stakeholder_name"],
                question_text=r["question_text"],
                language=r["language"],
                duration_seconds=r["duration_seconds"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Files + outputs
    # ------------------------------------------------------------------

    def list_documents(self, project_id: str, limit: int | None = None) -> list[Document]:
        """Return documents, most recent first."""
        rows = self._fetch_recent(
            "SELECT * FROM documents WHERE project_id = ?", (project_id,), limit
        )
        return [
            Document(
                id=r["id"],
                project_id=r["project_id"],
                title=r["title"],
                type=r["type"],
                status=r["status"],
                version=r["version"],
                content=r["content"],
                created_at=r["created_at"],
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def list_uploads(
        self,
        project_id: str,
        generation_only: bool = True,
        limit: int | None = None,
    ) -> list[Upload]:
        """Return uploads, most recent first.

        Args:
            generation_only: Only uploads flagged ``include_in_generation``.
        """
        sql = "SELECT * FROM project_uploads WHERE project_id = ?"
        if generation_only:
            sql += " AND include_in_generation = 1"
        rows = self._fetch_recent(sql, (project_id,), limit)
        return [
            Upload(
                id=r["id"],
                project_id=r["project_id"],
                file_name=r["file_name"],
                upload_type=r["upload_type"],
                file_size=r["file_size"],
                description=r["description"],
                meeting_date=r["meeting_date"],
                include_in_generation=bool(r["include_in_generation"]),
                extracted_content=r["extracted_content"],
                content_type=r["content_type"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def list_document_templates(self, project_id: str) -> list[DocumentTemplate]:
        """Return active templates owned by the project's customer."""
        rows = self._conn.execute(
            """
            SELECT t.* FROM document_templates t
            JOIN projects p ON p.customer_id = t.customer_id
            WHERE p.id = ? AND t.is_active = 1
            ORDER BY t.name
            """,
            (project_id,),
        ).fetchall()
        return [
            DocumentTemplate(
                id=r["id"],
                name=r["name"],
                scope=r["scope"],
                description=r["description"],
                category=r["category"],
                output_format=r["output_format"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def list_document_runs(self, project_id: str, limit: int | None = None) -> list[DocumentRun]:
        rows = self._fetch_recent(
            "SELECT * FROM document_runs WHERE project_id = ?", (project_id,), limit
        )
        return [
            DocumentRun(
                id=r["id"],
                project_id=r["project_id"],
                run_label=r["run_label"],
                llm_model=r["llm_model"],
                templates_used=_json_list(r["templates_used"]),
                status=r["status"],
                error_message=r["error_message"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def list_exports(self, project_id: str, limit: int | None = None) -> list[ProjectExport]:
        rows = self._fetch_recent(
            "SELECT * FROM project_exports WHERE project_id = ?", (project_id,), limit
        )
        return [
            ProjectExport(
                id=r["id"],
                project_name=r["project_name"],
                export_type=r["export_type"],
                file_size=r["file_size"],
                schema_version=r["schema_version"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fetch_recent(
        self, sql: str, params: tuple, limit: int | None
    ) -> list[sqlite3.Row]:
        sql += " ORDER BY created_at DESC, rowid DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)
        return self._conn.execute(sql, params).fetchall()


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        status=row["status"],
        description=row["description"],
        progress=row["progress"],
        customer_id=row["customer_id"],
        client_id=row["client_id"],
        start_date=row["start_date"],
        due_date=row["due_date"],
        transcript=row["transcript"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _json_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return [str(v) for v in value] if isinstance(value, list) else []
