"""Forward-only migration runner for the Sidekick database schema.

v1 holds the project record tables the assistant reads from.
v2 adds the knowledge chunk store written by the indexer.
v3 adds the per-project rebuild lease that serializes re-index runs.
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS clients (
    id              TEXT PRIMARY KEY,
    customer_id     TEXT NOT NULL,
    name            TEXT NOT NULL,
    industry        TEXT NOT NULL DEFAULT '',
    contact_person  TEXT NOT NULL DEFAULT '',
    email           TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'active',
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS projects (
    id              TEXT PRIMARY KEY,
    customer_id     TEXT NOT NULL DEFAULT '',
    client_id       TEXT REFERENCES clients(id) ON DELETE SET NULL,
    name            TEXT NOT NULL,
    description     TEXT,
    status          TEXT NOT NULL DEFAULT 'Setup',
    progress        INTEGER NOT NULL DEFAULT 0,
    start_date      TEXT,
    due_date        TEXT,
    transcript      TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS stakeholders (
    id                  TEXT PRIMARY KEY,
    project_id          TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    name                TEXT NOT NULL,
    email               TEXT NOT NULL DEFAULT '',
    role                TEXT NOT NULL DEFAULT '',
    department          TEXT NOT NULL DEFAULT '',
    phone               TEXT,
    seniority           TEXT,
    experience_years    INTEGER NOT NULL DEFAULT 0,
    status              TEXT NOT NULL DEFAULT 'pending',
    mentioned_context   TEXT,
    created_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    updated_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS questions (
    id              TEXT PRIMARY KEY,
    project_id      TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    text            TEXT NOT NULL,
    category        TEXT NOT NULL DEFAULT '',
    target_roles    TEXT NOT NULL DEFAULT '[]',
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS interview_sessions (
    id                      TEXT PRIMARY KEY,
    project_id              TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    stakeholder_id          TEXT NOT NULL REFERENCES stakeholders(id) ON DELETE CASCADE,
    interview_name          TEXT,
    status                  TEXT NOT NULL DEFAULT 'pending',
    started_at              TEXT,
    completed_at            TEXT,
    total_questions         INTEGER NOT NULL DEFAULT 0,
    answered_questions      INTEGER NOT NULL DEFAULT 0,
    completion_percentage   INTEGER NOT NULL DEFAULT 0,
    created_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS interview_responses (
    id                      TEXT PRIMARY KEY,
    project_id              TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    stakeholder_id          TEXT NOT NULL REFERENCES stakeholders(id) ON DELETE CASCADE,
    question_id             TEXT NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
    interview_session_id    TEXT REFERENCES interview_sessions(id) ON DELETE CASCADE,
    response_type           TEXT NOT NULL DEFAULT 'text',
    response_text           TEXT,
    transcription           TEXT,
    ai_summary              TEXT,
    sentiment               TEXT,
    created_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS transcriptions (
    id                  TEXT PRIMARY KEY,
    response_id         TEXT REFERENCES interview_responses(id) ON DELETE CASCADE,
    transcription_text  TEXT NOT NULL,
    language            TEXT NOT NULL DEFAULT 'en',
    duration_seconds    INTEGER,
    word_count          INTEGER,
    created_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS documents (
    id              TEXT PRIMARY KEY,
    project_id      TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    title           TEXT NOT NULL,
    type            TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'draft',
    version         INTEGER NOT NULL DEFAULT 1,
    content         TEXT NOT NULL DEFAULT '',
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS project_uploads (
    id                      TEXT PRIMARY KEY,
    project_id              TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    upload_type             TEXT NOT NULL DEFAULT 'other',
    file_name               TEXT NOT NULL,
    file_size               INTEGER NOT NULL DEFAULT 0,
    description             TEXT,
    meeting_date            TEXT,
    include_in_generation   INTEGER NOT NULL DEFAULT 1,
    extracted_content       TEXT,
    content_type            TEXT,
    created_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS document_templates (
    id              TEXT PRIMARY KEY,
    customer_id     TEXT NOT NULL DEFAULT '',
    scope           TEXT NOT NULL DEFAULT 'org',
    name            TEXT NOT NULL,
    description     TEXT,
    category        TEXT,
    output_format   TEXT NOT NULL DEFAULT 'markdown',
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS document_runs (
    id              TEXT PRIMARY KEY,
    project_id      TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    run_label       TEXT,
    llm_model       TEXT NOT NULL DEFAULT 'gpt-4o',
    templates_used  TEXT NOT NULL DEFAULT '[]',
    status          TEXT NOT NULL DEFAULT 'completed',
    error_message   TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE TABLE IF NOT EXISTS project_exports (
    id              TEXT PRIMARY KEY,
    project_id      TEXT REFERENCES projects(id) ON DELETE SET NULL,
    project_name    TEXT NOT NULL,
    export_type     TEXT NOT NULL DEFAULT 'full_backup',
    file_size       INTEGER,
    schema_version  TEXT NOT NULL DEFAULT '1.0',
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_projects_client ON projects(client_id);
CREATE INDEX IF NOT EXISTS idx_stakeholders_project ON stakeholders(project_id);
CREATE INDEX IF NOT EXISTS idx_responses_session ON interview_responses(interview_session_id);
"""

# Chunks of a running rebuild are written as 'staged' under one build_id and
# flipped to 'live' in a single transaction once every chunk is embedded.
_V2_SQL = """
CREATE TABLE IF NOT EXISTS knowledge_chunks (
    id              TEXT PRIMARY KEY,
    project_id      TEXT NOT NULL,
    source_type     TEXT NOT NULL,
    source_id       TEXT,
    chunk_text      TEXT NOT NULL CHECK (length(chunk_text) > 0),
    chunk_index     INTEGER NOT NULL DEFAULT 0,
    embedding       BLOB NOT NULL,
    metadata        TEXT NOT NULL DEFAULT '{}',
    build_id        TEXT,
    status          TEXT NOT NULL DEFAULT 'live' CHECK (status IN ('live', 'staged')),
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_chunks_project ON knowledge_chunks(project_id, status);
CREATE INDEX IF NOT EXISTS idx_chunks_source ON knowledge_chunks(source_type, source_id);
"""

# One row per project while a rebuild runs. heartbeat_at is refreshed as
# chunks are written; a lease whose heartbeat is older than the stale window
# belongs to a dead process and may be taken over.
_V3_SQL = """
CREATE TABLE IF NOT EXISTS reindex_leases (
    project_id      TEXT PRIMARY KEY,
    build_id        TEXT NOT NULL,
    holder          TEXT NOT NULL,
    acquired_at     REAL NOT NULL,
    heartbeat_at    REAL NOT NULL
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
    (3, _V3_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied schema version (0 for a fresh database)."""
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    ).fetchone()
    if row is None:
        return 0
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    return version or 0


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    run_migrations(conn)
