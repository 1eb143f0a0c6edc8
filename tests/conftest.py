"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime

import pytest

from sidekick.db.connection import Database
from sidekick.db.migrations import initialize

# Fixed clock for the seeded project: activity windows and timestamps are
# asserted against it.
NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".sidekick.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def insert_row(tmp_db):
    """Return ``insert(table, **columns)`` writing one committed row to tmp_db."""

    def _insert(table: str, **values) -> None:
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        tmp_db.execute(f"INSERT INTO {table} ({cols}) VALUES ({marks})", tuple(values.values()))
        tmp_db.commit()

    return _insert


@pytest.fixture
def seeded_db(tmp_db, insert_row):
    """Project 'p1' for client Acme: 3 stakeholders, 2 interview sessions, files, outputs.

    - Alice finished her interview (2/2), Bob is half-way (1/2), Carol has no session.
    - Acme has two other projects: one 9 months old, one 2.5 years old.
    - 'p2' belongs to a different client and must never leak into p1 results.
    """
    insert_row("clients", id="c1", customer_id="cust-1", name="Acme Corp",
               industry="Retail", contact_person="Dana Reyes", email="dana@acme.test",
               created_at="2021-11-01T09:00:00")
    insert_row("clients", id="c2", customer_id="cust-2", name="Globex")

    insert_row("projects", id="p1", customer_id="cust-1", client_id="c1",
               name="Website Relaunch", description="Rebuild the storefront.",
               status="In Progress", progress=40, start_date="2024-05-01",
               due_date="2024-09-30", transcript="We agreed to launch before the holidays.",
               created_at="2024-05-01T08:00:00", updated_at="2024-06-10T16:00:00")
    insert_row("projects", id="p-old", customer_id="cust-1", client_id="c1",
               name="Loyalty App", status="Completed", progress=100,
               created_at="2023-09-20T08:00:00")
    insert_row("projects", id="p-older", customer_id="cust-1", client_id="c1",
               name="Intranet", status="Completed", progress=100,
               created_at="2022-01-10T08:00:00")
    insert_row("projects", id="p2", customer_id="cust-2", client_id="c2",
               name="Other Client Project", created_at="2024-06-01T08:00:00")

    insert_row("stakeholders", id="s1", project_id="p1", name="Alice Chen", role="CFO",
               department="Finance", email="alice@acme.test", status="completed",
               created_at="2024-05-02T09:00:00", updated_at="2024-06-01T10:00:00")
    insert_row("stakeholders", id="s2", project_id="p1", name="Bob Okafor", role="CTO",
               department="Engineering", status="in_progress",
               created_at="2024-05-02T09:05:00", updated_at="2024-06-02T14:00:00")
    insert_row("stakeholders", id="s3", project_id="p1", name="Carol Diaz",
               role="Product Manager", department="Product", status="pending",
               created_at="2024-05-02T09:10:00", updated_at="2024-05-02T09:10:00")
    insert_row("stakeholders", id="s9", project_id="p2", name="Zed Outsider", role="CEO")

    insert_row("questions", id="q1", project_id="p1",
               text="What is your biggest concern about the budget?", category="Budget",
               target_roles='["CFO", "CTO"]', created_at="2024-05-03T09:00:00")
    insert_row("questions", id="q2", project_id="p1",
               text="How should success be measured?", category="Goals",
               created_at="2024-05-03T09:01:00")

    insert_row("interview_sessions", id="sess1", project_id="p1", stakeholder_id="s1",
               interview_name="Discovery", status="completed",
               started_at="2024-05-30T09:00:00", completed_at="2024-06-01T10:00:00",
               total_questions=2, answered_questions=2, completion_percentage=100)
    insert_row("interview_sessions", id="sess2", project_id="p1", stakeholder_id="s2",
               interview_name="Discovery", status="in_progress",
               started_at="2024-06-02T13:00:00", total_questions=2,
               answered_questions=1, completion_percentage=50)

    insert_row("interview_responses", id="r1", project_id="p1", stakeholder_id="s1",
               question_id="q1", interview_session_id="sess1",
               response_text="The budget is too tight for phase two.", sentiment="negative",
               created_at="2024-05-31T09:00:00")
    insert_row("interview_responses", id="r2", project_id="p1", stakeholder_id="s1",
               question_id="q2", interview_session_id="sess1",
               response_text="Adoption by the sales team.",
               created_at="2024-06-01T09:30:00")
    insert_row("interview_responses", id="r3", project_id="p1", stakeholder_id="s2",
               question_id="q1", interview_session_id="sess2", response_type="audio",
               transcription="Budget is fine, the timeline is the risk.",
               created_at="2024-06-02T14:00:00")
    insert_row("transcriptions", id="t1", response_id="r3",
               transcription_text="Budget is fine, the timeline is the risk.",
               created_at="2024-06-02T14:01:00")

    insert_row("documents", id="d1", project_id="p1", title="Requirements Draft",
               type="requirements", status="draft", content="Scope: storefront rebuild.",
               created_at="2024-06-05T10:00:00", updated_at="2024-06-06T10:00:00")
    insert_row("project_uploads", id="u1", project_id="p1", file_name="kickoff-notes.pdf",
               upload_type="meeting_notes", file_size=2048, meeting_date="2024-05-01",
               extracted_content="Launch target: November.",
               created_at="2024-05-01T12:00:00")
    insert_row("project_uploads", id="u2", project_id="p1", file_name="scratch.txt",
               include_in_generation=0, created_at="2024-05-02T12:00:00")
    insert_row("document_templates", id="tpl1", customer_id="cust-1", name="Requirements",
               category="Planning")
    insert_row("document_templates", id="tpl2", customer_id="cust-1", name="Retired",
               is_active=0)
    insert_row("document_runs", id="run1", project_id="p1", run_label="First pass",
               templates_used='["Requirements"]', created_at="2024-06-05T09:59:00")
    insert_row("project_exports", id="e1", project_id="p1", project_name="Website Relaunch",
               file_size=4096, created_at="2024-06-12T18:00:00")
    return tmp_db
