"""Tests for the per-entity text templates."""

from __future__ import annotations

from datetime import datetime

import pytest

from sidekick.db.models import (
    Client,
    Document,
    InterviewResponse,
    InterviewSession,
    Project,
    ResponseTimes,
    SourceType,
    Stakeholder,
    Upload,
)
from sidekick.index.renderers import (
    activity_counts,
    fmt_date,
    fmt_timestamp,
    months_before,
    parse_ts,
    render_client_activity,
    render_document,
    render_project,
    render_response,
    render_response_timeline,
    render_session,
    render_stakeholder,
    render_upload,
)


def _session(**kw) -> InterviewSession:
    defaults = dict(
        id="sess1",
        project_id="p1",
        stakeholder_id="s1",
        stakeholder_name="Alice Chen",
        stakeholder_role="CFO",
        total_questions=4,
    )
    defaults.update(kw)
    return InterviewSession(**defaults)


def _response(**kw) -> InterviewResponse:
    defaults = dict(
        id="r1",
        project_id="p1",
        stakeholder_id="s1",
        stakeholder_name="Alice Chen",
        stakeholder_role="CFO",
        stakeholder_department="Finance",
        question_id="q1",
        question_text="Biggest concern?",
        question_category="Budget",
    )
    defaults.update(kw)
    return InterviewResponse(**defaults)


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


def test_render_project_overview_fields():
    [item] = render_project(Project(id="p1", name="Relaunch", status="Active", progress=40,
                                    due_date="2024-09-30"))
    assert item.source_type is SourceType.PROJECT_OVERVIEW
    assert "Project: Relaunch" in item.text
    assert "Progress: 40%" in item.text
    assert "Due Date: 2024-09-30" in item.text
    assert "Start Date: Not set" in item.text
    assert item.metadata["project_id"] == "p1"


def test_render_project_adds_kickoff_transcript():
    items = render_project(Project(id="p1", name="Relaunch", transcript="  We start Monday. "))
    assert [i.source_type for i in items] == [
        SourceType.PROJECT_OVERVIEW,
        SourceType.KICKOFF_TRANSCRIPT,
    ]
    assert items[1].text.endswith("We start Monday.")
    assert items[1].chunk_index == 1


# ---------------------------------------------------------------------------
# People + interviews
# ---------------------------------------------------------------------------


def test_render_stakeholder_defaults():
    item = render_stakeholder(Stakeholder(id="s1", project_id="p1", name="Carol"))
    assert "Stakeholder: Carol" in item.text
    assert "Role: Not specified" in item.text
    assert "Experience: Not specified" in item.text
    assert "Context:" not in item.text
    assert item.metadata["stakeholder_id"] == "s1"


def test_render_stakeholder_timestamps():
    item = render_stakeholder(
        Stakeholder(id="s1", project_id="p1", name="Carol", experience_years=7,
                    created_at="2024-05-02T09:10:00")
    )
    assert "Experience: 7 years" in item.text
    assert "Added: 2024-05-02 09:10" in item.text


def test_render_response_skips_empty_answers():
    assert render_response(_response(response_text="  ", transcription=None)) is None


def test_render_response_uses_summary_fallback():
    item = render_response(_response(ai_summary="Worried about cost."))
    assert item is not None
    assert "Response: Worried about cost." in item.text
    assert "Stakeholder: Alice Chen (CFO, Finance)" in item.text


def test_render_session_complete():
    item = render_session(_session(status="completed", answered_questions=4,
                                   completed_at="2024-06-01T10:00:00"))
    assert "Completed: 2024-06-01 10:00" in item.text
    assert item.metadata["is_complete"] is True


def test_render_session_incomplete():
    item = render_session(_session(status="in_progress", answered_questions=1,
                                   completed_at="2024-06-01T10:00:00"))
    assert "Completed: Not yet" in item.text
    assert "1/4 questions answered" in item.text
    assert item.metadata["completed_at"] is None


def test_render_response_timeline():
    times = ResponseTimes("sess1", 2, "2024-05-31T09:00:00", "2024-06-01T09:30:00")
    item = render_response_timeline(_session(), times)
    assert item.source_type is SourceType.RESPONSE_TIMELINE
    assert "Answers Given: 2" in item.text
    assert "First Answer: 2024-05-31 09:00" in item.text
    assert "Last Answer: 2024-06-01 09:30" in item.text


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def test_render_document_short_content_single_item():
    items = render_document(Document(id="d1", project_id="p1", title="Brief", content="Short."))
    assert len(items) == 1
    assert "Content Summary: Short." in items[0].text


def test_render_document_long_content_adds_full_text():
    body = "x" * 800
    summary, full = render_document(Document(id="d1", project_id="p1", title="Brief", content=body))
    assert f"Content Summary: {'x' * 500}\n" in summary.text
    assert full.source_type is SourceType.DOCUMENT_CONTENT
    assert full.text == body
    assert full.metadata["document_id"] == "d1"


def test_render_upload_with_extracted_content():
    upload = Upload(id="u1", project_id="p1", file_name="notes.pdf", file_size=2048,
                    extracted_content="Launch in November.")
    record, content = render_upload(upload)
    assert "Size: 2.00 KB" in record.text
    assert "Meeting Date: Not specified" in record.text
    assert content.source_type is SourceType.UPLOAD_CONTENT
    assert "Launch in November." in content.text


# ---------------------------------------------------------------------------
# Client activity + dates
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "moment, months, expected",
    [
        (datetime(2024, 6, 15), 3, datetime(2024, 3, 15)),
        (datetime(2024, 1, 15), 3, datetime(2023, 10, 15)),
        (datetime(2024, 3, 31), 1, datetime(2024, 2, 29)),
        (datetime(2023, 3, 31), 1, datetime(2023, 2, 28)),
        (datetime(2024, 6, 15), 12, datetime(2023, 6, 15)),
    ],
)
def test_months_before(moment, months, expected):
    assert months_before(moment, months) == expected


def test_activity_counts_windows():
    now = datetime(2024, 6, 15, 12, 0)
    projects = [
        Project(id="a", name="A", created_at="2024-05-01T08:00:00"),
        Project(id="b", name="B", created_at="2023-09-20T08:00:00"),
        Project(id="c", name="C", created_at="2022-01-10T08:00:00"),
        Project(id="d", name="D", created_at=None),
    ]
    assert activity_counts(projects, now) == {3: 1, 6: 1, 12: 2}


def test_render_client_activity_metadata():
    item = render_client_activity(
        Client(id="c1", name="Acme"),
        [Project(id="a", name="A", created_at="2024-05-01T08:00:00")],
        now=datetime(2024, 6, 15),
    )
    assert item.metadata["projects_last_3_months"] == 1
    assert "Projects created in the last 12 months: 1" in item.text


def test_parse_ts_converts_aware_to_naive_utc():
    assert parse_ts("2024-06-01T12:00:00+02:00") == datetime(2024, 6, 1, 10, 0)


def test_fmt_helpers_fall_back():
    assert fmt_date(None) == "Not set"
    assert fmt_date("sometime") == "sometime"
    assert fmt_timestamp("2024-06-01T10:05:00") == "2024-06-01 10:05"
