"""Tests for the citation formatter."""

from __future__ import annotations

from sidekick.db.models import SourceType
from sidekick.rag.citations import FALLBACK_LABEL, display_name, excerpt, format_citations
from sidekick.rag.evidence import EvidenceItem


def test_excerpt_long_text_is_cut_with_ellipsis():
    text = "a" * 200
    assert excerpt(text) == "a" * 150 + "..."


def test_excerpt_short_text_unchanged():
    assert excerpt("short answer") == "short answer"


def test_excerpt_exact_limit_has_no_ellipsis():
    text = "b" * 150
    assert excerpt(text) == text


def test_display_name_response():
    item = EvidenceItem(
        "...",
        SourceType.INTERVIEW_RESPONSE,
        {"stakeholder_name": "Alice Chen", "question_category": "Budget"},
    )
    assert display_name(item) == "Alice Chen - Budget"


def test_display_name_document_and_upload():
    doc = EvidenceItem("...", SourceType.DOCUMENT, {"title": "Requirements Draft"})
    upload = EvidenceItem("...", SourceType.UPLOAD_CONTENT, {"file_name": "notes.pdf"})
    assert display_name(doc) == "Doc: Requirements Draft"
    assert display_name(upload) == "File: notes.pdf"


def test_display_name_falls_back_when_metadata_missing():
    item = EvidenceItem("...", SourceType.INTERVIEW_SESSION, {"session_id": "sess1"})
    assert display_name(item) == FALLBACK_LABEL == "Project Info"


def test_display_name_falls_back_on_empty_values():
    item = EvidenceItem("...", SourceType.DOCUMENT, {"title": ""})
    assert display_name(item) == "Project Info"


def test_format_citations_one_per_item_in_order():
    items = [
        EvidenceItem("x" * 300, SourceType.STAKEHOLDER_INFO, {"stakeholder_name": "Alice"}),
        EvidenceItem("brief", SourceType.PROJECT_EXPORT, {"export_type": "full_backup"}),
    ]
    citations = format_citations(items)

    assert [c.id for c in citations] == ["source-1", "source-2"]
    assert [c.type for c in citations] == ["stakeholder_info", "project_export"]
    assert citations[0].display_name == "Alice"
    assert citations[0].excerpt == "x" * 150 + "..."
    assert citations[1].excerpt == "brief"


def test_format_citations_custom_length():
    [citation] = format_citations([EvidenceItem("abcdef", SourceType.QUESTION)], excerpt_chars=3)
    assert citation.excerpt == "abc..."


def test_format_citations_empty():
    assert format_citations([]) == []
