"""Tests for the context assembler (merge, dedup, bound)."""

from __future__ import annotations

import pytest

from sidekick.db.models import SourceType
from sidekick.rag.assembler import MAX_CONTEXT_ITEMS, merge
from sidekick.rag.evidence import EvidenceItem


def _direct(i: int, source_type=SourceType.STAKEHOLDER_INFO, key="stakeholder_id") -> EvidenceItem:
    return EvidenceItem(text=f"direct {i}", source_type=source_type, metadata={key: f"id{i}"})


def _semantic(i: int, source_type=SourceType.INTERVIEW_RESPONSE, key="response_id") -> EvidenceItem:
    return EvidenceItem(
        text=f"semantic {i}", source_type=source_type, metadata={key: f"id{i}"}, similarity=0.9
    )


# ---------------------------------------------------------------------------
# Dedup key
# ---------------------------------------------------------------------------


def test_dedup_key_prefers_stakeholder_then_session_then_document():
    item = EvidenceItem("x", SourceType.INTERVIEW_RESPONSE,
                        {"response_id": "r1", "session_id": "x1", "stakeholder_id": "s2"})
    assert item.dedup_key == "s2"
    assert EvidenceItem("x", SourceType.RESPONSE_TIMELINE, {"session_id": "x1"}).dedup_key == "x1"
    assert EvidenceItem("x", SourceType.DOCUMENT_CONTENT, {"document_id": "d1"}).dedup_key == "d1"


def test_dedup_key_absent_for_other_ids():
    assert EvidenceItem("x", SourceType.UPLOAD, {"upload_id": "u1"}).dedup_key is None
    assert EvidenceItem("x", SourceType.DOCUMENT, {"document_id": ""}).dedup_key is None


# ---------------------------------------------------------------------------
# merge
# ---------------------------------------------------------------------------


def test_direct_items_come_first():
    merged = merge([_direct(1), _direct(2)], [_semantic(1)])
    assert [m.text for m in merged] == ["direct 1", "direct 2", "semantic 1"]


def test_semantic_duplicate_of_direct_is_dropped():
    merged = merge([_direct(1)], [_semantic(1, SourceType.STAKEHOLDER_INFO, "stakeholder_id")])
    assert [m.text for m in merged] == ["direct 1"]
    assert merged[0].is_direct


def test_semantic_response_of_known_stakeholder_is_dropped():
    stakeholder = EvidenceItem("Stakeholder: Bob", SourceType.STAKEHOLDER_INFO, {"stakeholder_id": "s2"})
    session = EvidenceItem("Interview: Bob", SourceType.INTERVIEW_SESSION,
                           {"session_id": "x1", "stakeholder_id": "s2"})
    response = EvidenceItem(
        "Response: tight budget",
        SourceType.INTERVIEW_RESPONSE,
        {"response_id": "r1", "stakeholder_id": "s2", "session_id": "x1"},
        similarity=0.8,
    )
    assert merge([stakeholder, session], [response]) == [stakeholder, session]


def test_direct_items_sharing_a_key_are_all_kept():
    # a stakeholder and their session both carry stakeholder_id
    stakeholder = _direct(1)
    session = EvidenceItem("session", SourceType.INTERVIEW_SESSION,
                           {"session_id": "x1", "stakeholder_id": "id1"})
    assert merge([stakeholder, session], []) == [stakeholder, session]


def test_document_and_its_full_text_collapse():
    record = _direct(1, SourceType.DOCUMENT, "document_id")
    body = _semantic(1, SourceType.DOCUMENT_CONTENT, "document_id")
    assert merge([record], [body]) == [record]


def test_semantic_items_sharing_a_key_keep_the_first():
    first = _semantic(1, SourceType.INTERVIEW_RESPONSE, "session_id")
    second = EvidenceItem("semantic again", SourceType.RESPONSE_TIMELINE,
                          {"session_id": "id1"}, similarity=0.7)
    assert merge([], [first, second]) == [first]


def test_no_semantic_item_repeats_a_present_key():
    direct = [_direct(i) for i in range(3)]
    semantic = [
        EvidenceItem(f"s{i}", SourceType.INTERVIEW_RESPONSE,
                     {"stakeholder_id": f"id{i % 5}"}, similarity=0.9)
        for i in range(10)
    ]
    merged = merge(direct, semantic)
    keys = [m.dedup_key for m in merged]
    assert len(keys) == len(set(keys)) == 5


def test_items_without_identity_are_kept():
    anonymous = EvidenceItem(text="x", source_type=SourceType.QUESTION)
    assert len(merge([anonymous, anonymous], [anonymous])) == 3


def test_capped_at_max_items():
    merged = merge([_direct(i) for i in range(15)], [_semantic(i) for i in range(10)])
    assert len(merged) == MAX_CONTEXT_ITEMS == 20
    assert sum(1 for m in merged if m.is_direct) == 15


def test_direct_overflow_excludes_all_semantic():
    merged = merge([_direct(i) for i in range(25)], [_semantic(i) for i in range(5)])
    assert len(merged) == 20
    assert all(m.is_direct for m in merged)
    assert [m.text for m in merged] == [f"direct {i}" for i in range(20)]


def test_custom_cap():
    assert len(merge([_direct(i) for i in range(5)], [], max_items=3)) == 3


def test_invalid_cap():
    with pytest.raises(ValueError):
        merge([], [], max_items=0)


def test_empty_inputs():
    assert merge([], []) == []
