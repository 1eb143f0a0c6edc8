"""Tests for the project-scoped knowledge chunk store."""

from __future__ import annotations

import pytest

from sidekick.db.chunks import BuildInProgressError, ChunkStore
from sidekick.db.models import KnowledgeChunk, SourceType

DIM = 4


def _chunk(project_id="p1", text="Stakeholder: Alice", vector=None, **kw) -> KnowledgeChunk:
    return KnowledgeChunk(
        project_id=project_id,
        source_type=kw.pop("source_type", SourceType.STAKEHOLDER_INFO),
        chunk_text=text,
        embedding=vector or [1.0, 0.0, 0.0, 0.0],
        **kw,
    )


@pytest.fixture
def store(tmp_db) -> ChunkStore:
    return ChunkStore(tmp_db, dimensions=DIM)


# ------------------------------------------------------------------
# insert
# ------------------------------------------------------------------


def test_insert_assigns_id(store):
    chunk = _chunk()
    chunk_id = store.insert(chunk)
    assert chunk_id
    assert chunk.id == chunk_id
    assert store.count("p1") == 1


def test_insert_rejects_empty_text(store):
    with pytest.raises(ValueError, match="empty"):
        store.insert(_chunk(text="   "))


def test_insert_rejects_wrong_dimensions(store):
    with pytest.raises(ValueError, match="dimensions"):
        store.insert(_chunk(vector=[1.0, 0.0]))


def test_metadata_round_trips_through_search(store):
    store.insert(_chunk(metadata={"stakeholder_id": "s1", "stakeholder_name": "Alice"}))
    [hit] = store.search("p1", [1.0, 0.0, 0.0, 0.0], threshold=0.5, limit=5)
    assert hit.metadata == {"stakeholder_id": "s1", "stakeholder_name": "Alice"}
    assert hit.source_type is SourceType.STAKEHOLDER_INFO


# ------------------------------------------------------------------
# search
# ------------------------------------------------------------------


def test_search_orders_by_similarity(store):
    store.insert(_chunk(text="close", vector=[1.0, 0.2, 0.0, 0.0]))
    store.insert(_chunk(text="exact", vector=[1.0, 0.0, 0.0, 0.0]))
    hits = store.search("p1", [1.0, 0.0, 0.0, 0.0], threshold=0.5, limit=5)
    assert [h.chunk_text for h in hits] == ["exact", "close"]
    assert hits[0].similarity == pytest.approx(1.0, abs=1e-5)
    assert hits[0].similarity >= hits[1].similarity


def test_search_applies_threshold(store):
    store.insert(_chunk(text="orthogonal", vector=[0.0, 1.0, 0.0, 0.0]))
    store.insert(_chunk(text="weak", vector=[1.0, 2.0, 0.0, 0.0]))  # cos ≈ 0.447
    store.insert(_chunk(text="strong", vector=[1.0, 1.0, 0.0, 0.0]))  # cos ≈ 0.707
    hits = store.search("p1", [1.0, 0.0, 0.0, 0.0], threshold=0.65, limit=10)
    assert [h.chunk_text for h in hits] == ["strong"]
    assert all(h.similarity > 0.65 for h in hits)


def test_search_applies_limit(store):
    for i in range(6):
        store.insert(_chunk(text=f"chunk {i}"))
    hits = store.search("p1", [1.0, 0.0, 0.0, 0.0], threshold=0.0, limit=3)
    assert len(hits) == 3


def test_search_is_project_scoped(store):
    store.insert(_chunk(project_id="p1", text="mine"))
    store.insert(_chunk(project_id="p2", text="theirs"))
    hits = store.search("p1", [1.0, 0.0, 0.0, 0.0], threshold=0.0, limit=10)
    assert [h.chunk_text for h in hits] == ["mine"]


def test_search_rejects_wrong_query_dimensions(store):
    with pytest.raises(ValueError):
        store.search("p1", [1.0, 0.0], threshold=0.5, limit=5)


# ------------------------------------------------------------------
# staged rebuild
# ------------------------------------------------------------------


def test_staged_rows_invisible_until_commit(store):
    store.insert(_chunk(text="old"))
    build = store.begin_build("p1")
    store.insert(_chunk(text="new"), build_id=build)

    assert store.count("p1") == 1
    assert [h.chunk_text for h in store.search("p1", [1, 0, 0, 0], 0.0, 10)] == ["old"]

    assert store.commit_build("p1", build) == 1
    assert [h.chunk_text for h in store.search("p1", [1, 0, 0, 0], 0.0, 10)] == ["new"]


def test_discard_build_keeps_live_set(store):
    store.insert(_chunk(text="old"))
    build = store.begin_build("p1")
    store.insert(_chunk(text="new"), build_id=build)
    store.discard_build("p1", build)

    assert store.count("p1") == 1
    total = store._conn.execute("SELECT COUNT(*) FROM knowledge_chunks").fetchone()[0]
    assert total == 1


def test_begin_build_refuses_while_another_build_runs(store):
    running = store.begin_build("p1", holder="host-a:10")
    store.insert(_chunk(text="in progress"), build_id=running)

    with pytest.raises(BuildInProgressError) as exc_info:
        store.begin_build("p1", holder="host-b:20")

    assert exc_info.value.holder == "host-a:10"
    assert store.commit_build("p1", running) == 1
    assert [h.chunk_text for h in store.search("p1", [1, 0, 0, 0], 0.0, 10)] == ["in progress"]


def test_leases_are_per_project(store):
    store.begin_build("p1")
    store.begin_build("p2")


def test_begin_build_after_release(store):
    first = store.begin_build("p1")
    store.discard_build("p1", first)
    second = store.begin_build("p1")
    assert second != first


def test_stale_lease_is_taken_over_and_its_rows_dropped(store):
    crashed = store.begin_build("p1", holder="gone:1")
    store.insert(_chunk(text="orphan"), build_id=crashed)
    store._conn.execute("UPDATE reindex_leases SET heartbeat_at = heartbeat_at - 3600")
    store._conn.commit()

    store.begin_build("p1")
    total = store._conn.execute("SELECT COUNT(*) FROM knowledge_chunks").fetchone()[0]
    assert total == 0


def test_heartbeat_keeps_lease_fresh(store):
    build = store.begin_build("p1")
    store._conn.execute("UPDATE reindex_leases SET heartbeat_at = heartbeat_at - 3600")
    store._conn.commit()
    store.heartbeat("p1", build)
    with pytest.raises(BuildInProgressError):
        store.begin_build("p1")


def test_taken_over_build_cannot_commit(store):
    store.insert(_chunk(text="live"))
    slow = store.begin_build("p1")
    store.insert(_chunk(text="slow"), build_id=slow)
    store._conn.execute("UPDATE reindex_leases SET heartbeat_at = heartbeat_at - 3600")
    store._conn.commit()
    store.begin_build("p1", holder="newer:2")

    with pytest.raises(BuildInProgressError):
        store.heartbeat("p1", slow)
    with pytest.raises(BuildInProgressError):
        store.commit_build("p1", slow)
    assert [h.chunk_text for h in store.search("p1", [1, 0, 0, 0], 0.0, 10)] == ["live"]


def test_commit_build_leaves_other_projects_alone(store):
    store.insert(_chunk(project_id="p2", text="other"))
    build = store.begin_build("p1")
    store.insert(_chunk(text="new"), build_id=build)
    store.commit_build("p1", build)
    assert store.count("p2") == 1


def test_count_by_type(store):
    store.insert(_chunk())
    store.insert(_chunk(source_type=SourceType.QUESTION, text="Question: why?"))
    store.insert(_chunk(source_type=SourceType.QUESTION, text="Question: how?"))
    assert store.count_by_type("p1") == {"question": 2, "stakeholder_info": 1}


def test_delete_by_project(store):
    store.insert(_chunk())
    store.insert(_chunk(project_id="p2"))
    assert store.delete_by_project("p1") == 1
    assert store.count("p1") == 0
    assert store.count("p2") == 1
