"""Tests for persistence layer (DuckDB run store and dedup index)."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import duckdb
import pytest

from affinity_intake.errors import StoreError
from affinity_intake.pairs import WarningKind
from affinity_intake.persistence import DedupIndex, RunStore, chunked
from affinity_intake.runs import RunRecord, RunStatus

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_record(
    run_id,
    user_id="user-1",
    status=RunStatus.QUEUED,
    minutes=0,
    **fields,
):
    values = dict(
        id=run_id,
        user_id=user_id,
        status=status,
        memo="",
        created_at=BASE_TIME + timedelta(minutes=minutes),
        smiles="CCO",
        sequence="MKT",
        model_version="v1",
    )
    values.update(fields)
    return RunRecord(**values)


@pytest.fixture
def store(tmp_path):
    run_store = RunStore(tmp_path / "runs.duckdb")
    yield run_store
    run_store.close()


# ============================================================================
# RunStore Tests
# ============================================================================

def test_store_creates_database(tmp_path):
    """Test that RunStore creates .duckdb file at specified path."""
    db_path = tmp_path / "nested" / "runs.duckdb"
    assert not db_path.exists()

    store = RunStore(db_path)
    store.close()

    assert db_path.exists()


def test_insert_and_count(store):
    inserted = store.insert_runs([make_record("r1"), make_record("r2")])

    assert inserted == 2
    assert store.count_runs() == 2


def test_insert_empty_batch(store):
    assert store.insert_runs([]) == 0
    assert store.count_runs() == 0


def test_insert_round_trips_fields(store):
    record = make_record(
        "r1",
        status=RunStatus.FAILED,
        memo="batch A",
        ligand_name="ethanol",
        gene_name="TP53",
        indication_id="EFO_0000565",
        target_identifier="ENSG00000141510",
        association_score=0.42,
        warnings=[WarningKind.INVALID_SMILES, WarningKind.SEQUENCE_MISSING],
    )
    store.insert_runs([record])

    df, total = store.list_runs("user-1")

    assert total == 1
    row = df.row(0, named=True)
    assert row["status"] == "failed"
    assert row["memo"] == "batch A"
    assert row["warnings"] == ["invalid_smiles", "sequence_missing"]
    assert row["association_score"] == pytest.approx(0.42)
    assert row["target_identifier"] == "ENSG00000141510"
    assert row["affinity_value"] is None


def test_insert_is_all_or_nothing(store):
    """A failing batch leaves no partial rows behind."""
    store.insert_runs([make_record("existing")])

    # Duplicate primary key in the second position aborts the whole batch
    with pytest.raises(duckdb.Error):
        store.insert_runs([make_record("fresh"), make_record("existing")])

    assert store.count_runs() == 1
    df, _ = store.list_runs("user-1")
    assert df["id"].to_list() == ["existing"]


def test_store_usable_after_failed_insert(store):
    store.insert_runs([make_record("r1")])
    with pytest.raises(duckdb.Error):
        store.insert_runs([make_record("r1")])

    assert store.insert_runs([make_record("r2")]) == 1
    assert store.count_runs() == 2


def test_find_done_runs_filters_status(store):
    store.insert_runs([
        make_record("q", input_hash="h1"),
        make_record("d", status=RunStatus.DONE, input_hash="h1", affinity_value=7.1, affinity_prob=0.8),
        make_record("f", status=RunStatus.FAILED, input_hash="h2"),
    ])

    df = store.find_done_runs(["h1", "h2", "h3"])

    assert df["input_hash"].to_list() == ["h1"]
    assert df["affinity_value"][0] == pytest.approx(7.1)


def test_find_done_runs_empty_input(store):
    df = store.find_done_runs([])

    assert df.height == 0
    assert df.columns == ["input_hash", "affinity_value", "affinity_prob"]


def test_find_association_scores_any_status(store):
    store.insert_runs([
        make_record("a", status=RunStatus.FAILED, indication_id="EFO_0000565",
                    target_identifier="ENSG1", association_score=0.5),
        make_record("b", indication_id="EFO_0000565", target_identifier="ENSG2"),
        make_record("c", indication_id="EFO_0000001", target_identifier="ENSG3",
                    association_score=0.9),
    ])

    df = store.find_association_scores("EFO_0000565", ["ENSG1", "ENSG2", "ENSG3"])

    assert df["target_identifier"].to_list() == ["ENSG1"]


def test_list_runs_scoped_to_user(store):
    store.insert_runs([
        make_record("mine"),
        make_record("theirs", user_id="user-2"),
    ])

    df, total = store.list_runs("user-1")

    assert total == 1
    assert df["id"].to_list() == ["mine"]


def test_list_runs_default_newest_first(store):
    store.insert_runs([
        make_record("old", minutes=0),
        make_record("new", minutes=10),
        make_record("mid", minutes=5),
    ])

    df, _ = store.list_runs("user-1")

    assert df["id"].to_list() == ["new", "mid", "old"]


def test_list_runs_affinity_sort_nulls_last(store):
    store.insert_runs([
        make_record("none", status=RunStatus.QUEUED),
        make_record("low", status=RunStatus.DONE, affinity_value=1.0),
        make_record("high", status=RunStatus.DONE, affinity_value=9.0),
    ])

    df, _ = store.list_runs("user-1", sort="affinity_value_desc")

    assert df["id"].to_list() == ["high", "low", "none"]


def test_list_runs_search(store):
    store.insert_runs([
        make_record("a", memo="Leukemia screen", ligand_name="imatinib"),
        make_record("b", gene_name="ABL1"),
        make_record("c", smiles="CCN"),
    ])

    by_memo, _ = store.list_runs("user-1", search="leukemia")
    by_gene, _ = store.list_runs("user-1", search="abl")
    by_smiles, _ = store.list_runs("user-1", search="CCN")
    by_partial_smiles, _ = store.list_runs("user-1", search="CN")

    assert by_memo["id"].to_list() == ["a"]
    assert by_gene["id"].to_list() == ["b"]
    assert by_smiles["id"].to_list() == ["c"]
    assert by_partial_smiles.height == 0


def test_list_runs_pagination(store):
    store.insert_runs([make_record(f"r{i}", minutes=i) for i in range(5)])

    first, total = store.list_runs("user-1", page=0, page_size=2)
    last, _ = store.list_runs("user-1", page=2, page_size=2)

    assert total == 5
    assert first["id"].to_list() == ["r4", "r3"]
    assert last["id"].to_list() == ["r0"]


def test_list_runs_rejects_unknown_sort(store):
    with pytest.raises(ValueError, match="Invalid sort"):
        store.list_runs("user-1", sort="smiles; DROP TABLE runs")


def test_store_context_manager(tmp_path):
    db_path = tmp_path / "ctx.duckdb"

    with RunStore(db_path) as store:
        store.insert_runs([make_record("r1")])

    with RunStore(db_path) as store:
        assert store.count_runs() == 1


# ============================================================================
# DedupIndex Tests
# ============================================================================

def test_chunked():
    assert chunked(range(5), 2) == [[0, 1], [2, 3], [4]]
    assert chunked([], 3) == []


def test_find_done_keeps_newest_result(store):
    store.insert_runs([
        make_record("old", status=RunStatus.DONE, minutes=0, input_hash="h1", affinity_value=1.0),
        make_record("new", status=RunStatus.DONE, minutes=5, input_hash="h1", affinity_value=2.0),
    ])

    found = DedupIndex(store).find_done(["h1", "h1", "missing"])

    assert set(found) == {"h1"}
    assert found["h1"].affinity_value == pytest.approx(2.0)


def test_find_done_queries_in_chunks(store):
    hashes = [f"h{i:03d}" for i in range(7)]
    index = DedupIndex(store, chunk_size=3)

    with patch.object(store, "find_done_runs", wraps=store.find_done_runs) as spy:
        index.find_done(hashes)

    assert [len(c.args[0]) for c in spy.call_args_list] == [3, 3, 1]


def test_find_done_raises_store_error():
    failing_store = Mock()
    failing_store.find_done_runs.side_effect = duckdb.IOException("disk gone")

    with pytest.raises(StoreError) as exc_info:
        DedupIndex(failing_store).find_done(["h1"])

    assert exc_info.value.status_code == 500


def test_find_known_scores(store):
    store.insert_runs([
        make_record("a", indication_id="EFO_0000565", target_identifier="ENSG1", association_score=0.3),
    ])

    known = DedupIndex(store).find_known_scores([
        ("EFO_0000565", "ENSG1"),
        ("EFO_0000565", "ENSG2"),
        ("EFO_0000565", None),
    ])

    assert known == {("EFO_0000565", "ENSG1"): pytest.approx(0.3)}


def test_find_known_scores_raises_store_error():
    failing_store = Mock()
    failing_store.find_association_scores.side_effect = duckdb.IOException("disk gone")

    with pytest.raises(StoreError, match="Association score lookup failed"):
        DedupIndex(failing_store).find_known_scores([("EFO_0000565", "ENSG1")])
