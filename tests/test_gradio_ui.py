from pathlib import Path

from lead_time.gradio_ui import _ingest_for_session, _resolve_upload_path, _run_ingest
from lead_time.main import DatasetStore

GOOD = (
    "ID,Tipo de Item,Commited Date,Closed Date\n"
    "A,Bug,2025-01-01,2025-01-01\n"
    "B,Bug,2025-01-01,2025-01-03\n"
)


def test_resolve_upload_path_accepts_known_shapes(tmp_path: Path):
    class _Upload:
        name = "/tmp/upload.csv"

    assert _resolve_upload_path(None) is None
    assert _resolve_upload_path({"name": "a.csv"}) == "a.csv"
    assert _resolve_upload_path({"tmp_path": "b.csv"}) == "b.csv"
    assert _resolve_upload_path(tmp_path / "c.csv") == str(tmp_path / "c.csv")
    assert _resolve_upload_path(_Upload()) == "/tmp/upload.csv"


def test_run_ingest_without_file():
    summary, table, text = _run_ingest(DatasetStore(), None)
    assert summary.startswith("Error: No file uploaded")
    assert table.empty
    assert text == summary


def test_run_ingest_success_then_failure_keeps_data(tmp_path: Path):
    store = DatasetStore()
    good = tmp_path / "good.csv"
    good.write_text(GOOD, encoding="utf-8")

    summary, table, text = _run_ingest(store, str(good))
    assert "**P85:** 3 days" in summary
    assert list(table["type"]) == ["Bug"]
    assert list(table["count"]) == [2]
    assert "P95: 3 days" in text

    bad = tmp_path / "bad.csv"
    bad.write_text("ID,Tipo de Item\nA,Bug\n", encoding="utf-8")
    summary, table, text = _run_ingest(store, str(bad))
    assert summary.startswith("Error: Missing required column(s)")
    assert "previously loaded data is unchanged" in summary
    assert table.empty
    assert len(store.dataset) == 2


def test_each_session_gets_its_own_store(tmp_path: Path):
    good = tmp_path / "good.csv"
    good.write_text(GOOD, encoding="utf-8")
    other = tmp_path / "other.csv"
    other.write_text(
        "ID,Tipo de Item,Commited Date,Closed Date\nT,Task,2025-02-01,2025-02-10\n",
        encoding="utf-8",
    )

    *_, first_store = _ingest_for_session(str(good), None)
    *_, second_store = _ingest_for_session(str(other), None)
    assert first_store is not second_store
    assert first_store.item_types == ["Bug"]
    assert second_store.item_types == ["Task"]

    # later clicks in the same session reuse its store
    summary, _, _, same_store = _ingest_for_session({"name": str(other)}, first_store)
    assert same_store is first_store
    assert "**P85:** 10 days" in summary
    assert second_store.item_types == ["Task"]
