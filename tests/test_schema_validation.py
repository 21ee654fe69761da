import pytest

from lead_time.csv_processor import NoValidDataError, SchemaError, decode_text
from lead_time.main import (
    ColumnConfig,
    filter_complete_rows,
    ingest_text,
    validate_schema,
)

EXPECTED = ["ID", "Tipo de Item", "Commited Date", "Closed Date"]


def test_missing_column_is_named_with_found_and_expected_header():
    text = "ID,Tipo de Item,Commited Date\nA,Bug,2025-01-01\n"
    with pytest.raises(SchemaError) as excinfo:
        ingest_text(text)
    err = excinfo.value
    assert err.missing == ["Closed Date"]
    assert err.found_header == ["ID", "Tipo de Item", "Commited Date"]
    assert err.expected_header == EXPECTED
    message = str(err)
    assert "'Closed Date'" in message
    assert "Found header: ID, Tipo de Item, Commited Date." in message
    assert "Expected header: ID, Tipo de Item, Commited Date, Closed Date." in message


def test_every_missing_column_is_listed_and_only_those():
    with pytest.raises(SchemaError) as excinfo:
        validate_schema(["Closed Date", "Key", "ID"], ColumnConfig())
    assert excinfo.value.missing == ["Tipo de Item", "Commited Date"]


def test_empty_input_reports_all_columns_missing():
    with pytest.raises(SchemaError) as excinfo:
        ingest_text("")
    assert excinfo.value.missing == EXPECTED
    assert excinfo.value.found_header == []


def test_header_cells_are_matched_after_trimming():
    remap = validate_schema([" ID ", "Tipo de Item", "Commited Date", "Closed Date"], ColumnConfig())
    assert remap == {" ID ": "ID"}


def test_custom_column_names():
    columns = ColumnConfig(
        id_column="Key",
        type_column="Work type",
        committed_column="Start",
        closed_column="Done",
    )
    text = "Key,Work type,Start,Done\nK-1,Task,2025-02-01,2025-02-04\n"
    outcome = ingest_text(text, columns)
    assert [r.id for r in outcome.dataset] == ["K-1"]
    assert outcome.dataset.records[0].lead_time_days == 4


def test_row_with_blank_item_type_is_dropped_not_fatal():
    text = (
        "ID,Tipo de Item,Commited Date,Closed Date\n"
        "A,Bug,2025-01-01,2025-01-01\n"
        "B,,2025-01-01,2025-01-03\n"
        "C,Bug,2025-01-02,2025-01-04\n"
    )
    outcome = ingest_text(text)
    assert [r.id for r in outcome.dataset] == ["A", "C"]
    assert outcome.rows_read == 3
    assert outcome.rows_skipped == 1
    assert "1 rows skipped for incompleteness" in outcome.diagnostics


def test_whitespace_only_cells_count_as_empty():
    table = decode_text(
        "ID,Tipo de Item,Commited Date,Closed Date\n"
        "A,Bug,2025-01-01,2025-01-01\n"
        "B,Bug,   ,2025-01-03\n"
    )
    kept, result = filter_complete_rows(table, ColumnConfig())
    assert list(kept["ID"]) == ["A"]
    assert result.excluded_rows == 1
    assert result.metrics["rows_skipped"] == 1
    assert "2 → 1" in result.summarize()


def test_no_complete_rows_raises_no_valid_data_error():
    text = (
        "ID,Tipo de Item,Commited Date,Closed Date\n"
        "A,,2025-01-01,2025-01-01\n"
        ",Bug,2025-01-01,2025-01-03\n"
    )
    with pytest.raises(NoValidDataError) as excinfo:
        ingest_text(text)
    assert not isinstance(excinfo.value, SchemaError)
    assert excinfo.value.rows_read == 2
    assert excinfo.value.rows_skipped == 2


def test_header_only_raises_no_valid_data_error():
    with pytest.raises(NoValidDataError) as excinfo:
        ingest_text("ID,Tipo de Item,Commited Date,Closed Date\n")
    assert excinfo.value.rows_read == 0


def test_verbose_completeness_filter_records_summary_event():
    table = decode_text(
        "ID,Tipo de Item,Commited Date,Closed Date\n"
        "A,Bug,2025-01-01,2025-01-01\n"
        "B,,2025-01-01,2025-01-03\n"
    )
    _, quiet = filter_complete_rows(table, ColumnConfig())
    assert quiet.events == []

    _, result = filter_complete_rows(table, ColumnConfig(), verbose=True)
    assert len(result.events) == 1
    assert result.events[0].startswith("filter_complete_rows result: 2 → 1")
    assert "excluded_rows=1" in result.events[0]
    assert result.warnings == ["1 rows skipped for incompleteness"]
