import dataclasses
from datetime import date, datetime

import pandas as pd
import pytest

from lead_time.csv_processor import DataError
from lead_time.main import ingest_text
from lead_time.records import (
    Dataset,
    WorkItemRecord,
    compute_lead_time_days,
    parse_calendar_date,
)

HEADER = "ID,Tipo de Item,Commited Date,Closed Date\n"


def make_text(rows: list[str]) -> str:
    return HEADER + "\n".join(rows) + "\n"


def test_lead_time_is_inclusive():
    assert compute_lead_time_days(date(2025, 1, 1), date(2025, 1, 1)) == 1
    assert compute_lead_time_days(date(2025, 1, 1), date(2025, 1, 3)) == 3
    assert compute_lead_time_days(date(2024, 12, 31), date(2025, 3, 1)) == 61


def test_lead_time_ignores_time_of_day():
    # 2 hours apart but on consecutive days
    assert compute_lead_time_days(datetime(2025, 1, 1, 23, 0), datetime(2025, 1, 2, 1, 0)) == 2
    # 23 hours apart on the same day
    assert compute_lead_time_days(
        pd.Timestamp("2025-01-01 00:30"), pd.Timestamp("2025-01-01 23:30")
    ) == 1


def test_lead_time_rejects_reversed_dates():
    with pytest.raises(ValueError):
        compute_lead_time_days(date(2025, 1, 2), date(2025, 1, 1))


def test_parse_calendar_date_is_permissive():
    assert parse_calendar_date("2025-01-05") == date(2025, 1, 5)
    assert parse_calendar_date(" 2025-01-05 ") == date(2025, 1, 5)
    assert parse_calendar_date("2025-01-05T18:30:00") == date(2025, 1, 5)
    assert parse_calendar_date("2025-01-05T23:30:00+05:00") == date(2025, 1, 5)
    assert parse_calendar_date("not a date") is None
    assert parse_calendar_date("2025-13-45") is None
    assert parse_calendar_date("") is None
    assert parse_calendar_date(None) is None


def test_record_derives_lead_time_and_is_immutable():
    record = WorkItemRecord(
        id="A", item_type="Bug", committed_at=date(2025, 1, 1), closed_at=date(2025, 1, 3)
    )
    assert record.lead_time_days == 3
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.lead_time_days = 10  # type: ignore[misc]
    with pytest.raises(TypeError):
        WorkItemRecord(  # type: ignore[call-arg]
            id="A",
            item_type="Bug",
            committed_at=date(2025, 1, 1),
            closed_at=date(2025, 1, 3),
            lead_time_days=5,
        )


def test_example_rows_give_expected_lead_times():
    outcome = ingest_text(
        make_text(["A,Bug,2025-01-01,2025-01-01", "B,Bug,2025-01-01,2025-01-03"])
    )
    assert outcome.dataset.lead_times == [1, 3]


def test_id_and_type_are_trimmed():
    outcome = ingest_text(make_text(["  A-1 , Bug ,2025-01-01,2025-01-02"]))
    record = outcome.dataset.records[0]
    assert record.id == "A-1"
    assert record.item_type == "Bug"


def test_unparseable_date_fails_whole_ingestion():
    text = make_text(
        [
            "A,Bug,2025-01-01,2025-01-02",
            "B,Bug,2025-01-01,yesterday-ish",
            "C,Bug,2025-01-01,2025-01-05",
        ]
    )
    with pytest.raises(DataError) as excinfo:
        ingest_text(text)
    err = excinfo.value
    assert err.record_id == "B"
    assert err.fields == ("Closed Date",)
    assert err.values == {"Closed Date": "yesterday-ish"}
    assert err.expected_format == "YYYY-MM-DD"
    assert "'B'" in str(err)
    assert "YYYY-MM-DD" in str(err)


def test_both_dates_invalid_are_both_named():
    with pytest.raises(DataError) as excinfo:
        ingest_text(make_text(["X,Bug,soon,later"]))
    assert excinfo.value.fields == ("Commited Date", "Closed Date")


def test_closed_before_committed_fails_with_both_values():
    text = make_text(["A,Bug,2025-01-01,2025-01-02", "Z,Bug,2025-03-10,2025-03-01"])
    with pytest.raises(DataError) as excinfo:
        ingest_text(text)
    err = excinfo.value
    assert err.record_id == "Z"
    assert err.fields == ("Commited Date", "Closed Date")
    assert err.values == {"Commited Date": "2025-03-10", "Closed Date": "2025-03-01"}
    assert err.expected_format is None
    message = str(err)
    assert "2025-03-10" in message and "2025-03-01" in message
    assert "earlier" in message


def test_dataset_is_sorted_by_closed_date_with_stable_ties():
    text = make_text(
        [
            "C,Story,2025-01-01,2025-01-05",
            "A,Bug,2025-01-01,2025-01-03",
            "B,Story,2025-01-02,2025-01-03",
            "D,Bug,2025-01-01,2025-01-01",
        ]
    )
    dataset = ingest_text(text).dataset
    assert [r.id for r in dataset] == ["D", "A", "B", "C"]
    # first-seen order follows the sorted dataset
    assert dataset.item_types == ["Bug", "Story"]


def test_reingesting_same_text_is_deterministic():
    text = make_text(
        [
            "B,Story,2025-01-02,2025-01-03",
            "A,Bug,2025-01-01,2025-01-03",
            "C,Bug,2025-01-01,2025-01-01",
        ]
    )
    first = ingest_text(text).dataset
    second = ingest_text(text).dataset
    assert first == second
    assert first.fingerprint() == second.fingerprint()
    assert Dataset().fingerprint() != first.fingerprint()


def test_to_frame_exposes_records_for_rendering():
    dataset = ingest_text(
        make_text(["A,Bug,2025-01-01,2025-01-01", "B,Story,2025-01-01,2025-01-03"])
    ).dataset
    frame = dataset.to_frame()
    assert list(frame.columns) == [
        "id",
        "item_type",
        "committed_at",
        "closed_at",
        "lead_time_days",
        "closed_timestamp",
    ]
    assert list(frame["lead_time_days"]) == [1, 3]
    assert pd.api.types.is_datetime64_any_dtype(frame["closed_timestamp"])
