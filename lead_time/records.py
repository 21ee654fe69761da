"""
Typed work-item records, the sorted Dataset they form, and the per-type
active/inactive filter set.

Lead time is an inclusive day count: an item committed and closed on the same
day has a lead time of 1.
"""

from __future__ import annotations

import datetime as _dt
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import pandas as pd

try:
    from .utils import canonical_json_hash
except ImportError:
    from utils import canonical_json_hash


def _as_date(value: Any) -> _dt.date:
    """Truncate a date, datetime or pandas Timestamp to a calendar date."""
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    raise TypeError(f"Expected a date-like value, got {type(value).__name__}")


def compute_lead_time_days(committed_at: Any, closed_at: Any) -> int:
    """
    Inclusive lead time in days.

    Time-of-day is dropped before subtracting, so the result is
    (closed date - committed date) in whole days, plus one.

    Raises:
        ValueError: If closed_at falls on an earlier day than committed_at
    """
    committed = _as_date(committed_at)
    closed = _as_date(closed_at)
    if closed < committed:
        raise ValueError(
            f"closed date {closed.isoformat()} is before committed date {committed.isoformat()}"
        )
    return (closed - committed).days + 1


def parse_calendar_date(value: Any) -> Optional[_dt.date]:
    """
    Permissive calendar-date parsing.

    Accepts anything pandas.to_datetime understands (ISO dates, ISO datetimes
    with or without offsets, common day/month forms). Time-of-day and offsets
    are discarded. Returns None when the value does not parse.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, OverflowError, TypeError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.date()


@dataclass(frozen=True)
class WorkItemRecord:
    """One validated work item. lead_time_days is derived, never passed in."""

    id: str
    item_type: str
    committed_at: _dt.date
    closed_at: _dt.date
    lead_time_days: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "lead_time_days",
            compute_lead_time_days(self.committed_at, self.closed_at),
        )


@dataclass(frozen=True)
class Dataset:
    """
    Records ordered ascending by closed_at (stable on ties).

    Instances are immutable; a new ingestion produces a new Dataset.
    """

    records: Tuple[WorkItemRecord, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[WorkItemRecord]) -> "Dataset":
        """Build a Dataset, sorting by closed date while keeping input order on ties."""
        return cls(records=tuple(sorted(records, key=lambda r: r.closed_at)))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[WorkItemRecord]:
        return iter(self.records)

    @property
    def item_types(self) -> List[str]:
        """Distinct item types in first-seen order."""
        return list(dict.fromkeys(r.item_type for r in self.records))

    @property
    def lead_times(self) -> List[int]:
        return [r.lead_time_days for r in self.records]

    def records_of_type(self, item_type: str) -> List[WorkItemRecord]:
        return [r for r in self.records if r.item_type == item_type]

    def to_frame(self) -> pd.DataFrame:
        """
        Tabular view for rendering collaborators.

        Columns: id, item_type, committed_at, closed_at, lead_time_days and
        closed_timestamp (closed date as a pandas Timestamp for time axes).
        """
        columns = ["id", "item_type", "committed_at", "closed_at", "lead_time_days"]
        df = pd.DataFrame([asdict(r) for r in self.records], columns=columns)
        df["closed_timestamp"] = pd.to_datetime(df["closed_at"])
        return df

    def fingerprint(self) -> str:
        """Content hash; equal datasets hash equal."""
        payload = {
            "records": [
                [
                    r.id,
                    r.item_type,
                    r.committed_at.isoformat(),
                    r.closed_at.isoformat(),
                    r.lead_time_days,
                ]
                for r in self.records
            ]
        }
        _, full = canonical_json_hash(payload)
        return full


class TypeFilterSet:
    """
    Active/inactive flag per item type.

    Types never registered read as inactive. Changing the flag of an unknown
    type raises KeyError, since only types of the loaded Dataset are meaningful.
    """

    def __init__(self, flags: Optional[Mapping[str, bool]] = None) -> None:
        self._flags: Dict[str, bool] = {k: bool(v) for k, v in (flags or {}).items()}

    @classmethod
    def from_types(cls, item_types: Iterable[str]) -> "TypeFilterSet":
        """All given types, each active."""
        return cls({t: True for t in item_types})

    def __contains__(self, item_type: object) -> bool:
        return item_type in self._flags

    def __len__(self) -> int:
        return len(self._flags)

    def __iter__(self) -> Iterator[str]:
        return iter(self._flags)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeFilterSet):
            return NotImplemented
        return self._flags == other._flags

    def __repr__(self) -> str:
        return f"TypeFilterSet({self._flags!r})"

    def is_active(self, item_type: str) -> bool:
        return self._flags.get(item_type, False)

    def set_active(self, item_type: str, active: bool) -> None:
        if item_type not in self._flags:
            raise KeyError(f"Unknown item type: {item_type!r}")
        self._flags[item_type] = bool(active)

    def toggle(self, item_type: str) -> bool:
        """Flip one type and return its new state."""
        self.set_active(item_type, not self.is_active(item_type))
        return self._flags[item_type]

    def active_types(self) -> List[str]:
        return [t for t, active in self._flags.items() if active]

    def as_dict(self) -> Dict[str, bool]:
        return dict(self._flags)

    def copy(self) -> "TypeFilterSet":
        return TypeFilterSet(self._flags)
