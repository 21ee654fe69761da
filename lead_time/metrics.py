from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

try:
    from .records import Dataset, TypeFilterSet, WorkItemRecord
except ImportError:
    from records import Dataset, TypeFilterSet, WorkItemRecord


P85: float = 0.85
P95: float = 0.95
DEFAULT_PERCENTILES: Tuple[float, ...] = (P85, P95)


@dataclass(frozen=True)
class TypeSummary:
    item_type: str
    count: int
    mean: float
    min: int
    max: int

    @property
    def rounded_mean(self) -> int:
        # Half-up, so 2.5 displays as 3 rather than banker's 2.
        return int(math.floor(self.mean + 0.5))


@dataclass(frozen=True)
class PercentileReport:
    """
    Derived statistics for one (Dataset, TypeFilterSet) pair.

    type_summaries covers every type over its unfiltered membership (count
    badges stay visible when a type is toggled off). filtered_type_summaries
    covers only active types, over the filtered records.
    """

    p85: int
    p95: int
    percentiles: Dict[float, int] = field(default_factory=dict)
    total_count: int = 0
    filtered_count: int = 0
    filtered_mean: Optional[float] = None
    active_types: Tuple[str, ...] = ()
    type_summaries: Tuple[TypeSummary, ...] = ()
    filtered_type_summaries: Tuple[TypeSummary, ...] = ()

    def value_at(self, p: float) -> int:
        return self.percentiles[p]

    def summary_for(self, item_type: str, filtered: bool = False) -> Optional[TypeSummary]:
        pool = self.filtered_type_summaries if filtered else self.type_summaries
        for summary in pool:
            if summary.item_type == item_type:
                return summary
        return None

    @property
    def type_counts(self) -> Dict[str, int]:
        return {s.item_type: s.count for s in self.type_summaries}


def rank_percentile(values: Sequence[int], p: float) -> int:
    """
    Rank-indexed percentile: the element at floor(n * p) of the ascending sort.

    No interpolation. An empty input yields 0.

    Raises:
        ValueError: If p is outside [0, 1)
    """
    if not (0.0 <= p < 1.0):
        raise ValueError(f"Percentile fraction must be in [0, 1), got {p}")
    n = len(values)
    if n == 0:
        return 0
    ordered = np.sort(np.asarray(values, dtype=np.int64), kind="stable")
    return int(ordered[math.floor(n * p)])


def filter_records(dataset: Dataset, filters: TypeFilterSet) -> List[WorkItemRecord]:
    return [r for r in dataset if filters.is_active(r.item_type)]


def group_by_type(records: Iterable[WorkItemRecord]) -> Dict[str, List[WorkItemRecord]]:
    """Partition records by item type, keeping first-seen type order."""
    groups: Dict[str, List[WorkItemRecord]] = {}
    for record in records:
        groups.setdefault(record.item_type, []).append(record)
    return groups


def summarize_types(records: Iterable[WorkItemRecord]) -> Tuple[TypeSummary, ...]:
    summaries: List[TypeSummary] = []
    for item_type, members in group_by_type(records).items():
        lead_times = np.asarray([r.lead_time_days for r in members], dtype=np.int64)
        summaries.append(
            TypeSummary(
                item_type=item_type,
                count=int(lead_times.size),
                mean=float(lead_times.mean()),
                min=int(lead_times.min()),
                max=int(lead_times.max()),
            )
        )
    return tuple(summaries)


def build_percentile_report(
    dataset: Dataset,
    filters: TypeFilterSet,
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
) -> PercentileReport:
    """
    Compute the PercentileReport for the records whose type is active.

    p85 and p95 are always computed; any other fractions in `percentiles` are
    added to the report's percentiles mapping. Pure: neither input is modified.
    """
    wanted = list(DEFAULT_PERCENTILES) + [p for p in percentiles if p not in DEFAULT_PERCENTILES]
    filtered = filter_records(dataset, filters)
    lead_times = [r.lead_time_days for r in filtered]
    values = {p: rank_percentile(lead_times, p) for p in wanted}

    return PercentileReport(
        p85=values[P85],
        p95=values[P95],
        percentiles=values,
        total_count=len(dataset),
        filtered_count=len(filtered),
        filtered_mean=float(np.mean(lead_times)) if lead_times else None,
        active_types=tuple(t for t in dataset.item_types if filters.is_active(t)),
        type_summaries=summarize_types(dataset),
        filtered_type_summaries=summarize_types(filtered),
    )
