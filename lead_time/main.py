#!/usr/bin/env python3
"""
Lead Time Calculator - ingestion and metrics as pure functional units.

This module exposes the pipeline steps:
- load_csv()              decode a work-item export
- validate_schema()       required columns present
- filter_complete_rows()  drop rows with an empty required value
- normalize_records()     typed records with inclusive lead time, sorted by closed date
- ingest_text() / ingest_csv()  the steps above, end to end

and DatasetStore, which owns the currently loaded Dataset and TypeFilterSet and
replaces both together on a successful ingestion. Reports are recomputed by
explicit calls to DatasetStore.report() / build_percentile_report().
"""

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

# Support both package and script execution modes
try:
    # When run as a package: python -m lead_time.main
    from .csv_processor import (
        DEFAULT_ALLOWED_EXTENSIONS,
        DEFAULT_ENCODING,
        CSVProcessingError,
        CSVTableDecoder,
        DataError,
        DecodedTable,
        NoValidDataError,
        SchemaError,
        decode_text,
    )
    from .metrics import (
        DEFAULT_PERCENTILES,
        PercentileReport,
        TypeSummary,
        build_percentile_report,
    )
    from .records import Dataset, TypeFilterSet, WorkItemRecord, parse_calendar_date
    from .utils import _sanitize_for_json, utc_timestamp_seconds, write_json
except ImportError:
    # When run directly: python lead_time/main.py
    from csv_processor import (
        DEFAULT_ALLOWED_EXTENSIONS,
        DEFAULT_ENCODING,
        CSVProcessingError,
        CSVTableDecoder,
        DataError,
        DecodedTable,
        NoValidDataError,
        SchemaError,
        decode_text,
    )
    from metrics import (
        DEFAULT_PERCENTILES,
        PercentileReport,
        TypeSummary,
        build_percentile_report,
    )
    from records import Dataset, TypeFilterSet, WorkItemRecord, parse_calendar_date
    from utils import _sanitize_for_json, utc_timestamp_seconds, write_json

# Configure logging for debugging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Documented input date format, quoted in DataError messages.
DATE_FORMAT_HINT: str = "YYYY-MM-DD"


@dataclass(frozen=True)
class ColumnConfig:
    """
    Header names for the four required columns.

    The semantic roles are fixed; only the display names are configurable.
    Defaults match the exports the dashboard was built around.
    """

    id_column: str = "ID"
    type_column: str = "Tipo de Item"
    committed_column: str = "Commited Date"
    closed_column: str = "Closed Date"

    @property
    def required(self) -> List[str]:
        return [
            self.id_column,
            self.type_column,
            self.committed_column,
            self.closed_column,
        ]


@dataclass
class LoadParams:
    """
    Parameters used when loading a work-item export.

    Attributes:
        csv_path: Path to the delimited text file to read.
        columns: Names of the identifier, item type, committed date and closed date columns.
        allowed_extensions: File suffixes accepted before decoding starts (case-insensitive).
        encoding: Text encoding of the file. utf-8-sig also strips a leading BOM.
    """

    csv_path: Optional[Path]
    columns: ColumnConfig = field(default_factory=ColumnConfig)
    allowed_extensions: Tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    encoding: str = DEFAULT_ENCODING


@dataclass
class ReportParams:
    """
    Parameters for the percentile report.

    Attributes:
        percentiles: Rank percentiles (fractions in [0, 1)). p85 and p95 are always reported.
        include_types: When set, only these item types start active. None keeps every type active.
        exclude_types: Item types switched off after include_types is applied.
    """

    percentiles: Tuple[float, ...] = DEFAULT_PERCENTILES
    include_types: Optional[List[str]] = None
    exclude_types: List[str] = field(default_factory=list)


class FilterResult:
    """Container for filter operation results and diagnostics."""

    def __init__(self, label: Optional[str] = None) -> None:
        # Identification
        self.label: Optional[str] = label

        # Row counters
        self.original_rows: int = 0
        self.filtered_rows: int = 0
        self.excluded_rows: int = 0

        # Diagnostics
        self.warnings: list[str] = []
        self.events: list[str] = []
        self.metrics: dict[str, int | float | str] = {}

        # Timing
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    # Timing helpers
    def start(self) -> None:
        import time

        self.started_at = time.perf_counter()

    def stop(self) -> None:
        import time

        self.finished_at = time.perf_counter()
        if self.started_at is not None:
            self.elapsed_ms = (self.finished_at - self.started_at) * 1000.0

    # Logging helpers
    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning(message)

    def add_event(self, message: str) -> None:
        """Add an info-level event message."""
        self.events.append(message)
        logger.info(message)

    def add_metric(self, name: str, value: int | float | str) -> None:
        """Attach a named metric."""
        self.metrics[name] = value

    def summarize(self) -> str:
        """Produce a concise summary string for diagnostics."""
        lbl = f"{self.label} " if self.label else ""
        parts = [f"{lbl}result: {self.original_rows} → {self.filtered_rows}"]
        if self.excluded_rows:
            parts.append(f"excluded_rows={self.excluded_rows}")
        if self.elapsed_ms is not None:
            parts.append(f"elapsed_ms={self.elapsed_ms:.1f}")
        if self.metrics:
            parts.append(f"metrics={self.metrics}")
        return " | ".join(parts)


@dataclass
class IngestionOutcome:
    """Everything one successful ingestion produced, besides the store update."""

    dataset: Dataset
    source: str
    delimiter: str
    rows_read: int
    rows_skipped: int
    parse_warnings: List[str] = field(default_factory=list)
    completeness: Optional[FilterResult] = None

    @property
    def diagnostics(self) -> List[str]:
        """Non-fatal messages suitable for showing next to the loaded data."""
        messages = list(self.parse_warnings)
        if self.rows_skipped:
            messages.append(f"{self.rows_skipped} rows skipped for incompleteness")
        return messages


class IngestionInProgressError(RuntimeError):
    """Raised when an ingestion is requested while another one is running."""


# -------------------------
# Pipeline steps
# -------------------------
def load_csv(params: LoadParams) -> DecodedTable:
    """
    Pure function to decode a work-item export.
    No prints; raises exceptions on error. The file type is checked before decoding.
    """
    if params.csv_path is None:
        raise ValueError("No input file given (csv_path is None)")
    with CSVTableDecoder(
        params.csv_path,
        allowed_extensions=params.allowed_extensions,
        encoding=params.encoding,
    ) as decoder:
        return decoder.decode()


def validate_schema(header: Sequence[str], columns: ColumnConfig) -> Dict[str, str]:
    """
    Check that every required column is in the header.

    Header cells are compared after trimming surrounding whitespace; an exact
    match is preferred over a trimmed one.

    Returns:
        Mapping of actual header cell -> configured name, for cells that need renaming.

    Raises:
        SchemaError: listing every missing column, the header found and the header expected.
    """
    header = list(header)
    remap: Dict[str, str] = {}
    missing: List[str] = []
    for name in columns.required:
        if name in header:
            continue
        match = next((col for col in header if col.strip() == name.strip()), None)
        if match is None:
            missing.append(name)
        else:
            remap[match] = name
    if missing:
        raise SchemaError(
            missing=missing, found_header=header, expected_header=columns.required
        )
    return remap


def filter_complete_rows(
    table: DecodedTable, columns: ColumnConfig, verbose: bool = False
) -> Tuple[pd.DataFrame, FilterResult]:
    """
    Keep only rows whose four required values are non-empty after trimming.

    Dropped rows are counted, not raised. Returns the surviving rows (required
    columns renamed to their configured names) with a FilterResult diagnostic.

    Raises:
        SchemaError: If a required column is missing from the header
        NoValidDataError: If no row survives
    """
    result = FilterResult(label="filter_complete_rows")
    result.start()

    remap = validate_schema(table.header, columns)
    rows = table.rows.rename(columns=remap) if remap else table.rows
    result.original_rows = len(rows)

    complete = pd.Series(True, index=rows.index)
    for name in columns.required:
        complete &= rows[name].astype(str).str.strip() != ""

    kept = rows.loc[complete].reset_index(drop=True)
    result.filtered_rows = len(kept)
    result.excluded_rows = result.original_rows - result.filtered_rows
    result.add_metric("rows_read", result.original_rows)
    result.add_metric("rows_skipped", result.excluded_rows)
    if result.excluded_rows:
        result.add_warning(f"{result.excluded_rows} rows skipped for incompleteness")
    result.stop()

    if verbose:
        result.add_event(result.summarize())

    if kept.empty:
        raise NoValidDataError(
            rows_read=result.original_rows, rows_skipped=result.excluded_rows
        )
    return kept, result


def normalize_records(rows: pd.DataFrame, columns: ColumnConfig) -> Dataset:
    """
    Convert complete rows into a Dataset of WorkItemRecord, sorted by closed date.

    Fail-fast: the first row with an unparseable date or a closed date before
    its committed date aborts the whole conversion.

    Raises:
        DataError: naming the row id, the field(s) at fault and their values
    """
    records: List[WorkItemRecord] = []
    for row in rows.to_dict(orient="records"):
        record_id = str(row[columns.id_column]).strip()
        item_type = str(row[columns.type_column]).strip()
        committed_raw = str(row[columns.committed_column]).strip()
        closed_raw = str(row[columns.closed_column]).strip()

        committed_at = parse_calendar_date(committed_raw)
        closed_at = parse_calendar_date(closed_raw)

        invalid = [
            (name, raw)
            for name, raw, parsed in (
                (columns.committed_column, committed_raw, committed_at),
                (columns.closed_column, closed_raw, closed_at),
            )
            if parsed is None
        ]
        if invalid:
            detail = ", ".join(f"'{name}' ({raw!r})" for name, raw in invalid)
            raise DataError(
                f"Row '{record_id}': invalid date in {detail}; "
                f"expected format {DATE_FORMAT_HINT}",
                record_id=record_id,
                fields=[name for name, _ in invalid],
                values=dict(invalid),
                expected_format=DATE_FORMAT_HINT,
            )

        if closed_at < committed_at:
            raise DataError(
                f"Row '{record_id}': '{columns.closed_column}' ({closed_raw}) is earlier "
                f"than '{columns.committed_column}' ({committed_raw}); the closed date "
                "must be on or after the committed date",
                record_id=record_id,
                fields=[columns.committed_column, columns.closed_column],
                values={
                    columns.committed_column: committed_raw,
                    columns.closed_column: closed_raw,
                },
            )

        records.append(
            WorkItemRecord(
                id=record_id,
                item_type=item_type,
                committed_at=committed_at,
                closed_at=closed_at,
            )
        )
    return Dataset.from_records(records)


def ingest_table(
    table: DecodedTable,
    columns: ColumnConfig,
    source: str = "<text>",
    verbose: bool = False,
) -> IngestionOutcome:
    """Validate, filter and normalize an already decoded table."""
    complete_rows, completeness = filter_complete_rows(table, columns, verbose=verbose)
    dataset = normalize_records(complete_rows, columns)
    logger.info(
        f"Ingested {len(dataset)} records of {len(dataset.item_types)} types from {source}"
    )
    return IngestionOutcome(
        dataset=dataset,
        source=source,
        delimiter=table.delimiter,
        rows_read=completeness.original_rows,
        rows_skipped=completeness.excluded_rows,
        parse_warnings=list(table.warnings),
        completeness=completeness,
    )


def ingest_text(
    text: str,
    columns: Optional[ColumnConfig] = None,
    source: str = "<text>",
    verbose: bool = False,
) -> IngestionOutcome:
    """Decode -> validate -> normalize for in-memory text."""
    return ingest_table(
        decode_text(text), columns or ColumnConfig(), source=source, verbose=verbose
    )


def ingest_csv(params: LoadParams, verbose: bool = False) -> IngestionOutcome:
    """Decode -> validate -> normalize for a file on disk."""
    table = load_csv(params)
    return ingest_table(
        table, params.columns, source=str(params.csv_path), verbose=verbose
    )


# -------------------------
# Loaded state
# -------------------------
@dataclass(frozen=True)
class _LoadedState:
    dataset: Dataset
    filters: TypeFilterSet
    outcome: Optional[IngestionOutcome] = None


class DatasetStore:
    """
    Owner of the currently loaded Dataset and its TypeFilterSet.

    Contract:
    - A successful ingestion replaces the dataset and resets the filter set (every
      type of the new dataset active, stale types dropped) in one assignment.
    - A failed ingestion leaves the previous state untouched and re-raises.
    - Ingestions never interleave: a request made while one is running raises
      IngestionInProgressError.
    """

    def __init__(
        self,
        columns: Optional[ColumnConfig] = None,
        allowed_extensions: Sequence[str] = DEFAULT_ALLOWED_EXTENSIONS,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        self.columns = columns or ColumnConfig()
        self.allowed_extensions = tuple(allowed_extensions)
        self.encoding = encoding
        self._ingest_lock = threading.Lock()
        self._state = _LoadedState(dataset=Dataset(), filters=TypeFilterSet())

    @property
    def dataset(self) -> Dataset:
        return self._state.dataset

    @property
    def filters(self) -> TypeFilterSet:
        return self._state.filters

    @property
    def item_types(self) -> List[str]:
        return self._state.dataset.item_types

    @property
    def last_outcome(self) -> Optional[IngestionOutcome]:
        return self._state.outcome

    @property
    def is_loaded(self) -> bool:
        return self._state.outcome is not None

    @property
    def busy(self) -> bool:
        return self._ingest_lock.locked()

    def ingest_file(self, path: str | Path, verbose: bool = False) -> IngestionOutcome:
        params = LoadParams(
            csv_path=Path(path),
            columns=self.columns,
            allowed_extensions=self.allowed_extensions,
            encoding=self.encoding,
        )
        return self._run_ingestion(lambda: ingest_csv(params, verbose=verbose))

    def ingest_text(
        self, text: str, source: str = "<text>", verbose: bool = False
    ) -> IngestionOutcome:
        return self._run_ingestion(
            lambda: ingest_text(text, self.columns, source=source, verbose=verbose)
        )

    def _run_ingestion(
        self, build: Callable[[], IngestionOutcome]
    ) -> IngestionOutcome:
        if not self._ingest_lock.acquire(blocking=False):
            raise IngestionInProgressError(
                "Another file is still being ingested; retry when it finishes"
            )
        try:
            outcome = build()
            self._state = _LoadedState(
                dataset=outcome.dataset,
                filters=TypeFilterSet.from_types(outcome.dataset.item_types),
                outcome=outcome,
            )
            return outcome
        finally:
            self._ingest_lock.release()

    def set_type_active(self, item_type: str, active: bool) -> None:
        self._state.filters.set_active(item_type, active)

    def toggle_type(self, item_type: str) -> bool:
        return self._state.filters.toggle(item_type)

    def report(
        self, percentiles: Sequence[float] = DEFAULT_PERCENTILES
    ) -> PercentileReport:
        """Recompute the PercentileReport from the current dataset and filters."""
        state = self._state
        return build_percentile_report(state.dataset, state.filters, percentiles)


def apply_type_selection(
    filters: TypeFilterSet,
    include_types: Optional[Sequence[str]] = None,
    exclude_types: Sequence[str] = (),
) -> List[str]:
    """
    Apply include/exclude lists to a filter set.

    Returns the requested type names that are not in the filter set; they are
    ignored.
    """
    requested = list(include_types or []) + list(exclude_types)
    unknown = [t for t in dict.fromkeys(requested) if t not in filters]
    if include_types is not None:
        wanted = set(include_types)
        for item_type in filters:
            filters.set_active(item_type, item_type in wanted)
    for item_type in exclude_types:
        if item_type in filters:
            filters.set_active(item_type, False)
    return unknown


# -------------------------
# Reporting
# -------------------------
def _percent_label(p: float) -> str:
    return f"P{p * 100:g}"


def _summaries_frame(
    summaries: Sequence[TypeSummary], filters: Optional[TypeFilterSet] = None
) -> pd.DataFrame:
    rows = []
    for s in summaries:
        row: Dict[str, Any] = {"type": s.item_type}
        if filters is not None:
            row["active"] = filters.is_active(s.item_type)
        row.update(
            {
                "count": s.count,
                "mean": round(s.mean, 2),
                "mean_display": s.rounded_mean,
                "min": s.min,
                "max": s.max,
            }
        )
        rows.append(row)
    return pd.DataFrame(rows)


def assemble_text_report(
    report: PercentileReport,
    filters: TypeFilterSet,
    outcome: Optional[IngestionOutcome] = None,
) -> str:
    """
    Create a concise, readable report of one PercentileReport.
    """
    parts: list[str] = []

    if outcome is not None:
        parts.append(f"Source: {outcome.source}")
        parts.append(
            f"Rows read: {outcome.rows_read} | rows skipped (incomplete): "
            f"{outcome.rows_skipped} | delimiter: {outcome.delimiter!r}"
        )

    parts.append(
        f"Items: {report.total_count} | types: {len(report.type_summaries)} | "
        f"included by filter: {report.filtered_count}"
    )
    parts.append("Active types: " + (", ".join(report.active_types) or "(none)"))
    parts.append("\n")

    parts.append("Percentiles (filtered):")
    for p, value in report.percentiles.items():
        parts.append(f"  {_percent_label(p)}: {value} days")
    if report.filtered_mean is None:
        parts.append("  Mean lead time: n/a (no items selected)")
    else:
        parts.append(
            f"  Mean lead time: {int(report.filtered_mean + 0.5)} days "
            f"({report.filtered_mean:.2f})"
        )
    parts.append("\n")

    def _table(summaries: Sequence[TypeSummary], with_active: bool) -> str:
        if not summaries:
            return "(no rows)"
        frame = _summaries_frame(summaries, filters if with_active else None)
        return frame.to_string(index=False)

    parts.append(f"All items by type:\n{_table(report.type_summaries, True)}")
    parts.append("\n")
    parts.append(
        f"Selected items by type:\n{_table(report.filtered_type_summaries, False)}"
    )

    if outcome is not None and outcome.diagnostics:
        parts.append("\n")
        parts.append("Diagnostics:")
        parts.extend(f"  - {msg}" for msg in outcome.diagnostics)

    parts.append("\n")
    parts.append("Lead time = (closed date - committed date) + 1 day")
    return "\n".join(parts)


def build_report_payload(
    report: PercentileReport,
    filters: TypeFilterSet,
    dataset: Dataset,
    outcome: Optional[IngestionOutcome] = None,
) -> Dict[str, Any]:
    """JSON-ready mapping of a report, its filter state and the dataset identity."""

    def _summary(s: TypeSummary) -> Dict[str, Any]:
        d = asdict(s)
        d["rounded_mean"] = s.rounded_mean
        return d

    payload: Dict[str, Any] = {
        "generated_at": utc_timestamp_seconds(),
        "source": outcome.source if outcome is not None else None,
        "dataset_fingerprint": dataset.fingerprint(),
        "total_count": report.total_count,
        "filtered_count": report.filtered_count,
        "filtered_mean": report.filtered_mean,
        "item_types": dataset.item_types,
        "filters": filters.as_dict(),
        "p85": report.p85,
        "p95": report.p95,
        "percentiles": {
            _percent_label(p): value for p, value in report.percentiles.items()
        },
        "type_summaries": [_summary(s) for s in report.type_summaries],
        "filtered_type_summaries": [
            _summary(s) for s in report.filtered_type_summaries
        ],
        "diagnostics": outcome.diagnostics if outcome is not None else [],
    }
    return _sanitize_for_json(payload)


# -------------------------
# CLI
# -------------------------
def get_default_params() -> Tuple[LoadParams, ReportParams]:
    """
    Single point of authority for CLI-visible defaults.
    """
    return LoadParams(csv_path=None), ReportParams()


def _parse_fraction(raw: str) -> float:
    import argparse

    try:
        value = float(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {raw!r}") from e
    if not (0.0 <= value < 1.0):
        raise argparse.ArgumentTypeError(
            f"percentile must be a fraction in [0, 1), got {raw}"
        )
    return value


def _build_cli_parser():
    import argparse

    d_load, d_report = get_default_params()
    d_cols = d_load.columns

    parser = argparse.ArgumentParser(
        prog="lead-time",
        description="Lead time calculator (decode -> validate -> normalize -> percentiles).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--print-defaults",
        action="store_true",
        help="Print default parameter values and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show full tracebacks for debugging (also LEAD_TIME_DEBUG=1).",
    )
    parser.add_argument(
        "--csv-path",
        type=Path,
        required=True,
        help="Path to the work-item export (CSV, TSV, pipe or semicolon delimited).",
    )
    parser.add_argument(
        "--col-id", default=d_cols.id_column, help="Identifier column name."
    )
    parser.add_argument(
        "--col-type", default=d_cols.type_column, help="Item type column name."
    )
    parser.add_argument(
        "--col-committed",
        default=d_cols.committed_column,
        help="Committed date column name.",
    )
    parser.add_argument(
        "--col-closed", default=d_cols.closed_column, help="Closed date column name."
    )
    parser.add_argument(
        "--include-type",
        action="append",
        default=None,
        metavar="TYPE",
        help="Only these item types are active (repeatable). Default: all types.",
    )
    parser.add_argument(
        "--exclude-type",
        action="append",
        default=[],
        metavar="TYPE",
        help="Deactivate an item type (repeatable).",
    )
    parser.add_argument(
        "--percentile",
        action="append",
        type=_parse_fraction,
        default=[],
        metavar="FRACTION",
        help=(
            "Extra rank percentile to report, as a fraction (repeatable). "
            f"Always reported: {', '.join(str(p) for p in d_report.percentiles)}."
        ),
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the report as JSON."
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="Also write the JSON report here."
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log step diagnostics."
    )
    return parser


def _args_to_params(args) -> Tuple[LoadParams, ReportParams]:
    d_load, d_report = get_default_params()
    columns = ColumnConfig(
        id_column=args.col_id,
        type_column=args.col_type,
        committed_column=args.col_committed,
        closed_column=args.col_closed,
    )
    load = LoadParams(
        csv_path=args.csv_path,
        columns=columns,
        allowed_extensions=d_load.allowed_extensions,
        encoding=d_load.encoding,
    )
    percentiles = tuple(d_report.percentiles) + tuple(
        p for p in args.percentile if p not in d_report.percentiles
    )
    report = ReportParams(
        percentiles=percentiles,
        include_types=list(args.include_type) if args.include_type else None,
        exclude_types=list(args.exclude_type),
    )
    return load, report


def _orchestrate(
    params_load: LoadParams,
    params_report: ReportParams,
    as_json: bool = False,
    output: Optional[Path] = None,
    verbose: bool = False,
) -> str:
    """Ingest one file, apply the type selection and render the report."""
    store = DatasetStore(
        columns=params_load.columns,
        allowed_extensions=params_load.allowed_extensions,
        encoding=params_load.encoding,
    )
    if params_load.csv_path is None:
        raise ValueError("No input file given (csv_path is None)")
    outcome = store.ingest_file(params_load.csv_path, verbose=verbose)

    unknown = apply_type_selection(
        store.filters, params_report.include_types, params_report.exclude_types
    )
    if unknown:
        logger.warning(f"Ignoring item types not present in the data: {unknown}")

    report = store.report(params_report.percentiles)
    if output is not None or as_json:
        payload = build_report_payload(report, store.filters, store.dataset, outcome)
        if output is not None:
            write_json(output, payload)
            logger.info(f"Wrote JSON report to {output}")
        if as_json:
            return json.dumps(payload, ensure_ascii=False, indent=2)
    return assemble_text_report(report, store.filters, outcome)


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point. Parses arguments, builds parameter objects, then orchestrates.
    """
    import sys

    argv = sys.argv[1:] if argv is None else list(argv)

    # --print-defaults is honored without requiring --csv-path.
    if "--print-defaults" in argv:
        d_load, d_report = get_default_params()
        payload = {
            "LoadParams": {
                "csv_path": None
                if d_load.csv_path is None
                else str(d_load.csv_path),
                "columns": asdict(d_load.columns),
                "allowed_extensions": list(d_load.allowed_extensions),
                "encoding": d_load.encoding,
            },
            "ReportParams": {
                "percentiles": list(d_report.percentiles),
                "include_types": d_report.include_types,
                "exclude_types": d_report.exclude_types,
            },
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    parser = _build_cli_parser()
    args = parser.parse_args(argv)
    # Enable debug mode via --debug flag or environment variable LEAD_TIME_DEBUG=1
    debug_mode = bool(
        getattr(args, "debug", False) or os.getenv("LEAD_TIME_DEBUG", "") == "1"
    )
    if debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)

    params_load, params_report = _args_to_params(args)

    try:
        text = _orchestrate(
            params_load,
            params_report,
            as_json=args.json,
            output=args.output,
            verbose=args.verbose,
        )
    except (FileNotFoundError, CSVProcessingError, ValueError) as e:
        # Concise, user-facing errors for common/user-correctable problems.
        logger.info("User-facing error: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        # Unexpected/internal errors: log full exception. Show traceback only when debugging.
        logger.exception("Unhandled exception during execution")
        if debug_mode:
            import traceback

            traceback.print_exc()
        else:
            print(f"Unexpected error: {e}", file=sys.stderr)
            print(
                "Run with --debug or set LEAD_TIME_DEBUG=1 to see the full traceback.",
                file=sys.stderr,
            )
        sys.exit(1)

    print(text)


if __name__ == "__main__":
    main()
