#!/usr/bin/env python3
"""
Delimited Text Decoder
A utility for turning work-item exports (CSV, TSV, pipe or semicolon separated)
into an ordered table of text cells, with delimiter detection and non-fatal
handling of ragged rows.
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import pandas as pd

logger = logging.getLogger(__name__)

# Candidate delimiters in tie-break order.
SUPPORTED_DELIMITERS: Tuple[str, ...] = (",", "\t", "|", ";")
DEFAULT_ALLOWED_EXTENSIONS: Tuple[str, ...] = (".csv", ".tsv", ".txt")
DEFAULT_ENCODING = "utf-8-sig"


class CSVProcessingError(Exception):
    """Base exception for CSV processing errors."""

    pass


class FileAccessError(CSVProcessingError):
    """Raised when file cannot be accessed or read."""

    pass


class FileTypeError(CSVProcessingError):
    """Raised when the input is not recognized as delimited text."""

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        suffix: Optional[str] = None,
        allowed: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.path = path
        self.suffix = suffix
        self.allowed = tuple(allowed)


class SchemaError(CSVProcessingError):
    """
    Raised when required columns are absent from the header.

    Attributes:
        missing: every required column name not found, in configured order
        found_header: the header exactly as read from the input
        expected_header: the configured required column names
    """

    def __init__(
        self,
        missing: Sequence[str],
        found_header: Sequence[str],
        expected_header: Sequence[str],
    ) -> None:
        self.missing = list(missing)
        self.found_header = list(found_header)
        self.expected_header = list(expected_header)
        found_txt = ", ".join(self.found_header) if self.found_header else "(empty)"
        super().__init__(
            "Missing required column(s): "
            + ", ".join(f"'{name}'" for name in self.missing)
            + f". Found header: {found_txt}."
            + f" Expected header: {', '.join(self.expected_header)}."
        )


class NoValidDataError(CSVProcessingError):
    """Raised when the header is valid but no row has all required values."""

    def __init__(self, rows_read: int, rows_skipped: int) -> None:
        self.rows_read = rows_read
        self.rows_skipped = rows_skipped
        super().__init__(
            f"No valid rows found: {rows_skipped} of {rows_read} rows skipped "
            "because a required value was empty."
        )


class DataError(CSVProcessingError):
    """
    Raised when a complete row carries an unparseable date or a closed date
    earlier than its committed date.

    Attributes:
        record_id: identifier of the offending row
        fields: names of the fields at fault
        values: raw values of the fields at fault, keyed by field name
        expected_format: documented date format, when a date failed to parse
    """

    def __init__(
        self,
        message: str,
        record_id: str,
        fields: Sequence[str],
        values: Optional[Dict[str, str]] = None,
        expected_format: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.record_id = record_id
        self.fields = tuple(fields)
        self.values = dict(values or {})
        self.expected_format = expected_format


@dataclass
class DecodedTable:
    """
    Result of decoding delimited text.

    Attributes:
        header: column names in file order, as read
        rows: one row per non-empty data line; every cell is a string
        delimiter: the delimiter detected from the header line
        warnings: non-fatal parse diagnostics (ragged rows)
    """

    header: List[str]
    rows: pd.DataFrame
    delimiter: str = ","
    warnings: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def iter_rows(self) -> Iterator[Dict[str, str]]:
        """Yield each data row as a header -> cell mapping."""
        for record in self.rows.to_dict(orient="records"):
            yield record


def detect_delimiter(header_line: str) -> str:
    """
    Pick the delimiter occurring most often in the header line.

    Ties resolve in SUPPORTED_DELIMITERS order; a line containing none of them
    (single column) falls back to a comma.
    """
    best = SUPPORTED_DELIMITERS[0]
    best_count = 0
    for candidate in SUPPORTED_DELIMITERS:
        count = header_line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def _first_non_empty_line(text: str) -> Optional[str]:
    return next((line for line in text.splitlines() if line.strip()), None)


def _dedupe_header(header: List[str]) -> Tuple[List[str], List[str]]:
    """Suffix repeated header names with .1, .2, ... the way pandas does."""
    seen: Dict[str, int] = {}
    unique: List[str] = []
    warnings: List[str] = []
    for name in header:
        if name in seen:
            seen[name] += 1
            renamed = f"{name}.{seen[name]}"
            warnings.append(f"Duplicate header '{name}' renamed to '{renamed}'")
            unique.append(renamed)
        else:
            seen[name] = 0
            unique.append(name)
    return unique, warnings


def decode_text(text: str) -> DecodedTable:
    """
    Decode delimited text into a DecodedTable.

    The header row is read as ordinary data (header=None) so that pandas never
    promotes surplus leading fields to an implicit index; rows longer than the
    header are routed through on_bad_lines instead.

    Only the first non-empty line is used to detect the delimiter; the whole
    text goes to pandas, which skips blank records but keeps blank lines
    inside quoted cells.

    Args:
        text: Raw file content

    Returns:
        DecodedTable: header, string-typed rows, detected delimiter and warnings

    Raises:
        FileTypeError: If the text cannot be tokenized as delimited text
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    header_line = _first_non_empty_line(text)
    if header_line is None:
        logger.warning("Input contains no header line")
        return DecodedTable(header=[], rows=pd.DataFrame())

    delimiter = detect_delimiter(header_line)
    warnings: List[str] = []

    read_kwargs: Dict[str, Any] = dict(
        sep=delimiter,
        header=None,
        engine="python",
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )

    try:
        header_frame = pd.read_csv(io.StringIO(header_line), **read_kwargs)
        width = header_frame.shape[1]

        def _on_bad_line(bad_line: List[str]) -> List[str]:
            warnings.append(
                f"Row with {len(bad_line)} fields truncated to {width} header fields: "
                f"{delimiter.join(bad_line)!r}"
            )
            return bad_line[:width]

        df = pd.read_csv(
            io.StringIO(text),
            names=list(range(width)),
            on_bad_lines=_on_bad_line,
            **read_kwargs,
        )
    except pd.errors.EmptyDataError:
        return DecodedTable(header=[], rows=pd.DataFrame(), delimiter=delimiter)
    except pd.errors.ParserError as e:
        raise FileTypeError(f"Input is not valid delimited text: {e}") from e

    header = ["" if pd.isna(v) else str(v) for v in df.iloc[0].tolist()]
    header, dup_warnings = _dedupe_header(header)
    warnings.extend(dup_warnings)

    rows = df.iloc[1:].reset_index(drop=True)
    rows.columns = header

    # Rows shorter than the header come back with NaN in the missing cells.
    short_mask = rows.isna().any(axis=1).tolist()
    for pos, short in enumerate(short_mask):
        if short:
            warnings.append(
                f"Data row {pos + 1} has fewer fields than the header; "
                "missing cells treated as empty"
            )
    rows = rows.fillna("")

    for message in warnings:
        logger.warning(message)

    return DecodedTable(
        header=header, rows=rows, delimiter=delimiter, warnings=warnings
    )


class CSVTableDecoder:
    """
    File-based entry point for decoding a work-item export.

    The file type is checked on construction so callers fail before any
    content is read.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        allowed_extensions: Sequence[str] = DEFAULT_ALLOWED_EXTENSIONS,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        """
        Initialize the decoder with a file path.

        Args:
            file_path: Path to the delimited text file
            allowed_extensions: Accepted file suffixes (case-insensitive)
            encoding: Text encoding used to read the file

        Raises:
            FileNotFoundError: If the specified file does not exist
            FileAccessError: If the path is not a regular file
            FileTypeError: If the file suffix is not accepted
        """
        self.file_path = Path(file_path)
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)
        self.encoding = encoding
        if not self.file_path.exists():
            raise FileNotFoundError(f"CSV file not found: {self.file_path}")
        if not self.file_path.is_file():
            raise FileAccessError(f"Path is not a file: {self.file_path}")
        suffix = self.file_path.suffix.lower()
        if suffix not in self.allowed_extensions:
            raise FileTypeError(
                f"Unsupported file type '{suffix or '(none)'}' for {self.file_path.name}; "
                f"expected one of: {', '.join(self.allowed_extensions)}",
                path=self.file_path,
                suffix=suffix,
                allowed=self.allowed_extensions,
            )

    def read_text(self) -> str:
        """
        Read the whole file as text.

        Raises:
            FileTypeError: If the bytes are not valid text in the configured encoding
            FileAccessError: If the file cannot be read
        """
        try:
            return self.file_path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            raise FileTypeError(
                f"File {self.file_path.name} is not {self.encoding} text: {e}",
                path=self.file_path,
                suffix=self.file_path.suffix.lower(),
                allowed=self.allowed_extensions,
            ) from e
        except OSError as e:
            raise FileAccessError(f"Error reading CSV file: {e}") from e

    def decode(self) -> DecodedTable:
        """Read and decode the file."""
        return decode_text(self.read_text())

    def get_file_info(self) -> Dict[str, Any]:
        """
        Get summary information about the file.

        Reads and decodes the whole file on every call; nothing is cached.

        Returns:
            Dict[str, Any]: path, size, delimiter, columns and row counts
        """
        table = self.decode()
        return {
            "file_path": str(self.file_path),
            "file_size": self.file_path.stat().st_size,
            "delimiter": table.delimiter,
            "columns": list(table.header),
            "column_count": len(table.header),
            "total_rows": len(table),
            "warnings": len(table.warnings),
        }

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        # No cleanup needed for this class
        pass
