"""
Workbook loading and export helpers for the issue-building Streamlit app.

The app accepts the journal's manuscript manifest (.xlsx/.xls, first sheet,
header row first). `ingest_workbook` turns it into derived Records ready for
curation; `export_workbook_bytes` writes the curated selection back out as a
single-sheet workbook.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import pandas as pd
import polars as pl

from issue_common.export import project_export
from issue_common.normalize import WorkbookReadError, build_records
from issue_common.records import Record
from issue_common.schema import CANONICAL_LABELS, EXPORT_COLUMNS, EXPORT_SHEET_NAME, SUPPORTED_EXTENSIONS

LOGGER = logging.getLogger(__name__)

READ_ERROR_MESSAGE = "Could not parse the Excel file. Ensure it is a valid .xlsx or .xls file."


@dataclass
class IngestReport:
    source_label: str
    raw_row_count: int
    headers: List[str]
    passthrough_columns: List[str] = field(default_factory=list)


def is_supported_upload(name: str | None) -> bool:
    return bool(name) and str(name).lower().endswith(tuple(SUPPORTED_EXTENSIONS))


def _excel_source(path_or_bytes: Any) -> Any:
    """
    Return a rewindable Excel source for pandas/polars.

    Bytes/BytesIO inputs are rewound to position 0 so multiple readers can consume them.
    """

    if isinstance(path_or_bytes, BytesIO):
        path_or_bytes.seek(0)
        return path_or_bytes
    if isinstance(path_or_bytes, (bytes, bytearray)):
        return BytesIO(path_or_bytes)
    return path_or_bytes


def _coerce_source(path_or_bytes: Any) -> Tuple[Any, str]:
    """Unwrap paths and Streamlit UploadedFile objects; returns (source, label)."""

    source_label = "in-memory bytes"
    if isinstance(path_or_bytes, (str, Path)):
        return Path(path_or_bytes), str(path_or_bytes)

    # Streamlit's UploadedFile exposes getvalue(); coerce to bytes early.
    if hasattr(path_or_bytes, "getvalue") and not isinstance(path_or_bytes, (bytes, bytearray, BytesIO)):
        source_label = getattr(path_or_bytes, "name", source_label)
        return path_or_bytes.getvalue(), source_label
    return path_or_bytes, source_label


def _blank_to_empty(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if value is pd.NaT:
        return ""
    return value


def _clean_rows(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{str(k): _blank_to_empty(v) for k, v in row.items()} for row in rows]


def read_workbook_rows(path_or_bytes: Any) -> Tuple[List[Dict[str, Any]], str]:
    """
    Read the first sheet of a workbook into a list of row dicts.

    Uses polars.read_excel and falls back to pandas.read_excel when the Polars
    reader rejects the sheet (mixed-type columns, older .xls files). Blank cells
    come back as "". Raises WorkbookReadError when neither reader can parse it.
    """

    source, source_label = _coerce_source(path_or_bytes)

    try:
        df = pl.read_excel(_excel_source(source), sheet_id=1)
        return _clean_rows(df.to_dicts()), source_label
    except Exception as exc:
        LOGGER.info("polars.read_excel failed for %s; falling back to pandas. %s", source_label, exc)

    try:
        pandas_df = pd.read_excel(_excel_source(source), sheet_name=0, dtype=object)
    except Exception as exc:
        LOGGER.error("Failed to read workbook %s: %s", source_label, exc)
        raise WorkbookReadError(READ_ERROR_MESSAGE) from exc

    pandas_df.columns = [str(c) for c in pandas_df.columns]
    return _clean_rows(pandas_df.to_dict(orient="records")), source_label


def ingest_rows(raw_rows: List[Dict[str, Any]], source_label: str = "rows") -> Tuple[List[Record], IngestReport]:
    records, headers = build_records(raw_rows)
    canonical = set(CANONICAL_LABELS)
    report = IngestReport(
        source_label=source_label,
        raw_row_count=len(raw_rows),
        headers=headers,
        passthrough_columns=[h for h in headers if h not in canonical],
    )
    return records, report


def ingest_workbook(path_or_bytes: Any) -> Tuple[List[Record], IngestReport]:
    """Read, normalize, validate and derive one uploaded manifest."""

    raw_rows, source_label = read_workbook_rows(path_or_bytes)
    return ingest_rows(raw_rows, source_label)


def export_frame(records: Iterable[Record]) -> pd.DataFrame:
    return pd.DataFrame(project_export(records), columns=list(EXPORT_COLUMNS))


def export_workbook_bytes(records: Iterable[Record]) -> bytes:
    """Serialize the selected records to a single-sheet xlsx workbook."""

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
        export_frame(records).to_excel(writer, sheet_name=EXPORT_SHEET_NAME, index=False)
    return buffer.getvalue()


__all__ = [
    "IngestReport",
    "export_frame",
    "export_workbook_bytes",
    "ingest_rows",
    "ingest_workbook",
    "is_supported_upload",
    "read_workbook_rows",
]
