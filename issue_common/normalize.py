from __future__ import annotations

import logging
import math
import numbers
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

import pandas as pd

from .records import Record
from .schema import (
    LABEL_TO_ATTRIBUTE,
    MISSING_DATE,
    PENDING_TOPIC,
    REQUIRED_LABELS,
    UNKNOWN_AUTHOR,
    canonical_key,
    missing_required_columns,
)

LOGGER = logging.getLogger(__name__)

# Days between the spreadsheet epoch (1899-12-30) and 1970-01-01.
SERIAL_EPOCH_OFFSET = 25569
SECONDS_PER_DAY = 86400
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class IngestionError(ValueError):
    """Upload problem the editor can fix by choosing another file."""


class EmptyUploadError(IngestionError):
    def __init__(self) -> None:
        super().__init__("The uploaded file appears to be empty.")


class MissingColumnsError(IngestionError):
    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Missing required columns: {', '.join(self.missing)}. Please check your file headers."
        )


class WorkbookReadError(IngestionError):
    pass


def normalize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Map one raw row onto canonical labels; unknown headers pass through trimmed."""

    normalized: Dict[str, Any] = {}
    for key, value in row.items():
        normalized[canonical_key(key)] = value
    return normalized


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Normalize every row; output has the same length and order as the input."""

    return [normalize_row(row) for row in rows]


def validate_rows(rows: Sequence[Mapping[str, Any]], required: Iterable[str] | None = None) -> None:
    """
    Check the upload against the required-column contract.

    Only the first row's headers are inspected: every row of a sheet shares the
    header row, so the first one stands in for the batch.
    """

    if not rows:
        raise EmptyUploadError()
    missing = missing_required_columns(rows[0].keys(), required or REQUIRED_LABELS)
    if missing:
        raise MissingColumnsError(missing)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def serial_to_date(serial: float) -> date:
    """Convert a spreadsheet serial day number to a calendar date (UTC)."""

    seconds = (serial - SERIAL_EPOCH_OFFSET) * SECONDS_PER_DAY
    return (_UNIX_EPOCH + timedelta(seconds=seconds)).date()


def parse_online_first(value: Any) -> date | None:
    """
    Best-effort parse of an online-first cell.

    Numbers are spreadsheet serials, date/datetime cells are used as-is and
    strings go through pandas' date parser. Anything unparseable gives None.
    """

    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return None if pd.isna(value) else value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, numbers.Real):
        try:
            return serial_to_date(float(value))
        except (OverflowError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        parsed = pd.to_datetime(text, errors="coerce")
        if not pd.isna(parsed):
            return parsed.date()
        # Out of range for pandas timestamps (years past 2262) but still ISO.
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def format_display_date(value: date | None) -> str:
    if value is None:
        return MISSING_DATE
    return f"{value:%b} {value.day}, {value.year}"


def compose_author(given: Any, family: Any) -> str:
    given_str = "" if _is_blank(given) else str(given)
    family_str = "" if _is_blank(family) else str(family)
    return f"{given_str} {family_str}".strip() or UNKNOWN_AUTHOR


def _clean_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and math.isnan(value):
        return ""
    if value is None:
        return ""
    return value


def new_record_id(index: int) -> str:
    return f"art-{index}-{uuid.uuid4().hex[:12]}"


def derive_record(row: Mapping[str, Any], index: int) -> Record:
    """Build a Record from one normalized row at ordinal ``index``."""

    cleaned = {key: _clean_value(value) for key, value in row.items()}
    canonical: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in cleaned.items():
        attribute = LABEL_TO_ATTRIBUTE.get(key)
        if attribute:
            canonical[attribute] = value
        else:
            extra[key] = value

    online_first = parse_online_first(canonical.get("online_first_date"))
    return Record(
        id=new_record_id(index),
        **canonical,
        display_author=compose_author(canonical.get("author_given_name"), canonical.get("author_family_name")),
        formatted_date=format_display_date(online_first),
        online_first=online_first,
        selected=False,
        downloaded=False,
        topic=PENDING_TOPIC,
        extra=extra,
    )


def derive_records(rows: Sequence[Mapping[str, Any]]) -> List[Record]:
    return [derive_record(row, index) for index, row in enumerate(rows)]


def build_records(raw_rows: Sequence[Mapping[str, Any]]) -> Tuple[List[Record], List[str]]:
    """
    Run normalize -> validate -> derive for one upload.

    Returns (records, headers) where headers are the normalized header names
    of the first row, handy for diagnostics in the UI.
    """

    normalized = normalize_rows(raw_rows)
    validate_rows(normalized)
    records = derive_records(normalized)
    headers = list(normalized[0].keys())
    LOGGER.info("Derived %d records from %d uploaded rows", len(records), len(raw_rows))
    return records, headers
