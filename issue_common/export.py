from __future__ import annotations

import math
from datetime import date
from typing import Any, Dict, Iterable, List

from .records import Record
from .schema import EXPORT_COLUMNS


def _cell(value: Any) -> Any:
    """Blank-safe export value; integral floats are written as ints (12.0 -> 12)."""

    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return int(value)
    return value


def project_record(record: Record) -> Dict[str, Any]:
    values = (
        record.display_author,
        record.article_title,
        record.rubric,
        record.production_state,
        record.formatted_date,
        record.doi,
        record.editorial_ms_number,
        record.article_last_page,
        record.notes_on_issue_building,
    )
    return {column: _cell(value) for column, value in zip(EXPORT_COLUMNS, values)}


def project_export(records: Iterable[Record]) -> List[Dict[str, Any]]:
    """
    Flat export rows for the selected records, in collection order.

    Topics are a curation aid only and never leave the tool.
    """

    return [project_record(record) for record in records if record.selected]


def export_filename(today: date | None = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"Editorial_Plan_{stamp}.xlsx"
