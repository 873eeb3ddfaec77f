from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List

from .records import DateBound, FilterSpec, Record


def _coerce_bound(value: DateBound) -> date | None:
    """Accept blank, ISO ``YYYY-MM-DD`` strings, dates and datetimes."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid date bound {value!r}; expected YYYY-MM-DD.") from exc


def _in_date_range(record: Record, start: date | None, end: date | None) -> bool:
    if start is None and end is None:
        return True
    # A bound is set, so undated records cannot be placed inside it.
    if record.online_first is None:
        return False
    if start is not None and record.online_first < start:
        return False
    if end is not None and record.online_first > end:
        return False
    return True


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _in_group(value: Any, allowed: Iterable[Any]) -> bool:
    # Cells may hold numbers (an all-numeric rubric column reads as int).
    return _text(value) in {_text(v) for v in allowed}


def matches(record: Record, spec: FilterSpec) -> bool:
    """AND across filter groups, OR within each group; empty groups match everything."""

    if spec.rubrics and not _in_group(record.rubric, spec.rubrics):
        return False
    if spec.production_states and not _in_group(record.production_state, spec.production_states):
        return False
    if spec.topics and not _in_group(record.topic, spec.topics):
        return False
    start, end = spec.date_range
    return _in_date_range(record, _coerce_bound(start), _coerce_bound(end))


def apply_filters(records: Iterable[Record], spec: FilterSpec | None = None) -> List[Record]:
    """Return the visible records in their original order."""

    if spec is None or spec.is_empty:
        return list(records)
    return [record for record in records if matches(record, spec)]


def _distinct_sorted(values: Iterable[Any]) -> List[str]:
    return sorted({_text(v) for v in values} - {""})


def filter_options(records: Iterable[Record]) -> Dict[str, List[str]]:
    """Distinct non-blank rubric and production-state values for the sidebar."""

    records = list(records)
    return {
        "rubrics": _distinct_sorted(r.rubric for r in records),
        "production_states": _distinct_sorted(r.production_state for r in records),
    }
