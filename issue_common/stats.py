from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

import polars as pl

from .records import Record

FRAME_SCHEMA = {
    "id": pl.Utf8,
    "rubric": pl.Utf8,
    "production_state": pl.Utf8,
    "topic": pl.Utf8,
    "selected": pl.Boolean,
    "downloaded": pl.Boolean,
    "article_last_page": pl.Utf8,
}


def _text(value) -> str:
    return "" if value is None else str(value)


def records_to_frame(records: Iterable[Record]) -> pl.DataFrame:
    """Flatten the fields the dashboard aggregates over into a Polars frame."""

    rows = list(records)
    return pl.DataFrame(
        {
            "id": [r.id for r in rows],
            "rubric": [_text(r.rubric) for r in rows],
            "production_state": [_text(r.production_state) for r in rows],
            "topic": [_text(r.topic) for r in rows],
            "selected": [bool(r.selected) for r in rows],
            "downloaded": [bool(r.downloaded) for r in rows],
            "article_last_page": [_text(r.article_last_page) for r in rows],
        },
        schema=FRAME_SCHEMA,
    )


def page_count_expr(column: str = "article_last_page") -> pl.Expr:
    """Numeric page value; blanks and non-numeric text count as zero."""

    return (
        pl.col(column)
        .str.strip_chars()
        .cast(pl.Float64, strict=False)
        .fill_nan(0.0)
        .fill_null(0.0)
    )


def _breakdown(selected: pl.DataFrame, column: str) -> List[Tuple[str, int]]:
    """Counts per value, largest first; ties keep first-seen order."""

    if selected.is_empty():
        return []
    counts = (
        selected.group_by(column, maintain_order=True)
        .agg(pl.len().alias("count"))
        .sort("count", descending=True, maintain_order=True)
    )
    return [(label, int(count)) for label, count in counts.iter_rows()]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class SelectionSummary:
    total_count: int
    selected_count: int
    selected_percent: int
    estimated_pages: float
    downloaded_count: int
    download_progress: float
    rubric_breakdown: List[Tuple[str, int]] = field(default_factory=list)
    topic_breakdown: List[Tuple[str, int]] = field(default_factory=list)


def summarize_selection(records: Iterable[Record]) -> SelectionSummary:
    """Dashboard figures for the selected subset of ``records``."""

    frame = records_to_frame(records)
    selected = frame.filter(pl.col("selected"))

    total = frame.height
    chosen = selected.height
    downloaded = selected.filter(pl.col("downloaded")).height
    pages = float(selected.select(page_count_expr().sum()).item() or 0.0)

    return SelectionSummary(
        total_count=total,
        selected_count=chosen,
        selected_percent=_round_half_up(chosen / (total or 1) * 100),
        estimated_pages=int(pages) if pages.is_integer() else pages,
        downloaded_count=downloaded,
        download_progress=downloaded / chosen if chosen else 0.0,
        rubric_breakdown=_breakdown(selected, "rubric"),
        topic_breakdown=_breakdown(selected, "topic"),
    )
