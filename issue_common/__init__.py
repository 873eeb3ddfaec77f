"""
Shared manuscript-manifest schema and curation helpers used by the Streamlit
browser and the categorization worker.
"""

from .schema import (  # noqa: F401
    ANALYZING_LABEL,
    CANONICAL_LABELS,
    EXPORT_COLUMNS,
    EXPORT_SHEET_NAME,
    FALLBACK_TOPIC,
    PENDING_TOPIC,
    REQUIRED_LABELS,
    SURGICAL_TOPICS,
    canonical_key,
    missing_required_columns,
    topic_options,
)

from .records import FilterSpec, Record  # noqa: F401

from .normalize import (  # noqa: F401
    EmptyUploadError,
    IngestionError,
    MissingColumnsError,
    WorkbookReadError,
    build_records,
    derive_records,
    normalize_rows,
    parse_online_first,
    validate_rows,
)

from .store import IssueStore  # noqa: F401
from .reconcile import merge_topics, run_categorization, start_categorization  # noqa: F401
from .filters import apply_filters, filter_options  # noqa: F401
from .stats import SelectionSummary, summarize_selection  # noqa: F401
from .export import export_filename, project_export  # noqa: F401

__all__ = [
    "ANALYZING_LABEL",
    "CANONICAL_LABELS",
    "EXPORT_COLUMNS",
    "EXPORT_SHEET_NAME",
    "FALLBACK_TOPIC",
    "PENDING_TOPIC",
    "REQUIRED_LABELS",
    "SURGICAL_TOPICS",
    "canonical_key",
    "missing_required_columns",
    "topic_options",
    "FilterSpec",
    "Record",
    "EmptyUploadError",
    "IngestionError",
    "MissingColumnsError",
    "WorkbookReadError",
    "build_records",
    "derive_records",
    "normalize_rows",
    "parse_online_first",
    "validate_rows",
    "IssueStore",
    "merge_topics",
    "run_categorization",
    "start_categorization",
    "apply_filters",
    "filter_options",
    "SelectionSummary",
    "summarize_selection",
    "export_filename",
    "project_export",
]
