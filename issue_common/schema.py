from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence


@dataclass(frozen=True)
class ManifestField:
    """A canonical manuscript-manifest column and its Record attribute."""

    label: str  # canonical header as it appears in the journal export
    attribute: str
    required: bool = False


MANIFEST_FIELDS: Sequence[ManifestField] = (
    ManifestField("Author_family_name", "author_family_name", required=True),
    ManifestField("author_given_name", "author_given_name"),
    ManifestField("article_title", "article_title", required=True),
    ManifestField("received", "received"),
    ManifestField("accepted", "accepted"),
    ManifestField("article_last_page", "article_last_page"),
    ManifestField("editorial_ms_number", "editorial_ms_number"),
    ManifestField("doi", "doi", required=True),
    ManifestField("rubric", "rubric"),
    ManifestField("production_state", "production_state"),
    ManifestField("online_first_date", "online_first_date"),
    ManifestField("notes_on_issue_building", "notes_on_issue_building"),
    ManifestField("note_for_pe", "note_for_pe"),
)

CANONICAL_LABELS: List[str] = [f.label for f in MANIFEST_FIELDS]
REQUIRED_LABELS: List[str] = [f.label for f in MANIFEST_FIELDS if f.required]
LABEL_TO_ATTRIBUTE: Dict[str, str] = {f.label: f.attribute for f in MANIFEST_FIELDS}

# Lookup used for case/whitespace-insensitive header matching.
_LOOKUP: Dict[str, str] = {label.lower(): label for label in CANONICAL_LABELS}

SURGICAL_TOPICS: Sequence[str] = (
    "Trauma",
    "Orthognathic",
    "Oral Oncology",
    "Reconstruction",
    "Pathology",
    "Dental Implants",
    "Cleft & Craniofacial",
    "Salivary Gland",
    "TMJ",
    "General Oral Surgery",
)

PENDING_TOPIC = "Uncategorized"
FALLBACK_TOPIC = "General Oral Surgery"
ANALYZING_LABEL = "Analyzing..."
UNKNOWN_AUTHOR = "Unknown Author"
MISSING_DATE = "N/A"

EXPORT_COLUMNS: Sequence[str] = (
    "Author",
    "Title",
    "Rubric",
    "Status",
    "Online First",
    "DOI",
    "MS Number",
    "Pages",
    "Notes",
)
EXPORT_SHEET_NAME = "Issue_Plan"
SUPPORTED_EXTENSIONS: Sequence[str] = (".xlsx", ".xls")


def canonical_key(header: str) -> str:
    """
    Resolve a raw header onto its canonical label.

    Matching trims whitespace and ignores case; unrecognized headers come back
    trimmed but otherwise untouched so passthrough columns keep their casing.
    """

    trimmed = str(header).strip()
    return _LOOKUP.get(trimmed.lower(), trimmed)


def missing_required_columns(
    headers: Iterable[str], required: Iterable[str] | None = None
) -> List[str]:
    """Return required labels absent from ``headers`` (case-insensitive), in required order."""

    available = {str(h).strip().lower() for h in headers}
    return [label for label in (required or REQUIRED_LABELS) if label.lower() not in available]


def topic_options(extra: Iterable[str] = ()) -> List[str]:
    """
    Options for a topic picker: the closed set plus any off-set values in play.

    Free-text topics returned by the classifier (or present before a run) must
    stay selectable so editing one record never hides another's label.
    """

    options = list(SURGICAL_TOPICS)
    for value in extra:
        if value and value not in options:
            options.append(value)
    return options

