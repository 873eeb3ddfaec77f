from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Collection, Dict, Tuple

from .schema import PENDING_TOPIC


@dataclass
class Record:
    """One manuscript row after derivation, plus its curation state."""

    id: str
    author_family_name: Any = ""
    author_given_name: Any = ""
    article_title: Any = ""
    received: Any = ""
    accepted: Any = ""
    article_last_page: Any = ""
    editorial_ms_number: Any = ""
    doi: Any = ""
    rubric: Any = ""
    production_state: Any = ""
    online_first_date: Any = ""
    notes_on_issue_building: Any = ""
    note_for_pe: Any = ""
    display_author: str = ""
    formatted_date: str = ""
    online_first: date | None = None
    selected: bool = False
    downloaded: bool = False
    topic: str = PENDING_TOPIC
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return "" if self.article_title is None else str(self.article_title)

    @property
    def topic_pending(self) -> bool:
        return self.topic == PENDING_TOPIC

    @property
    def doi_url(self) -> str:
        doi = "" if self.doi is None else str(self.doi).strip()
        return f"https://doi.org/{doi}" if doi else ""


DateBound = date | str | None


@dataclass(frozen=True)
class FilterSpec:
    """Sidebar filter state; empty collections and blank bounds mean "no restriction"."""

    rubrics: Collection[str] = ()
    production_states: Collection[str] = ()
    topics: Collection[str] = ()
    date_range: Tuple[DateBound, DateBound] = ("", "")

    @property
    def is_empty(self) -> bool:
        start, end = self.date_range
        return not (self.rubrics or self.production_states or self.topics or start or end)
