from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .records import Record
from .reconcile import merge_topics

LOGGER = logging.getLogger(__name__)


class IssueStore:
    """
    Session-owned record collection for one editor.

    Every upload bumps ``generation``; background classification results carry
    the generation they were started for and are discarded once a newer upload
    has replaced the collection.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[Record] = []
        self._index: Dict[str, Record] = {}
        self._generation = 0
        self._categorizing_generation: Optional[int] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def records(self) -> List[Record]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def is_categorizing(self) -> bool:
        with self._lock:
            return self._categorizing_generation == self._generation

    def load(self, records: Iterable[Record]) -> int:
        """Replace the whole collection with a fresh upload and return its generation."""

        records = list(records)
        index = {record.id: record for record in records}
        if len(index) != len(records):
            raise ValueError("Record ids must be unique within an upload.")
        with self._lock:
            self._records = records
            self._index = index
            self._generation += 1
            self._categorizing_generation = None
            LOGGER.info("Loaded %d records (generation %d)", len(self._records), self._generation)
            return self._generation

    def get(self, record_id: str) -> Record:
        with self._lock:
            try:
                return self._index[record_id]
            except KeyError:
                raise KeyError(f"Unknown record id: {record_id}") from None

    def set_selected(self, record_id: str, selected: bool) -> None:
        with self._lock:
            self.get(record_id).selected = bool(selected)

    def toggle_selected(self, record_id: str) -> bool:
        with self._lock:
            record = self.get(record_id)
            record.selected = not record.selected
            return record.selected

    def set_downloaded(self, record_id: str, downloaded: bool) -> None:
        with self._lock:
            self.get(record_id).downloaded = bool(downloaded)

    def toggle_downloaded(self, record_id: str) -> bool:
        with self._lock:
            record = self.get(record_id)
            record.downloaded = not record.downloaded
            return record.downloaded

    def set_topic(self, record_id: str, topic: str) -> None:
        """Manual topic override; takes precedence over any in-flight classification."""

        with self._lock:
            self.get(record_id).topic = topic

    def selected_records(self) -> List[Record]:
        with self._lock:
            return [record for record in self._records if record.selected]

    def titles(self) -> List[str]:
        with self._lock:
            return [record.title for record in self._records]

    def snapshot_titles(self) -> Tuple[int, List[str]]:
        """Current generation and its ordered titles, read together."""

        with self._lock:
            return self._generation, [record.title for record in self._records]

    def begin_categorization(self, generation: int) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._categorizing_generation = generation
            return True

    def apply_topics(self, generation: int, topic_map: Mapping[str, str]) -> bool:
        """
        Merge classifier output for ``generation``.

        Returns False (and changes nothing) when the collection has been
        replaced since the request was issued.
        """

        with self._lock:
            if generation != self._generation:
                LOGGER.info(
                    "Dropping topics for stale generation %d (current %d)", generation, self._generation
                )
                return False
            updated = merge_topics(self._records, topic_map)
            self._categorizing_generation = None
            LOGGER.info("Applied topics to %d of %d records", updated, len(self._records))
            return True
