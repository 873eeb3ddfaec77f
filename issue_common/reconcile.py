"""
Reconcile AI-suggested clinical topics back onto the record store.

The classifier is any callable taking the ordered title list and returning a
``{title: topic}`` mapping. It runs once per upload on a worker thread; the
editor keeps curating meanwhile, so the merge only fills records that are still
waiting on a topic and is dropped entirely if a newer upload has landed.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from .records import Record
from .schema import FALLBACK_TOPIC

if TYPE_CHECKING:
    from .store import IssueStore

LOGGER = logging.getLogger(__name__)

Classifier = Callable[[Sequence[str]], Mapping[str, str]]


def merge_topics(records: Iterable[Record], topic_map: Mapping[str, str]) -> int:
    """
    Apply classifier output to records still waiting on a topic.

    Pending records take the topic for their title, or the fallback when the
    title is absent from ``topic_map``. Records that already carry any other
    topic (a manual override, say) are left alone. Returns how many records
    changed.
    """

    updated = 0
    for record in records:
        if not record.topic_pending:
            continue
        record.topic = topic_map.get(record.title) or FALLBACK_TOPIC
        updated += 1
    return updated


def run_categorization(
    store: "IssueStore",
    generation: int,
    titles: Sequence[str],
    classify: Classifier,
) -> bool:
    """
    Classify ``titles`` and merge the result into ``store``.

    Any classifier failure degrades to the fallback topic for pending records.
    Returns whether the merge was applied (False for a stale generation).
    """

    try:
        topic_map = dict(classify(titles))
    except Exception as exc:  # network, HTTP status, malformed payload
        LOGGER.warning("Categorization failed for generation %d; using fallback topic. %s", generation, exc)
        topic_map = {}
    else:
        LOGGER.info("Classifier returned %d topics for %d titles", len(topic_map), len(titles))
    return store.apply_topics(generation, topic_map)


def start_categorization(store: "IssueStore", classify: Classifier, executor: Executor) -> Future:
    """Kick off background classification for the store's current upload."""

    generation, titles = store.snapshot_titles()
    store.begin_categorization(generation)
    LOGGER.info("Submitting %d titles for categorization (generation %d)", len(titles), generation)
    return executor.submit(run_categorization, store, generation, titles, classify)
