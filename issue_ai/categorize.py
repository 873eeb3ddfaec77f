from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from issue_common.schema import SURGICAL_TOPICS

from .config import Settings
from .ollama_client import OllamaClient

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You classify maxillofacial surgery article titles into clinical topics. Reply with JSON only."""

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "topic": {"type": "string"},
                },
                "required": ["title", "topic"],
            },
        }
    },
    "required": ["results"],
}


def build_messages(titles: Sequence[str], topics: Sequence[str] = SURGICAL_TOPICS) -> List[Dict[str, str]]:
    listing = "\n".join(titles)
    user_prompt = (
        f"Categorize these maxillofacial surgery article titles into exactly one of these topics: "
        f"{', '.join(topics)}.\n"
        f'Return a JSON object with a "results" array of objects with "title" and "topic" keys, '
        f"copying each title verbatim.\n\n"
        f"Titles:\n{listing}"
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def parse_topic_pairs(payload: Any) -> Dict[str, str]:
    """
    Turn the classifier reply into a title -> topic map.

    Accepts a bare list of pairs or an object wrapping them under "results".
    Later duplicates of a title win. Entries without a string title/topic are
    skipped; any other payload shape raises ValueError.
    """

    items = payload.get("results") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise ValueError(f"Unexpected categorization payload: {type(payload).__name__}")

    topic_map: Dict[str, str] = {}
    for item in items:
        if not isinstance(item, dict):
            LOGGER.debug("Skipping non-object categorization entry: %r", item)
            continue
        title, topic = item.get("title"), item.get("topic")
        if not isinstance(title, str) or not isinstance(topic, str) or not topic.strip():
            LOGGER.debug("Skipping incomplete categorization entry: %r", item)
            continue
        topic_map[title] = topic.strip()
    return topic_map


class TopicClassifier:
    """Callable batch classifier: ordered titles in, ``{title: topic}`` out."""

    def __init__(
        self,
        client: OllamaClient,
        model: str,
        topics: Sequence[str] = SURGICAL_TOPICS,
    ) -> None:
        self.client = client
        self.model = model
        self.topics = list(topics)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TopicClassifier":
        client = OllamaClient(
            settings.ollama_host,
            keep_alive=settings.keep_alive,
            api_key=settings.api_key,
            timeout=settings.request_timeout,
        )
        return cls(client, settings.chat_model)

    def __call__(self, titles: Sequence[str]) -> Dict[str, str]:
        if not titles:
            return {}
        payload = self.client.chat_json(
            messages=build_messages(titles, self.topics),
            model=self.model,
            schema=RESPONSE_SCHEMA,
        )
        topic_map = parse_topic_pairs(payload)
        off_set = sorted({t for t in topic_map.values() if t not in self.topics})
        if off_set:
            LOGGER.info("Classifier returned topics outside the closed set: %s", ", ".join(off_set))
        return topic_map
