"""In-memory data source over a fixed set of topics.

This is the quick-start reference implementation of the contract: it shows
the expected behaviour for empty results, unknown topic ids and ranking
without depending on any network service. Entries come from code or from a
JSON fixture file::

    {"topics": [
        {"title": "Entropy", "sourceURL": "https://example.org/entropy",
         "site": "example", "topicID": 1, "tags": ["physics"],
         "embedding": [0.1, 0.9],
         "data": [{"text": "...", "sourceURL": "...", "answerID": 10}]}
    ]}
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from topicsource.config import SourceConfig
from topicsource.exceptions import InitializationError
from topicsource.models import Data, NewQuestionInput, Topic
from topicsource.search.ephemeral import rank_entries
from topicsource.sources.base import DataSource


@dataclass(frozen=True, slots=True)
class StaticEntry:
    """A topic together with its data records and ranking hints."""

    topic: Topic
    data: Tuple[Data, ...] = ()
    tags: Tuple[str, ...] = ()
    embedding: Optional[Tuple[float, ...]] = None

    @classmethod
    def from_dict(cls, item: Mapping[str, Any]) -> StaticEntry:
        embedding = item.get("embedding")
        return cls(
            topic=Topic.from_dict(item),
            data=tuple(Data.from_dict(d) for d in item.get("data") or ()),
            tags=tuple(str(t) for t in item.get("tags") or ()),
            embedding=tuple(float(v) for v in embedding) if embedding is not None else None,
        )


def load_fixture(path: Union[str, Path]) -> List[StaticEntry]:
    """Read static entries from a JSON fixture file."""
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InitializationError(f"Cannot read fixture '{p}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InitializationError(f"Fixture '{p}' is not valid JSON: {exc}") from exc
    items = raw.get("topics") if isinstance(raw, dict) else raw
    if not isinstance(items, list):
        raise InitializationError(f"Fixture '{p}' must contain a list of topics")
    entries: List[StaticEntry] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise InitializationError(f"Fixture '{p}' topic #{i} is not an object")
        try:
            entries.append(StaticEntry.from_dict(item))
        except (TypeError, ValueError) as exc:
            raise InitializationError(f"Fixture '{p}' topic #{i} is invalid: {exc}") from exc
    return entries


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return dot / (na * nb)


class StaticDataSource(DataSource):
    """Data source backed by an in-memory list of `StaticEntry` values."""

    name = "static"
    description = "In-memory topics loaded from code or a JSON fixture"

    def __init__(
        self,
        entries: Iterable[StaticEntry] = (),
        *,
        fixture_path: Optional[Union[str, Path]] = None,
        require_question_text: bool = True,
    ) -> None:
        super().__init__()
        self._pending = list(entries)
        self.fixture_path = fixture_path
        self.require_question_text = require_question_text
        self._entries: List[StaticEntry] = []
        self._by_id: Dict[int, StaticEntry] = {}

    @classmethod
    def from_config(cls, config: SourceConfig) -> StaticDataSource:
        return cls(
            fixture_path=config.fixture,
            require_question_text=config.require_question_text,
        )

    async def initialize(self) -> None:
        if self.initialized:
            return
        entries = list(self._pending)
        if self.fixture_path:
            entries.extend(load_fixture(self.fixture_path))
        by_id: Dict[int, StaticEntry] = {}
        for entry in entries:
            tid = entry.topic.topic_id
            if tid in by_id:
                raise InitializationError(f"Duplicate topicID {tid} in static source")
            by_id[tid] = entry
        self._entries = entries
        self._by_id = by_id
        self._mark_initialized()

    async def check_availability(self) -> bool:
        return self.initialized and not self.closed

    async def fetch_topics(self, count: int, question: NewQuestionInput) -> List[Topic]:
        count = self._validate_count(count)
        self._require_initialized()
        if count == 0:
            return []
        if self.require_question_text:
            self._require_question_text(question)

        candidates = self._filter_by_tags(self._entries, question.tags)
        if not candidates:
            return []

        if question.embedding:
            ranked = self._rank_by_embedding(candidates, question.embedding)
            if ranked is not None:
                return [e.topic for e in ranked[:count]]

        text = (question.question_text or "").strip()
        if not text:
            return [e.topic for e in candidates[:count]]

        docs = [(e.topic.title, self._entry_content(e)) for e in candidates]
        hits = rank_entries(docs, text, k=count)
        return [candidates[h.position].topic for h in hits]

    async def fetch_data(self, count: int, topic_id: int) -> List[Data]:
        count = self._validate_count(count)
        topic_id = self._validate_topic_id(topic_id)
        self._require_initialized()
        entry = self._by_id.get(topic_id)
        if count == 0 or entry is None:
            return []
        return [d for d in entry.data if d.text][:count]

    async def aclose(self) -> None:
        self._entries = []
        self._by_id = {}
        await super().aclose()

    @staticmethod
    def _filter_by_tags(entries: List[StaticEntry], tags: Sequence[str]) -> List[StaticEntry]:
        wanted = {t.strip().lower() for t in tags if t.strip()}
        if not wanted:
            return list(entries)
        return [e for e in entries if wanted & {t.lower() for t in e.tags}]

    @staticmethod
    def _rank_by_embedding(
        entries: List[StaticEntry], embedding: Sequence[float]
    ) -> Optional[List[StaticEntry]]:
        comparable = [
            e for e in entries if e.embedding is not None and len(e.embedding) == len(embedding)
        ]
        if not comparable:
            # No vectors to compare against; fall back to text ranking
            return None
        return sorted(
            comparable,
            key=lambda e: (-_cosine(embedding, e.embedding or ()), e.topic.topic_id),
        )

    @staticmethod
    def _entry_content(entry: StaticEntry) -> str:
        parts = [" ".join(entry.tags)]
        parts.extend(d.text for d in entry.data)
        return "\n".join(p for p in parts if p)
