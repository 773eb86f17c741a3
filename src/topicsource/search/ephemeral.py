"""Ephemeral in-memory ranking of topic candidates using Whoosh.

Builds a temporary index in RAM for each query, with no persistence. Used by
the static source to order topics by BM25F relevance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from whoosh import scoring
from whoosh.analysis import StemmingAnalyzer
from whoosh.fields import NUMERIC, TEXT, Schema
from whoosh.filedb.filestore import RamStorage
from whoosh.qparser import MultifieldParser, OrGroup


@dataclass(slots=True)
class RankedEntry:
    """Represents a single ranking hit."""

    position: int
    score: float


def _make_schema() -> Schema:
    analyzer = StemmingAnalyzer()
    return Schema(
        pos=NUMERIC(stored=True, unique=True),
        title=TEXT(analyzer=analyzer, field_boost=1.8),
        content=TEXT(analyzer=analyzer),
    )


def rank_entries(
    entries: Sequence[Tuple[str, str]], query: str, *, k: int = 10
) -> List[RankedEntry]:
    """Rank `(title, content)` pairs against `query`.

    Returns hits best first; `position` indexes into `entries`. Equal scores
    keep index order, so identical inputs always give identical output.
    """
    if not query or not str(query).strip() or not entries or k <= 0:
        return []

    schema = _make_schema()
    storage = RamStorage()
    idx = storage.create_index(schema)

    writer = idx.writer()
    for pos, (title, content) in enumerate(entries):
        writer.add_document(pos=pos, title=title or "", content=content or "")
    writer.commit()

    with idx.searcher(weighting=scoring.BM25F()) as searcher:
        parser = MultifieldParser(["title", "content"], schema=idx.schema, group=OrGroup)
        try:
            q = parser.parse(query)
        except Exception:
            # On parse failure, fall back to raw string as a phrase query
            q = parser.parse('"' + query.replace('"', " ") + '"')
        results = searcher.search(q, limit=int(k))
        hits = [RankedEntry(position=int(hit["pos"]), score=float(hit.score or 0.0)) for hit in results]

    hits.sort(key=lambda h: (-h.score, h.position))
    return hits
