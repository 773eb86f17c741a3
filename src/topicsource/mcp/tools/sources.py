"""Data source tools for FastMCP.

Expose the configured sources to another process. Records use the contract
wire form; `asked_by` and `embedding` stay absent unless the caller sends
them.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP

from topicsource.models import NewQuestionInput
from topicsource.sources.availability import probe_availability
from topicsource.sources.base import DataSource


def _get_source(state: Any, key: str) -> DataSource:
    sources: Dict[str, DataSource] = getattr(state, "sources", None) or {}
    source = sources.get(key)
    if source is None:
        available = ", ".join(sorted(sources)) or "none"
        raise ValueError(f"Unknown or unavailable source '{key}'. Configured: {available}")
    return source


def register_source_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register data source tools on the given FastMCP instance.

    Reads initialized sources from state.sources (instance key -> DataSource)
    and the optional state.monitor (AvailabilityMonitor).
    """

    @mcp.tool
    async def list_sources() -> Dict[str, Any]:
        """List configured data sources and whether they are available."""
        state = get_state()
        sources: Dict[str, DataSource] = getattr(state, "sources", None) or {}
        monitor = getattr(state, "monitor", None)
        out: List[Dict[str, Any]] = []
        for key in sorted(sources):
            src = sources[key]
            if monitor is not None:
                available = monitor.is_available(key)
            else:
                available = await probe_availability(src)
            out.append(
                {
                    "key": key,
                    "name": src.name,
                    "description": src.description,
                    "available": available,
                }
            )
        return {"sources": out}

    @mcp.tool
    async def source_check_availability(source: str) -> Dict[str, Any]:
        """Probe a data source. Unavailability is reported as false, not an error."""
        src = _get_source(get_state(), source)
        return {"source": source, "available": await probe_availability(src)}

    @mcp.tool
    async def source_fetch_topics(
        source: str,
        count: int,
        *,
        question_text: str = "",
        tags: Optional[List[str]] = None,
        asked_by: Optional[int] = None,
        embedding: Optional[List[float]] = None,
    ) -> Dict[str, Any]:
        """Fetch at most `count` topics relevant to a question.

        Parameters
        ----------
        source: str
            Configured source key.
        count: int
            Upper bound on returned topics.
        question_text: str
            Search query; empty means no textual query.
        tags: list[str] | None
            Labels narrowing the search.
        asked_by: int | None
            Requesting user id. Omit for "no user" (0 is a real id).
        embedding: list[float] | None
            Semantic vector. Omit when not available.
        """
        src = _get_source(get_state(), source)
        question = NewQuestionInput(
            question_text=question_text,
            tags=tuple(tags or ()),
            asked_by=asked_by,
            embedding=tuple(embedding) if embedding is not None else None,
        )
        topics = await src.fetch_topics(int(count), question)
        return {"source": source, "topics": [t.to_dict() for t in topics]}

    @mcp.tool
    async def source_fetch_data(source: str, count: int, topic_id: int) -> Dict[str, Any]:
        """Fetch at most `count` data records for a topic id from source_fetch_topics."""
        src = _get_source(get_state(), source)
        data = await src.fetch_data(int(count), int(topic_id))
        return {"source": source, "data": [d.to_dict() for d in data]}
