"""Scoped acquisition helpers for data source lifetimes."""

from __future__ import annotations

from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, Mapping

from topicsource.exceptions import InitializationError
from topicsource.logging import get_logger
from topicsource.sources.base import DataSource

logger = get_logger(__name__)


@asynccontextmanager
async def initialized(source: DataSource) -> AsyncIterator[DataSource]:
    """Initialize `source` and close it on every exit path."""
    await source.initialize()
    try:
        yield source
    finally:
        await source.aclose()


@asynccontextmanager
async def open_sources(
    sources: Mapping[str, DataSource], *, skip_failed: bool = True
) -> AsyncIterator[Dict[str, DataSource]]:
    """Initialize several sources and close all of them on exit.

    Sources whose `initialize` raises `InitializationError` are left out of
    the yielded mapping (or the error is re-raised when `skip_failed` is
    False, after closing the ones already opened).
    """
    async with AsyncExitStack() as stack:
        ready: Dict[str, DataSource] = {}
        for key, source in sources.items():
            try:
                await stack.enter_async_context(initialized(source))
            except InitializationError as exc:
                if not skip_failed:
                    raise
                logger.warning("source_skipped", source=key, error=str(exc))
                continue
            ready[key] = source
        yield ready
