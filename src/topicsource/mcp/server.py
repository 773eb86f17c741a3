"""topicsource MCP server entrypoint using FastMCP.

Serves the configured data sources to a host running in another process.
Run with:
  - topicsource-mcp
  - or: python -m topicsource.mcp.server (ensure PYTHONPATH includes ./src)
"""
from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastmcp import FastMCP

from topicsource.config import Settings, load_settings
from topicsource.exceptions import ConfigError
from topicsource.logging import configure_logging, get_logger
from topicsource.mcp.tools import register_source_tools
from topicsource.sources.availability import AvailabilityMonitor
from topicsource.sources.base import DataSource
from topicsource.sources.lifecycle import open_sources
from topicsource.sources.registry import SourceRegistry, default_registry

logger = get_logger(__name__)


class AppState:
    """Application state shared by MCP tools."""

    def __init__(self, settings: Settings, registry: Optional[SourceRegistry] = None) -> None:
        self.settings = settings
        self.registry = registry or default_registry()
        self.configured: Dict[str, DataSource] = {}
        # Only sources whose initialization succeeded
        self.sources: Dict[str, DataSource] = {}
        self.monitor: Optional[AvailabilityMonitor] = None
        self._users = 0
        self._stack: Optional[AsyncExitStack] = None
        self._run_lock = asyncio.Lock()

    def build_sources(self) -> None:
        """Instantiate sources from configuration (no I/O yet)."""
        configured: Dict[str, DataSource] = {}
        for cfg in self.settings.sources:
            if not cfg.enabled:
                continue
            key = cfg.instance_key
            if key in configured:
                raise ConfigError(f"Duplicate source key '{key}'; set a distinct 'key'")
            configured[key] = self.registry.create(cfg)
        self.configured = configured

    @asynccontextmanager
    async def run(self) -> AsyncIterator[AppState]:
        """Keep sources (and availability polling) open while any session runs.

        FastMCP enters the lifespan once per client session, and sessions may
        overlap. Sources are opened by the first session and closed when the
        last one ends, so a later session opens them again.
        """
        await self._acquire()
        try:
            yield self
        finally:
            await self._release()

    async def _acquire(self) -> None:
        async with self._run_lock:
            if self._users == 0:
                stack = AsyncExitStack()
                ready = await stack.enter_async_context(open_sources(self.configured))
                self._stack = stack
                self.sources = ready
                logger.info(
                    "sources_ready", sources=sorted(ready), configured=sorted(self.configured)
                )
                acfg = self.settings.availability
                if acfg.enabled:
                    self.monitor = AvailabilityMonitor(
                        ready,
                        interval=timedelta(seconds=acfg.interval_seconds),
                        probe_timeout=acfg.probe_timeout,
                    )
                    await self.monitor.refresh()
                    self.monitor.start()
            self._users += 1

    async def _release(self) -> None:
        async with self._run_lock:
            self._users -= 1
            if self._users > 0:
                return
            stack, self._stack = self._stack, None
            if self.monitor is not None:
                self.monitor.shutdown()
                self.monitor = None
            self.sources = {}
            if stack is not None:
                await stack.aclose()
            logger.info("sources_closed", configured=sorted(self.configured))


# Global state and server instance
_state: Optional[AppState] = None


@asynccontextmanager
async def _lifespan(server: FastMCP) -> AsyncIterator[Dict[str, Any]]:
    if _state is None:
        yield {}
        return
    async with _state.run():
        yield {}


mcp = FastMCP("topicsource MCP Server", lifespan=_lifespan)


# ----- Tools -----

@mcp.tool
def health() -> str:
    """Simple health check tool."""
    return "ok"


register_source_tools(mcp, get_state=lambda: _state)


# ----- Entrypoint -----

def main() -> None:
    """Build sources from configuration and run the MCP server."""
    global _state
    settings = load_settings()
    configure_logging(settings.app.log_level, debug=settings.app.debug)
    registry = default_registry()
    registry.load_entry_points()
    _state = AppState(settings, registry)
    _state.build_sources()
    # Choose transport based on configuration: stdio (default), http, or sse
    transport = settings.app.transport
    if transport in ("http", "sse"):
        mcp.run(transport=transport, host=settings.app.host, port=settings.app.port)
    else:
        mcp.run()


if __name__ == "__main__":  # pragma: no cover
    main()
