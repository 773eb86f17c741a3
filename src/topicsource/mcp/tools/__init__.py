"""Tool registration modules for the topicsource MCP server."""

from .sources import register_source_tools

__all__ = ["register_source_tools"]
