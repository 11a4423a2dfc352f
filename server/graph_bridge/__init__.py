"""Project Graph MCP HTTP bridge."""

from graph_bridge.config import mcp_settings
from graph_bridge.core.config import settings

__all__ = [
    "mcp_settings",
    "settings",
]
