"""Catalog Registry Package"""

from graph_bridge.catalog.registry import CatalogRegistry
from graph_bridge.catalog.project_graph import (
    PROJECT_RESOURCES,
    PROJECT_TOOLS,
    PROJECT_PROMPTS,
)

__all__ = [
    "CatalogRegistry",
    "PROJECT_RESOURCES",
    "PROJECT_TOOLS",
    "PROJECT_PROMPTS",
]
