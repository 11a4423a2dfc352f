"""
Catalog Registry

Holds the ordered resource, tool and prompt descriptors the bridge
advertises. Listings never touch the application instance.
"""

from typing import Iterable, List, Optional

from graph_bridge.catalog.project_graph import (
    PROJECT_PROMPTS,
    PROJECT_RESOURCES,
    PROJECT_TOOLS,
)
from graph_bridge.schemas.catalog_schema import (
    PromptDescriptor,
    ResourceDescriptor,
    ToolDescriptor,
)


class CatalogRegistry:
    """
    Static catalog of resources, tools and prompts.

    Order of registration is preserved so clients render a stable list.
    Descriptors are immutable; listings return new lists on every call.
    """

    def __init__(
        self,
        resources: Iterable[ResourceDescriptor] = (),
        tools: Iterable[ToolDescriptor] = (),
        prompts: Iterable[PromptDescriptor] = (),
    ):
        self._resources = tuple(resources)
        self._tools = tuple(tools)
        self._prompts = tuple(prompts)

    @classmethod
    def project_graph(cls) -> "CatalogRegistry":
        """Registry pre-loaded with the Project Graph catalog"""
        return cls(PROJECT_RESOURCES, PROJECT_TOOLS, PROJECT_PROMPTS)

    def list_resources(self) -> List[ResourceDescriptor]:
        return list(self._resources)

    def list_tools(self) -> List[ToolDescriptor]:
        return list(self._tools)

    def list_prompts(self) -> List[PromptDescriptor]:
        return list(self._prompts)

    def get_resource(self, uri: str) -> Optional[ResourceDescriptor]:
        return next((r for r in self._resources if r.uri == uri), None)

    def get_tool(self, name: str) -> Optional[ToolDescriptor]:
        return next((t for t in self._tools if t.name == name), None)

    def get_prompt(self, name: str) -> Optional[PromptDescriptor]:
        return next((p for p in self._prompts if p.name == name), None)

    def summary(self) -> dict:
        return {
            "resources": len(self._resources),
            "tools": len(self._tools),
            "prompts": len(self._prompts),
        }
