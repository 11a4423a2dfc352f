"""
Catalog Descriptor Schemas

Descriptions of the resources, tools and prompts the bridge advertises.
Field aliases follow the MCP wire names (mimeType, inputSchema).
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class ResourceDescriptor(BaseModel):
    """A readable resource, addressed by an opaque scheme-namespaced URI"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uri: str = Field(..., description="Resource URI, e.g. project://nodes")
    name: str = Field(..., description="Human readable name")
    description: str = Field("", description="What the resource contains")
    mime_type: str = Field("application/json", alias="mimeType", description="Content type")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ToolDescriptor(BaseModel):
    """A callable tool and the JSON schema of its arguments"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Tool name, e.g. addNode")
    description: str = Field("", description="What the tool does")
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
        description="JSON-Schema-like description of the arguments",
    )

    @property
    def required_arguments(self) -> list:
        return list(self.input_schema.get("required", []))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class PromptDescriptor(BaseModel):
    """A named prompt template"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Prompt name, e.g. analyze-project")
    description: str = Field("", description="What the prompt asks for")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
