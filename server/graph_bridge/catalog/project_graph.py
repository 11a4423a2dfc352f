"""Default catalog advertised for a Project Graph application instance."""

from typing import List

from graph_bridge.schemas.catalog_schema import (
    PromptDescriptor,
    ResourceDescriptor,
    ToolDescriptor,
)

DEFAULT_NODE_WIDTH = 200
DEFAULT_NODE_HEIGHT = 100


def _node_id(description: str) -> dict:
    return {"type": "string", "description": description}


PROJECT_RESOURCES: List[ResourceDescriptor] = [
    ResourceDescriptor(
        uri="project://nodes",
        name="All Nodes",
        description="List all text nodes with their locations and sizes",
        mime_type="application/json",
    ),
    ResourceDescriptor(
        uri="project://edges",
        name="All Edges",
        description="List all edges (connections) between nodes",
        mime_type="application/json",
    ),
    ResourceDescriptor(
        uri="project://screenshot",
        name="Screenshot",
        description="Capture screenshot of the current project view",
        mime_type="image/png",
    ),
    ResourceDescriptor(
        uri="project://tags",
        name="Tags",
        description="List all tags in the project",
        mime_type="application/json",
    ),
]


PROJECT_TOOLS: List[ToolDescriptor] = [
    ToolDescriptor(
        name="addNode",
        description="Add a new text node to the project",
        input_schema={
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "The text content of the node"},
                "x": {"type": "number", "description": "X coordinate of the node"},
                "y": {"type": "number", "description": "Y coordinate of the node"},
                "width": {
                    "type": "number",
                    "description": f"Width of the node (default: {DEFAULT_NODE_WIDTH})",
                },
                "height": {
                    "type": "number",
                    "description": f"Height of the node (default: {DEFAULT_NODE_HEIGHT})",
                },
            },
            "required": ["text", "x", "y"],
        },
    ),
    ToolDescriptor(
        name="updateNode",
        description="Update the text content of a node",
        input_schema={
            "type": "object",
            "properties": {
                "nodeId": _node_id("UUID of the node to update"),
                "text": {"type": "string", "description": "New text content"},
            },
            "required": ["nodeId", "text"],
        },
    ),
    ToolDescriptor(
        name="updateNodePosition",
        description="Update the position of a node",
        input_schema={
            "type": "object",
            "properties": {
                "nodeId": _node_id("UUID of the node to update"),
                "x": {"type": "number", "description": "New X coordinate"},
                "y": {"type": "number", "description": "New Y coordinate"},
            },
            "required": ["nodeId", "x", "y"],
        },
    ),
    ToolDescriptor(
        name="updateNodeSize",
        description="Update the size of a node",
        input_schema={
            "type": "object",
            "properties": {
                "nodeId": _node_id("UUID of the node to update"),
                "width": {"type": "number", "description": "New width"},
                "height": {
                    "type": "number",
                    "description": "New height (optional, auto-calculated from the text if not provided)",
                },
            },
            "required": ["nodeId", "width"],
        },
    ),
    ToolDescriptor(
        name="connectNodes",
        description="Create an edge connecting two nodes",
        input_schema={
            "type": "object",
            "properties": {
                "sourceId": _node_id("UUID of the source node"),
                "targetId": _node_id("UUID of the target node"),
            },
            "required": ["sourceId", "targetId"],
        },
    ),
    ToolDescriptor(
        name="updateEdgeDirection",
        description=(
            "Update the direction of an edge connection. Controls which side of the nodes "
            "the edge connects to. Use rate values between 0 and 1 to specify the position "
            "on the node's rectangle. Common values: 0.5 (center), 0.01 (left/top edge), "
            "0.99 (right/bottom edge)"
        ),
        input_schema={
            "type": "object",
            "properties": {
                "edgeId": _node_id("UUID of the edge to update"),
                "sourceRateX": {
                    "type": "number",
                    "description": "X rate for source connection point (0-1, where 0.5 is center)",
                },
                "sourceRateY": {
                    "type": "number",
                    "description": "Y rate for source connection point (0-1, where 0.5 is center)",
                },
                "targetRateX": {
                    "type": "number",
                    "description": "X rate for target connection point (0-1, where 0.5 is center)",
                },
                "targetRateY": {
                    "type": "number",
                    "description": "Y rate for target connection point (0-1, where 0.5 is center)",
                },
            },
            "required": ["edgeId"],
        },
    ),
    ToolDescriptor(
        name="deleteNode",
        description="Delete a node from the project",
        input_schema={
            "type": "object",
            "properties": {
                "nodeId": _node_id("UUID of the node to delete"),
            },
            "required": ["nodeId"],
        },
    ),
]


PROJECT_PROMPTS: List[PromptDescriptor] = [
    PromptDescriptor(
        name="analyze-project",
        description="Analyze the current project structure and provide insights",
    ),
    PromptDescriptor(
        name="suggest-organization",
        description="Suggest ways to organize and improve the project structure",
    ),
]
