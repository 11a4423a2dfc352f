"""Bridge Schemas Package"""

from graph_bridge.schemas.catalog_schema import (
    ResourceDescriptor,
    ToolDescriptor,
    PromptDescriptor,
)
from graph_bridge.schemas.dispatch_schema import (
    DispatchKind,
    DispatchCommand,
    DeliveryResult,
    BridgeStatus,
    BridgeResponse,
    ResultStatus,
    ResultRecord,
    PublishResultRequest,
)

__all__ = [
    "ResourceDescriptor",
    "ToolDescriptor",
    "PromptDescriptor",
    "DispatchKind",
    "DispatchCommand",
    "DeliveryResult",
    "BridgeStatus",
    "BridgeResponse",
    "ResultStatus",
    "ResultRecord",
    "PublishResultRequest",
]
