"""Bridge Handlers Package"""

from graph_bridge.handlers.result_channel import ResultChannel
from graph_bridge.handlers.dispatch_handler import DispatchBridge

__all__ = [
    "ResultChannel",
    "DispatchBridge",
]
