"""Application Instance Adapters Package"""

from graph_bridge.instances.base_instance import ApplicationInstance
from graph_bridge.instances.callback_instance import CallbackInstance
from graph_bridge.instances.file_queue_instance import FileQueueInstance
from graph_bridge.instances.registry import InstanceRegistry

__all__ = [
    "ApplicationInstance",
    "CallbackInstance",
    "FileQueueInstance",
    "InstanceRegistry",
]
