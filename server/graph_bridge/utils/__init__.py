"""Bridge Utility Modules"""

from graph_bridge.utils.decoding import DecodedParam, decode_path_param

__all__ = [
    "DecodedParam",
    "decode_path_param",
]
