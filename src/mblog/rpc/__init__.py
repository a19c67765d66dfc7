"""Substrate node access: JSON-RPC client, SCALE helpers and the capability protocol."""

from .client import DEFAULT_WS_URL, NodeClient
from .protocol import NodeApi
from .scale import Header

__all__ = [
    "DEFAULT_WS_URL",
    "Header",
    "NodeApi",
    "NodeClient",
]
