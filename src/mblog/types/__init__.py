"""Reusable type definitions for mblog."""

from .base import StrictBaseModel
from .exceptions import (
    AmbiguousKeys,
    IdentityError,
    InconsistentChainState,
    MblogError,
    NodeUnreachable,
    NoKeyFound,
    PersistenceConflict,
    RpcError,
    ScaleDecodeError,
    StatusRegression,
    StorageError,
)
from .keys import AuraPublicKey
from .status import BlockStatus

__all__ = [
    # Core types
    "AuraPublicKey",
    "BlockStatus",
    "StrictBaseModel",
    # Exceptions
    "MblogError",
    "IdentityError",
    "NoKeyFound",
    "AmbiguousKeys",
    "NodeUnreachable",
    "RpcError",
    "InconsistentChainState",
    "ScaleDecodeError",
    "StorageError",
    "PersistenceConflict",
    "StatusRegression",
]
