"""
Node capability interface.

The watcher, coordinator and resolvers depend on this Protocol rather than on
the WebSocket client, so tests can drive them with an in-process fake.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mblog.types import AuraPublicKey

    from .scale import Header


class NodeApi(Protocol):
    """
    Subset of the Substrate node RPC surface that mblog consumes.

    Every method raises ``NodeUnreachable`` when the connection fails.
    """

    async def connect(self) -> None:
        """Open (or reopen) the connection."""
        ...

    async def close(self) -> None:
        """Close the connection and end all subscriptions."""
        ...

    async def has_key(self, public_key: AuraPublicKey, key_type: str) -> bool:
        """Whether the node's keystore holds the private key for public_key."""
        ...

    async def get_header(self, block_hash: str | None = None) -> Header | None:
        """Header of the given block, or of the best block when hash is None."""
        ...

    async def get_block_hash(self, number: int | None = None) -> str | None:
        """Canonical hash at a height, or the best hash when number is None."""
        ...

    async def get_finalized_head(self) -> str:
        """Hash of the latest finalized block."""
        ...

    async def get_authorities(self, at: str | None = None) -> list[AuraPublicKey]:
        """Ordered ``Aura.Authorities`` at a block (best block when None)."""
        ...

    async def get_timestamp(self, at: str | None = None) -> int | None:
        """``Timestamp.Now`` in milliseconds at a block, if set."""
        ...

    async def get_slot_duration(self, at: str | None = None) -> int:
        """Aura slot duration in milliseconds."""
        ...

    def subscribe_best_heads(self) -> AsyncIterator[Header]:
        """Unbounded stream of new best-head headers."""
        ...

    def subscribe_finalized_heads(self) -> AsyncIterator[Header]:
        """Unbounded stream of newly finalized headers."""
        ...
