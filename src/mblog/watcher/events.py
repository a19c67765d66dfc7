"""Events flowing from the head subscriptions to the state consumer."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ChainBlock:
    """A block as observed on a subscription or during a finality scan."""

    number: int
    """Block height."""

    hash: str
    """Block hash, 0x-hex."""

    slot: int | None
    """Aura slot from the header digest, if present."""

    produced_time_utc: str | None = None
    """
    On-chain timestamp, RFC 3339 UTC.

    Only fetched for blocks the watcher may record.
    """


@dataclass(frozen=True, slots=True)
class BestHeadSeen:
    """A new best head was announced."""

    block: ChainBlock

    @property
    def observed_block(self) -> ChainBlock:
        """Block used for epoch boundary detection."""
        return self.block


@dataclass(frozen=True, slots=True)
class FinalizedHeadSeen:
    """
    A new finalized head was announced.

    Carries the canonical blocks finalized since the previous notification,
    in ascending height order. The range may be truncated at its low end.
    """

    number: int
    """Finalized height."""

    hash: str
    """Finalized block hash."""

    blocks: tuple[ChainBlock, ...] = ()
    """Canonical blocks scanned for this notification."""

    @property
    def observed_block(self) -> ChainBlock | None:
        """Scanned block with the highest slot."""
        with_slot = [block for block in self.blocks if block.slot is not None]
        return max(with_slot, key=lambda block: block.slot or 0) if with_slot else None

    def canonical_at(self, number: int) -> ChainBlock | None:
        """The scanned canonical block at a height, or None if not scanned."""
        for block in self.blocks:
            if block.number == number:
                return block
        return None


WatchEvent = BestHeadSeen | FinalizedHeadSeen
"""Any event the consumer handles."""
