"""Authority set resolution against the live node."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mblog.chain import SlotClock
from mblog.types import InconsistentChainState

from .set import AuthoritySet

if TYPE_CHECKING:
    from mblog.rpc import NodeApi

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChainView:
    """
    What the node reported at one block.

    Everything needed to compute a schedule: the authority set with its
    epoch bounds, and the clock for planned times.
    """

    authority_set: AuthoritySet
    """Authority set of the epoch containing the observed slot."""

    clock: SlotClock
    """Slot clock anchored on the observed block."""

    head_number: int
    """Height of the observed block."""

    head_hash: str
    """Hash of the observed block."""

    head_slot: int
    """Aura slot of the observed block."""

    @property
    def epoch(self) -> int:
        """Epoch of the observed slot."""
        return self.authority_set.epoch


async def resolve_authority_set(
    node: NodeApi,
    epoch_size: int,
    at: str | None = None,
    epoch: int | None = None,
) -> ChainView:
    """
    Query the node for the authority set and its slot range.

    The epoch is derived from the slot of the observed block, not from
    local slot arithmetic. A session that rolled over at a slightly different
    slot than predicted is thereby picked up as-is.

    Args:
        node: Connected node client.
        epoch_size: Slots per epoch.
        at: Block hash to read at. Defaults to the best block.
        epoch: Explicit epoch override (historical or future inspection).
            The authority list is still the one at the observed block.

    Returns:
        The chain view at the observed block.

    Raises:
        NodeUnreachable: The node cannot be queried.
        InconsistentChainState: The node's data cannot yield a schedule.
    """
    head_hash = at if at is not None else await node.get_block_hash()
    if head_hash is None:
        raise InconsistentChainState("node reported no best block")

    header = await node.get_header(head_hash)
    if header is None:
        raise InconsistentChainState(f"node has no header for {head_hash}")

    slot_duration = await node.get_slot_duration(head_hash)
    timestamp = await node.get_timestamp(head_hash)

    # The digest slot is authoritative. The timestamp-derived slot is only a
    # fallback for blocks without an Aura pre-runtime digest.
    slot = header.aura_slot()
    if slot is None:
        if timestamp is None:
            raise InconsistentChainState(
                f"block {header.number} has neither an Aura slot nor a timestamp"
            )
        slot = timestamp // slot_duration
    if timestamp is None:
        timestamp = slot * slot_duration

    authorities = await node.get_authorities(head_hash)
    if not authorities:
        raise InconsistentChainState(f"Aura.Authorities is empty at block {header.number}")

    epoch_index = epoch if epoch is not None else slot // epoch_size
    authority_set = AuthoritySet.for_epoch(epoch_index, epoch_size, authorities)

    logger.debug(
        "Chain view: block=%d slot=%d epoch=%d authorities=%d slot_duration=%dms",
        header.number,
        slot,
        epoch_index,
        len(authorities),
        slot_duration,
    )

    return ChainView(
        authority_set=authority_set,
        clock=SlotClock.from_observation(slot_duration, slot, timestamp),
        head_number=header.number,
        head_hash=head_hash,
        head_slot=slot,
    )
