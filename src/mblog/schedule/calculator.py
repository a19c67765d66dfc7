"""
Slot schedule calculator.

Aura assigns slots round-robin over the ordered authority list::

    author(slot) = authorities[slot % len(authorities)]

The identity at position ``i`` therefore owns exactly the slots ``s`` of
the epoch with ``s % n == i``. Instead of testing every slot we jump to the
first owned slot and step by ``n``.

Everything here is pure: no I/O, no clock reads, identical output for
identical input.
"""

from __future__ import annotations

from mblog.authority import AuthoritySet
from mblog.chain import SlotClock, format_utc
from mblog.types import AuraPublicKey, StrictBaseModel


class PlannedSlot(StrictBaseModel):
    """One slot the identity is expected to produce a block in."""

    slot: int
    """Aura slot number."""

    planned_time_ms: int
    """Unix time (ms) at which the slot begins."""

    @property
    def planned_time_utc(self) -> str:
        """Planned time as RFC 3339 UTC, the persisted representation."""
        return format_utc(self.planned_time_ms)


def own_slots(authority_set: AuthoritySet, identity: AuraPublicKey) -> range:
    """
    Slots of the epoch assigned to identity.

    Returns an empty range when identity is not an authority of the epoch.
    """
    own_index = authority_set.index_of(identity)
    if own_index is None:
        return range(0)

    count = authority_set.authority_set_len
    first = authority_set.start_slot + (own_index - authority_set.start_slot) % count
    return range(first, authority_set.end_slot + 1, count)


def compute_schedule(
    authority_set: AuthoritySet,
    identity: AuraPublicKey,
    clock: SlotClock,
) -> tuple[PlannedSlot, ...]:
    """
    Compute the identity's planned slots for one epoch.

    Args:
        authority_set: Authority set and slot range of the epoch.
        identity: The validator's Aura key.
        clock: Slot clock built from the node's chain constants.

    Returns:
        Planned slots in ascending slot order. Empty if identity is absent.
    """
    return tuple(
        PlannedSlot(slot=slot, planned_time_ms=clock.slot_start_ms(slot))
        for slot in own_slots(authority_set, identity)
    )
