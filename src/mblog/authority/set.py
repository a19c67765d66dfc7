"""Authority set: the ordered list of keys that take turns producing blocks."""

from __future__ import annotations

import hashlib

from pydantic import model_validator

from mblog.types import AuraPublicKey, StrictBaseModel


def epoch_bounds(epoch: int, epoch_size: int) -> tuple[int, int]:
    """Inclusive ``(start_slot, end_slot)`` of an epoch."""
    start = epoch * epoch_size
    return start, start + epoch_size - 1


def hash_authorities(authorities: tuple[AuraPublicKey, ...]) -> str:
    """SHA-256 over the concatenated key bytes, in order, as 0x-hex."""
    hasher = hashlib.sha256()
    for key in authorities:
        hasher.update(key)
    return "0x" + hasher.hexdigest()


class AuthoritySet(StrictBaseModel):
    """
    The authority set governing one epoch.

    Order is significant: slot ``s`` belongs to ``authorities[s % len]``.
    """

    epoch: int
    """Epoch (session) index."""

    authorities: tuple[AuraPublicKey, ...]
    """Ordered authority keys."""

    start_slot: int
    """First slot of the epoch (inclusive)."""

    end_slot: int
    """Last slot of the epoch (inclusive)."""

    @model_validator(mode="after")
    def _check_range(self) -> AuthoritySet:
        if self.end_slot < self.start_slot:
            raise ValueError(f"end_slot {self.end_slot} precedes start_slot {self.start_slot}")
        return self

    @classmethod
    def for_epoch(
        cls,
        epoch: int,
        epoch_size: int,
        authorities: list[AuraPublicKey] | tuple[AuraPublicKey, ...],
    ) -> AuthoritySet:
        """Build the set for an epoch of a fixed size."""
        start, end = epoch_bounds(epoch, epoch_size)
        return cls(epoch=epoch, authorities=tuple(authorities), start_slot=start, end_slot=end)

    @property
    def authority_set_hash(self) -> str:
        """Content hash of the ordered authority list."""
        return hash_authorities(self.authorities)

    @property
    def slot_count(self) -> int:
        """Number of slots the set governs."""
        return self.end_slot - self.start_slot + 1

    @property
    def authority_set_len(self) -> int:
        """Number of authorities."""
        return len(self.authorities)

    def index_of(self, key: AuraPublicKey) -> int | None:
        """Position of key in the round-robin order, or None if absent."""
        try:
            return self.authorities.index(key)
        except ValueError:
            return None

    def author_of(self, slot: int) -> AuraPublicKey | None:
        """The authority expected to produce a block at slot."""
        if not self.authorities:
            return None
        return self.authorities[slot % len(self.authorities)]

    def contains_slot(self, slot: int) -> bool:
        """Whether slot lies in this epoch."""
        return self.start_slot <= slot <= self.end_slot
