"""
Chain parameters for Aura-based Substrate chains.

Only values the node cannot report live here. Slot duration and the slot
origin are always read from the node (see ``mblog.chain.clock``).
"""

from typing import Final

DEFAULT_EPOCH_SIZE: Final = 1200
"""Number of slots in one session (epoch)."""

AURA_ENGINE_ID: Final = b"aura"
"""Consensus engine identifier in pre-runtime digest items."""

AURA_KEY_TYPE: Final = "aura"
"""Key type passed to ``author_hasKey``."""

AURA_KEY_TYPE_HEX: Final = AURA_ENGINE_ID.hex()
"""Keystore file name prefix for Aura keys (``61757261``)."""

AURA_SLOT_DURATION_CALL: Final = "AuraApi_slot_duration"
"""Runtime API call returning the slot duration in milliseconds."""
