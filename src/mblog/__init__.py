"""
Aura slot schedule and block-production log.

Tracks the block-production slots assigned to one Aura authority on a
Substrate-style chain and records whether each slot was minted and finalized.
"""
