"""Authority sets and their resolution from the node."""

from .resolver import ChainView, resolve_authority_set
from .set import AuthoritySet, epoch_bounds, hash_authorities

__all__ = [
    "AuthoritySet",
    "ChainView",
    "epoch_bounds",
    "hash_authorities",
    "resolve_authority_set",
]
