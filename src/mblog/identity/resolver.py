"""Identity resolution: which keystore key this node actually signs with."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from mblog.chain.config import AURA_KEY_TYPE
from mblog.types import AmbiguousKeys, AuraPublicKey, NoKeyFound

from .keystore import list_candidate_keys

if TYPE_CHECKING:
    from mblog.rpc import NodeApi

logger = logging.getLogger(__name__)


async def resolve_identity(keystore_path: Path, node: NodeApi) -> AuraPublicKey:
    """
    Resolve the validator identity.

    Every candidate key from the keystore is confirmed with the node. Exactly
    one must be held by the node. An ambiguous keystore is never silently
    disambiguated.

    Args:
        keystore_path: The node's keystore directory.
        node: Connected node client.

    Returns:
        The confirmed Aura public key.

    Raises:
        NoKeyFound: No candidate, or no candidate held by the node.
        AmbiguousKeys: More than one candidate held by the node.
        NodeUnreachable: The node cannot be queried.
    """
    candidates = list_candidate_keys(keystore_path)
    if not candidates:
        raise NoKeyFound(keystore_path)

    confirmed: list[AuraPublicKey] = []
    for key in candidates:
        held = await node.has_key(key, AURA_KEY_TYPE)
        logger.debug("author_hasKey(%s) = %s", key, held)
        if held:
            confirmed.append(key)

    if not confirmed:
        raise NoKeyFound(keystore_path, tuple(str(key) for key in candidates))
    if len(confirmed) > 1:
        raise AmbiguousKeys(keystore_path, tuple(str(key) for key in confirmed))

    logger.info("Identity confirmed: %s", confirmed[0])
    return confirmed[0]
