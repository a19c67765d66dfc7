"""
Keystore key discovery.

Substrate keystores store one file per key, named
``<key type hex><public key hex>``. For Aura the key type is ``aura``
(``61757261``), so an Aura key file is named::

    61757261<64 hex chars>

Only file names are inspected. File contents hold secret material and are
never opened.
"""

from __future__ import annotations

import logging
from pathlib import Path

from mblog.chain.config import AURA_KEY_TYPE_HEX
from mblog.types import AuraPublicKey, NoKeyFound

logger = logging.getLogger(__name__)

_AURA_FILE_NAME_LENGTH = len(AURA_KEY_TYPE_HEX) + 2 * AuraPublicKey.LENGTH
"""Hex characters in an Aura keystore file name (72)."""


def parse_key_file_name(name: str) -> AuraPublicKey | None:
    """
    Extract the Aura public key encoded in a keystore file name.

    Accepts an optional 0x prefix and any letter case.

    Returns:
        The public key, or None if the name is not an Aura key file.
    """
    hex_name = name.strip().lower()
    if hex_name.startswith("0x"):
        hex_name = hex_name[2:]

    if len(hex_name) != _AURA_FILE_NAME_LENGTH or not hex_name.startswith(AURA_KEY_TYPE_HEX):
        return None

    try:
        return AuraPublicKey.from_hex(hex_name[len(AURA_KEY_TYPE_HEX) :])
    except ValueError:
        return None


def list_candidate_keys(keystore_path: Path) -> list[AuraPublicKey]:
    """
    List Aura public keys present in a keystore directory.

    Args:
        keystore_path: The node's keystore directory.

    Returns:
        Sorted, deduplicated candidate keys. May be empty.

    Raises:
        NoKeyFound: If the directory cannot be read.
    """
    try:
        entries = list(keystore_path.iterdir())
    except OSError as exc:
        logger.error("Failed to read keystore '%s': %s", keystore_path, exc)
        raise NoKeyFound(keystore_path) from exc

    found: set[AuraPublicKey] = set()
    for entry in entries:
        if not entry.is_file():
            continue
        key = parse_key_file_name(entry.name)
        if key is not None:
            found.add(key)

    return sorted(found)
