"""Test helpers for mblog unit tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from .builders import (
    SLOT_DURATION_MS,
    aura_digest,
    make_authority_set,
    make_block,
    make_header,
    make_key,
    make_record,
)
from .mocks import FakeNode


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll predicate until it holds, failing the test after timeout seconds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


__all__ = [
    "SLOT_DURATION_MS",
    "FakeNode",
    "aura_digest",
    "make_authority_set",
    "make_block",
    "make_header",
    "make_key",
    "make_record",
    "wait_until",
]
