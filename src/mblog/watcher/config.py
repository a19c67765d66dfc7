"""
Watcher configuration constants.

Operational parameters for watch mode: reconnection backoff, finality
scanning and queue sizes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from mblog.config import MBLOG_ENV

BACKOFF_INITIAL: Final[float] = 1.0 if MBLOG_ENV == "prod" else 0.01
"""First reconnect delay in seconds. Doubles on every consecutive failure."""

BACKOFF_MAX: Final[float] = 30.0 if MBLOG_ENV == "prod" else 0.1
"""Upper bound on the reconnect delay in seconds."""

MAX_RECONNECT_ATTEMPTS: Final[int] = 10
"""Consecutive failed reconnects before watch mode gives up."""

MAX_FINALIZED_SCAN: Final[int] = 512
"""
Most blocks scanned for one finalized-head notification.

Older blocks in a larger jump are not fetched. Minted records in the
skipped range are finalized with their own data.
"""

EVENT_QUEUE_SIZE: Final[int] = 1024
"""Capacity of the producer-to-consumer event queue."""


@dataclass(frozen=True, slots=True)
class WatcherConfig:
    """Runtime settings of a watch session."""

    backoff_initial: float = BACKOFF_INITIAL
    """First reconnect delay in seconds."""

    backoff_max: float = BACKOFF_MAX
    """Reconnect delay cap in seconds."""

    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    """Consecutive failures tolerated before a fatal error."""

    max_finalized_scan: int = MAX_FINALIZED_SCAN
    """Most blocks scanned per finalized head."""

    queue_size: int = EVENT_QUEUE_SIZE
    """Event queue capacity."""

    def backoff_delay(self, attempt: int) -> float:
        """
        Delay before reconnect attempt number attempt (1-based).

        1 s, 2 s, 4 s, ... capped at backoff_max (production defaults).
        """
        return min(self.backoff_initial * 2 ** (attempt - 1), self.backoff_max)
