"""
Chain watcher.

Follows best and finalized heads, advances the identity's slot records
through the status lattice and rolls over at epoch boundaries.
"""

from .config import WatcherConfig
from .events import BestHeadSeen, ChainBlock, FinalizedHeadSeen, WatchEvent
from .service import ChainWatcher
from .state import WatchState
from .states import WatcherPhase
from .transitions import StatusWrite, Transition, apply_event, crosses_boundary

__all__ = [
    "BestHeadSeen",
    "ChainBlock",
    "ChainWatcher",
    "FinalizedHeadSeen",
    "StatusWrite",
    "Transition",
    "WatchEvent",
    "WatchState",
    "WatcherConfig",
    "WatcherPhase",
    "apply_event",
    "crosses_boundary",
]
