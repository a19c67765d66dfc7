"""Chain parameters and slot timing."""

from .clock import SlotClock, format_utc, utc_now
from .config import AURA_ENGINE_ID, AURA_KEY_TYPE, AURA_KEY_TYPE_HEX, DEFAULT_EPOCH_SIZE

__all__ = [
    "AURA_ENGINE_ID",
    "AURA_KEY_TYPE",
    "AURA_KEY_TYPE_HEX",
    "DEFAULT_EPOCH_SIZE",
    "SlotClock",
    "format_utc",
    "utc_now",
]
